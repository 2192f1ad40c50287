"""Email + password identity backed by the document store."""
import hashlib
import hmac
import logging
import secrets
import time
from typing import Callable, List, Optional

from pydantic import BaseModel, ValidationError

from errors import AuthFailure, Conflict
from schemas import Session, User

log = logging.getLogger(__name__)

USER_COLLECTION = "user"
SESSION_COLLECTION = "session"
MIN_PASSWORD_LENGTH = 6
PBKDF2_ROUNDS = 100_000

OTP_TTL_SECONDS = 10 * 60
MAX_OTP_ATTEMPTS = 5
DEFAULT_SESSION_TTL = 14 * 24 * 3600

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

INVALID_CODE = "Token has expired or is invalid"


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ROUNDS)
    return f"{salt}${digest.hex()}"


def check_password(password: str, stored: str) -> bool:
    salt, _, _ = stored.partition("$")
    return hmac.compare_digest(hash_password(password, salt), stored)


class SignUpResult(BaseModel):
    user_id: str
    session: Optional[Session] = None

    @property
    def confirmation_required(self) -> bool:
        return self.session is None


class IdentityProvider:
    """
    Sign-up, sign-in and sessions.

    Sessions are opaque tokens in the `session` collection and expire after
    `session_ttl` seconds. With `require_confirmation`, sign-up issues a six-digit
    one-time code instead of a session. There is no mailer: the code goes to the log.
    """

    def __init__(
        self,
        store,
        require_confirmation: bool = False,
        session_ttl: float = DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.require_confirmation = require_confirmation
        self.session_ttl = session_ttl
        self.clock = clock
        self._listeners: List[Callable[[str, Optional[Session]], None]] = []

    def on_session_change(self, callback: Callable[[str, Optional[Session]], None]) -> Callable[[], None]:
        """Register `callback(event, session)`; returns an unsubscribe function."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    def _emit(self, event: str, session: Optional[Session]):
        for callback in list(self._listeners):
            callback(event, session)

    async def _open_session(self, user_id: str, email: str) -> Session:
        session = Session(
            user_id=user_id,
            email=email,
            access_token=secrets.token_urlsafe(32),
            expires_at=self.clock() + self.session_ttl,
        )
        await self.store.insert(SESSION_COLLECTION, session)
        log.info("Signed in %s", email)
        self._emit(SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthFailure(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
        email = (email or "").strip().lower()
        if await self.store.get_one(USER_COLLECTION, {"email": email}):
            raise AuthFailure("User already registered")
        try:
            user = User(
                email=email,
                password_hash=hash_password(password),
                verified=not self.require_confirmation,
                otp_code=f"{secrets.randbelow(10 ** 6):06d}" if self.require_confirmation else None,
                otp_expires_at=self.clock() + OTP_TTL_SECONDS if self.require_confirmation else None,
            )
        except ValidationError:
            raise AuthFailure("Invalid email address")
        try:
            doc = await self.store.insert(USER_COLLECTION, user)
        except Conflict:
            raise AuthFailure("User already registered")

        if self.require_confirmation:
            log.info("One-time code for %s: %s", email, user.otp_code)
            return SignUpResult(user_id=doc["id"])
        return SignUpResult(user_id=doc["id"], session=await self._open_session(doc["id"], email))

    async def sign_in(self, email: str, password: str) -> Session:
        email = (email or "").strip().lower()
        doc = await self.store.get_one(USER_COLLECTION, {"email": email})
        if not doc or not check_password(password or "", doc["password_hash"]):
            raise AuthFailure("Invalid login credentials")
        if not doc.get("verified", False):
            raise AuthFailure("Email not confirmed")
        return await self._open_session(doc["id"], email)

    async def verify_one_time_code(self, email: str, code: str) -> Session:
        email = (email or "").strip().lower()
        doc = await self.store.get_one(USER_COLLECTION, {"email": email})
        expected = (doc or {}).get("otp_code")
        if not expected:
            raise AuthFailure(INVALID_CODE)

        expires_at = doc.get("otp_expires_at")
        attempts = doc.get("otp_attempts", 0)
        if (expires_at is not None and expires_at <= self.clock()) or attempts >= MAX_OTP_ATTEMPTS:
            await self.store.update(USER_COLLECTION, doc["id"], {"otp_code": None, "otp_expires_at": None})
            log.warning("One-time code for %s voided", email)
            raise AuthFailure(INVALID_CODE)
        if not hmac.compare_digest(expected.encode(), (code or "").strip().encode()):
            await self.store.update(USER_COLLECTION, doc["id"], {"otp_attempts": attempts + 1})
            raise AuthFailure(INVALID_CODE)

        patch = {"verified": True, "otp_code": None, "otp_expires_at": None, "otp_attempts": 0}
        await self.store.update(USER_COLLECTION, doc["id"], patch)
        return await self._open_session(doc["id"], email)

    async def get_session(self, access_token: Optional[str]) -> Optional[Session]:
        if not access_token:
            return None
        doc = await self.store.get_one(SESSION_COLLECTION, {"access_token": access_token})
        if not doc:
            return None
        session = Session.model_validate(doc)
        if session.expires_at is not None and session.expires_at <= self.clock():
            await self.store.delete(SESSION_COLLECTION, doc["id"])
            log.info("Session of %s expired", session.email)
            return None
        return session

    async def sign_out(self, access_token: str):
        doc = await self.store.get_one(SESSION_COLLECTION, {"access_token": access_token})
        if not doc:
            return
        await self.store.delete(SESSION_COLLECTION, doc["id"])
        session = Session.model_validate(doc)
        log.info("Signed out %s", session.email)
        self._emit(SIGNED_OUT, session)
