import logging
import time
from typing import Callable, Optional, Tuple, List

from errors import Conflict, NotFound, RemoteFailure, ValidationFailure
from links import LINK_COLLECTION
from router import USERNAME_RE, reserved_usernames
from schemas import Link, Profile, SOCIAL_PLATFORMS
from storage import DEFAULT_UPLOAD_LIMIT, check_upload_size, file_extension

log = logging.getLogger(__name__)

PROFILE_COLLECTION = "profile"

# Typed into text inputs; coalesced by the gateway.
DEBOUNCED_FIELDS = ("display_name", "bio") + tuple(f"social_{p}" for p in SOCIAL_PLATFORMS)
# Discrete actions; persisted as soon as they happen.
IMMEDIATE_FIELDS = ("avatar_url", "theme_id", "button_color", "button_text_color")
EDITABLE_FIELDS = DEBOUNCED_FIELDS + IMMEDIATE_FIELDS

COLOR_KINDS = {"bg": "button_color", "text": "button_text_color"}


async def fetch_page_document(store, username: str) -> Optional[Tuple[Profile, List[Link]]]:
    """Profile and links behind a public `/<username>` page, or None."""
    doc = await store.get_one(PROFILE_COLLECTION, {"username": username})
    if not doc:
        return None
    profile = Profile.model_validate(doc)
    docs = await store.get(LINK_COLLECTION, {"user_id": profile.id}, order_by="order_index")
    return profile, [Link.model_validate(d) for d in docs]


class ProfileStore:
    def __init__(
        self,
        store,
        gateway,
        storage=None,
        bucket: str = "avatars",
        upload_limit: int = DEFAULT_UPLOAD_LIMIT,
        notifier=None,
        on_change: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.gateway = gateway
        self.storage = storage
        self.bucket = bucket
        self.upload_limit = upload_limit
        self.notifier = notifier
        self.on_change = on_change
        self.clock = clock
        self.profile: Optional[Profile] = None

    def _changed(self):
        if self.on_change is not None:
            self.on_change()

    def _require(self) -> Profile:
        if self.profile is None:
            raise NotFound("No profile loaded")
        return self.profile

    async def load(self, user_id: str) -> Optional[Profile]:
        """None means the user has not been through onboarding yet."""
        doc = await self.store.get_one(PROFILE_COLLECTION, {"id": user_id})
        self.profile = Profile.model_validate(doc) if doc else None
        if self.profile is not None:
            self._changed()
        return self.profile

    async def create_profile(self, user_id: str, username: str, display_name: str) -> Profile:
        if not USERNAME_RE.match(username or ""):
            raise ValidationFailure("Username may only contain letters, numbers, _ and -")
        if username.lower() in reserved_usernames():
            raise Conflict(f"'{username}' is reserved")
        if await self.store.get_one(PROFILE_COLLECTION, {"username": username}):
            raise Conflict("Username already taken")
        profile = Profile(id=user_id, username=username, display_name=display_name, theme_id="default")
        try:
            await self.store.insert(PROFILE_COLLECTION, profile)
        except Conflict:
            raise Conflict("Username already taken")
        log.info("Created profile @%s for %s", username, user_id)
        self.profile = profile
        self._changed()
        return profile

    def apply_patch(self, fields: dict) -> Profile:
        profile = self._require()
        unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationFailure(f"Fields cannot be edited: {', '.join(unknown)}")
        for name, value in fields.items():
            setattr(profile, name, value)
        self._changed()

        if any(name in DEBOUNCED_FIELDS for name in fields):
            snapshot = {name: getattr(profile, name) for name in DEBOUNCED_FIELDS}
            self.gateway.schedule(PROFILE_COLLECTION, profile.id, snapshot)
        immediate = {k: v for k, v in fields.items() if k not in DEBOUNCED_FIELDS}
        if immediate:
            self.gateway.submit(PROFILE_COLLECTION, profile.id, immediate)
        return profile

    async def _set(self, **fields) -> Profile:
        profile = self._require()
        for name, value in fields.items():
            setattr(profile, name, value)
        self._changed()
        await self.gateway.persist_now(PROFILE_COLLECTION, profile.id, fields)
        return profile

    async def set_theme(self, theme_id: str) -> Profile:
        return await self._set(theme_id=theme_id)

    async def set_button_colors(self, button_color: Optional[str], button_text_color: Optional[str]) -> Profile:
        return await self._set(button_color=button_color, button_text_color=button_text_color)

    async def reset_button_color(self, kind: str) -> Profile:
        if kind not in COLOR_KINDS:
            raise ValidationFailure(f"Unknown color kind: {kind}")
        profile = self._require()
        setattr(profile, COLOR_KINDS[kind], None)
        return await self._set(button_color=profile.button_color, button_text_color=profile.button_text_color)

    async def upload_avatar(self, data: bytes, filename: str) -> Profile:
        profile = self._require()
        try:
            check_upload_size(data, self.upload_limit)
        except ValidationFailure as e:
            if self.notifier is not None:
                self.notifier.error(e.message)
            raise

        path = f"{profile.id}/{int(self.clock() * 1000)}.{file_extension(filename)}"
        if self.notifier is not None:
            self.notifier.info("Uploading image...")
        try:
            await self.storage.upload(self.bucket, path, data, overwrite=True)
        except RemoteFailure as e:
            if self.notifier is not None:
                self.notifier.error(e.message or "Upload failed")
            raise
        public_url = self.storage.get_public_url(self.bucket, path)

        await self._set(avatar_url=public_url)
        if self.notifier is not None:
            self.notifier.notify("Image updated successfully")
        return profile
