"""Path resolution and the auth guard."""
import logging
import re
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from schemas import Session

log = logging.getLogger(__name__)

ROUTES = {
    "/": "landing",
    "/login": "auth",
    "/signup": "auth",
    "/onboarding": "onboarding",
    "/dashboard": "dashboard",
}
DEFAULT_VIEW = "landing"
GUEST_ONLY = ("/", "/login", "/signup")
SESSION_ONLY = ("/dashboard",)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
MAX_REDIRECTS = 5

AUTH_COPY = {
    "/signup": ("Create your account", "Create Account"),
    "/login": ("Welcome back", "Log in"),
}


# Top-level paths taken by the HTTP service itself.
SERVICE_PREFIXES = ("api", "auth", "storage", "test")


def reserved_usernames():
    """Names a profile can never be served under."""
    return {p.strip("/") for p in ROUTES if p != "/"} | set(SERVICE_PREFIXES)


class Resolution(BaseModel):
    kind: str  # "view" | "redirect" | "public"
    path: str
    view: Optional[str] = None
    redirect_to: Optional[str] = None
    username: Optional[str] = None
    title: Optional[str] = None
    submit_label: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.kind == "redirect"

    @property
    def is_public(self) -> bool:
        return self.kind == "public"


def public_username(path: str) -> Optional[str]:
    if path in ROUTES or len(path) <= 1 or not path.startswith("/"):
        return None
    candidate = path[1:]
    return candidate if USERNAME_RE.match(candidate) else None


def resolve(path: str, session: Optional[Session]) -> Resolution:
    username = public_username(path)
    if username:
        return Resolution(kind="public", path=path, username=username)

    if session is not None and path in GUEST_ONLY:
        return Resolution(kind="redirect", path=path, redirect_to="/dashboard")
    if session is None and path in SESSION_ONLY:
        return Resolution(kind="redirect", path=path, redirect_to="/login")

    view = ROUTES.get(path, DEFAULT_VIEW)
    res = Resolution(kind="view", path=path, view=view)
    if view == "auth":
        res.title, res.submit_label = AUTH_COPY.get(path, AUTH_COPY["/login"])
    return res


# Activation hook: returns a path to redirect to, or None to stay.
Hook = Callable[[], Awaitable[Optional[str]]]


class Navigator:
    def __init__(
        self,
        session_provider: Callable[[], Optional[Session]],
        on_dashboard: Optional[Hook] = None,
    ):
        self.session_provider = session_provider
        self.on_dashboard = on_dashboard
        self.current_path = "/"
        self.current: Optional[Resolution] = None

    async def navigate(self, path: str) -> Resolution:
        """Push `path` and resolve it, following redirects."""
        for _ in range(MAX_REDIRECTS + 1):
            self.current_path = path
            res = resolve(path, self.session_provider())
            if res.is_redirect:
                log.debug("Redirect %s -> %s", path, res.redirect_to)
                path = res.redirect_to
                continue
            target = await self._activate(res)
            if target is None or target == path:
                self.current = res
                return res
            path = target
        raise RuntimeError(f"Too many redirects while resolving {path}")

    async def _activate(self, res: Resolution) -> Optional[str]:
        if res.view == "dashboard" and self.on_dashboard is not None:
            return await self.on_dashboard()
        return None
