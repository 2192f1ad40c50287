"""Editing context of one signed-in user."""
import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Set

from errors import NotFound
from links import LinkCollection
from notifications import Notifier
from persistence import PersistenceGateway
from profile_store import ProfileStore
from renderer import active_links, render
from router import Navigator
from schemas import Session
from themes import DEFAULT_REGISTRY

log = logging.getLogger(__name__)


class EditorSession:
    def __init__(self, session: Session, store, storage, settings, registry=DEFAULT_REGISTRY):
        self.session = session
        self.registry = registry
        self.preview_html = ""
        self.loaded = False
        self.notifier = Notifier(ttl=settings.toast_seconds)
        self.gateway = PersistenceGateway(store, self.notifier, delay=settings.save_delay_seconds)
        common = dict(
            storage=storage,
            bucket=settings.storage_bucket,
            upload_limit=settings.upload_limit_bytes,
            notifier=self.notifier,
            on_change=self.refresh_preview,
        )
        self.profiles = ProfileStore(store, self.gateway, **common)
        self.links = LinkCollection(store, self.gateway, session.user_id, **common)

    @property
    def profile(self):
        return self.profiles.profile

    def refresh_preview(self):
        if self.profile is None:
            self.preview_html = ""
            return
        self.preview_html = render(self.profile, self.links.links, self.registry)

    async def check_profile(self) -> str:
        """Where a freshly signed-in user should land."""
        profile = await self.profiles.load(self.session.user_id)
        return "/dashboard" if profile is not None else "/onboarding"

    async def load_dashboard(self) -> Optional[str]:
        if self.profile is None and await self.check_profile() == "/onboarding":
            return "/onboarding"
        await self.links.load()
        self.loaded = True
        return None

    async def ensure_loaded(self):
        """Load profile and links once before the first API edit."""
        if not self.loaded and await self.load_dashboard() is not None:
            raise NotFound("Profile not found")

    async def onboard(self, username: str, display_name: str) -> str:
        await self.profiles.create_profile(self.session.user_id, username, display_name)
        return await self.check_profile()

    def navigator(self) -> Navigator:
        return Navigator(lambda: self.session, on_dashboard=self.load_dashboard)

    def snapshot(self) -> dict:
        numbers = {id(e.link): e.index for e in active_links(self.links.links)}
        return {
            "user": {"id": self.session.user_id, "email": self.session.email},
            "profile": self.profile.model_dump() if self.profile else None,
            "public_path": f"/{self.profile.username}" if self.profile else None,
            "links": [
                {**link.model_dump(), "display_index": numbers.get(id(link))}
                for link in self.links.links
            ],
        }

    async def close(self):
        await self.gateway.drain()


class EditorRegistry:
    """One EditorSession per signed-in user; editors idle for too long are closed."""

    def __init__(self, store, storage, settings, registry=DEFAULT_REGISTRY, clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.storage = storage
        self.settings = settings
        self.registry = registry
        self.clock = clock
        self.idle_seconds = settings.editor_idle_seconds
        self._editors: Dict[str, EditorSession] = {}
        self._last_used: Dict[str, float] = {}
        self._closing: Set[asyncio.Task] = set()

    def get(self, session: Session) -> EditorSession:
        now = self.clock()
        self.evict_idle(now, keep=session.user_id)
        editor = self._editors.get(session.user_id)
        if editor is None:
            editor = EditorSession(session, self.store, self.storage, self.settings, self.registry)
            self._editors[session.user_id] = editor
        self._last_used[session.user_id] = now
        return editor

    def __contains__(self, user_id) -> bool:
        return user_id in self._editors

    def __len__(self):
        return len(self._editors)

    def _close_later(self, user_id: str):
        self._last_used.pop(user_id, None)
        editor = self._editors.pop(user_id, None)
        if editor is None:
            return
        task = asyncio.ensure_future(self._close(user_id, editor))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    def evict_idle(self, now: Optional[float] = None, keep: Optional[str] = None):
        now = self.clock() if now is None else now
        for user_id, last_used in list(self._last_used.items()):
            if user_id != keep and now - last_used > self.idle_seconds:
                log.info("Editor for %s idle for %.0fs", user_id, now - last_used)
                self._close_later(user_id)

    async def _close(self, user_id: str, editor: EditorSession):
        await editor.close()
        log.info("Closed editor for %s", user_id)

    async def discard(self, user_id: str):
        self._last_used.pop(user_id, None)
        editor = self._editors.pop(user_id, None)
        if editor is not None:
            await self._close(user_id, editor)

    def on_session_change(self, event: str, session: Optional[Session]):
        if event == "SIGNED_OUT" and session is not None:
            self._close_later(session.user_id)

    async def settle(self):
        """Wait until every editor scheduled for closing has written its changes."""
        while self._closing:
            await asyncio.gather(*list(self._closing))

    async def close_all(self):
        for user_id in list(self._editors):
            await self.discard(user_id)
        await self.settle()
