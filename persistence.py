import asyncio
import logging
from typing import Optional, Set, Tuple

from errors import RemoteFailure

log = logging.getLogger(__name__)

DEFAULT_DELAY = 1.0


class PersistenceGateway:
    """Coalesced and immediate writes; failures are reported, never raised."""

    def __init__(self, store, notifier=None, delay: float = DEFAULT_DELAY):
        self.store = store
        self.notifier = notifier
        self.delay = delay
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending: Optional[Tuple[str, str, dict]] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule(self, collection: str, doc_id: str, payload: dict):
        """(Re)start the quiet period; the payload replaces any pending one."""
        if self._timer is not None:
            self._timer.cancel()
        self._pending = (collection, doc_id, dict(payload))
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)

    def _fire(self):
        self._timer = None
        pending, self._pending = self._pending, None
        if pending is not None:
            self.submit(*pending)

    async def _guard(self, call, what: str) -> bool:
        try:
            await call
        except RemoteFailure as e:
            log.error("%s failed: %s", what, e.message)
            if self.notifier is not None:
                self.notifier.error(f"Could not save changes: {e.message}")
            return False
        log.debug("%s done", what)
        return True

    async def persist_now(self, collection: str, doc_id: str, patch: dict) -> bool:
        call = self.store.update(collection, doc_id, patch)
        return await self._guard(call, f"Saving {collection} {doc_id} {sorted(patch)}")

    async def delete_now(self, collection: str, doc_id: str) -> bool:
        return await self._guard(self.store.delete(collection, doc_id), f"Deleting {collection} {doc_id}")

    def submit(self, collection: str, doc_id: str, patch: dict) -> asyncio.Task:
        """Immediate write from synchronous code; tracked until it finishes."""
        task = asyncio.ensure_future(self.persist_now(collection, doc_id, dict(patch)))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def flush(self):
        """Fire the pending debounced write without waiting for the timer."""
        if self._timer is not None:
            self._timer.cancel()
        self._fire()

    async def drain(self):
        self.flush()
        while self._inflight:
            await asyncio.gather(*list(self._inflight))
