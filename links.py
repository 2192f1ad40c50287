import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from errors import NotFound, RemoteFailure, ValidationFailure
from schemas import Link
from storage import DEFAULT_UPLOAD_LIMIT, check_upload_size, file_extension

log = logging.getLogger(__name__)

LINK_COLLECTION = "link"
EDITABLE_FIELDS = ("title", "url", "is_enabled", "icon", "order_index")
SPINNER = '<i class="fa-solid fa-spinner fa-spin"></i>'


class Control:
    """A button whose content is swapped for a spinner while work is running."""

    def __init__(self, content: str):
        self.content = content

    @property
    def busy(self) -> bool:
        return self.content == SPINNER


@contextmanager
def busy(control: Optional[Control]):
    if control is None:
        yield None
        return
    original = control.content
    control.content = SPINNER
    try:
        yield control
    finally:
        control.content = original


# order_index is only a sort key; deletes do not renumber.
class LinkCollection:
    def __init__(
        self,
        store,
        gateway,
        user_id: str,
        storage=None,
        bucket: str = "avatars",
        upload_limit: int = DEFAULT_UPLOAD_LIMIT,
        notifier=None,
        on_change: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.gateway = gateway
        self.user_id = user_id
        self.storage = storage
        self.bucket = bucket
        self.upload_limit = upload_limit
        self.notifier = notifier
        self.on_change = on_change
        self.clock = clock
        self.links: List[Link] = []

    def _changed(self):
        if self.on_change is not None:
            self.on_change()

    def _error(self, message: str):
        if self.notifier is not None:
            self.notifier.error(message)

    def __len__(self):
        return len(self.links)

    def __iter__(self):
        return iter(self.links)

    def get(self, link_id: str) -> Link:
        for link in self.links:
            if link.id is not None and link.id == link_id:
                return link
        raise NotFound(f"Link {link_id} not found")

    async def load(self) -> List[Link]:
        docs = await self.store.get(LINK_COLLECTION, {"user_id": self.user_id}, order_by="order_index")
        self.links = [Link.model_validate(d) for d in docs]
        self._changed()
        return self.links

    async def add(self) -> Link:
        link = Link(user_id=self.user_id, title="New Link", url="", is_enabled=True, order_index=len(self.links))
        self.links.append(link)
        self._changed()
        try:
            doc = await self.store.insert(LINK_COLLECTION, link)
        except RemoteFailure as e:
            log.error("Inserting link for %s failed: %s", self.user_id, e.message)
            self._error(f"Could not save link: {e.message}")
            return link
        link.id = doc["id"]
        return link

    async def update_field(self, link_id: str, field: str, value: Any) -> Link:
        if field not in EDITABLE_FIELDS:
            raise ValidationFailure(f"Link field cannot be edited: {field}")
        link = self.get(link_id)
        try:
            checked = Link.model_validate({**link.model_dump(), field: value})
        except ValidationError as e:
            raise ValidationFailure(f"Invalid value for {field}") from e
        value = getattr(checked, field)
        setattr(link, field, value)
        self._changed()
        await self.gateway.persist_now(LINK_COLLECTION, link_id, {field: value})
        return link

    async def remove(self, link_id: str, confirmed: bool = False) -> bool:
        """Delete after explicit confirmation; returns False when not confirmed."""
        if not confirmed:
            return False
        link = self.get(link_id)
        self.links.remove(link)
        self._changed()
        await self.gateway.delete_now(LINK_COLLECTION, link_id)
        return True

    async def upload_image(
        self,
        link_id: str,
        data: bytes,
        filename: str,
        size_limit: Optional[int] = None,
        control: Optional[Control] = None,
    ) -> Link:
        link = self.get(link_id)
        try:
            check_upload_size(data, size_limit or self.upload_limit)
        except ValidationFailure as e:
            self._error(e.message)
            raise

        with busy(control):
            path = f"{self.user_id}/links/{link_id}_{int(self.clock() * 1000)}.{file_extension(filename)}"
            try:
                await self.storage.upload(self.bucket, path, data, overwrite=True)
            except RemoteFailure:
                self._error("Upload failed")
                raise
            link.image_url = self.storage.get_public_url(self.bucket, path)
            self._changed()
            await self.gateway.persist_now(LINK_COLLECTION, link_id, {"image_url": link.image_url})
        if self.notifier is not None:
            self.notifier.notify("Link image updated")
        return link
