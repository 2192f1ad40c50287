import logging
from pathlib import Path
from urllib.parse import quote

from fastapi.concurrency import run_in_threadpool

from errors import RemoteFailure, ValidationFailure

log = logging.getLogger(__name__)

MOUNT_PATH = "/storage"
DEFAULT_UPLOAD_LIMIT = 2 * 1024 * 1024


def check_upload_size(data: bytes, limit: int = DEFAULT_UPLOAD_LIMIT):
    if len(data) > limit:
        raise ValidationFailure(f"Image too large (max {limit / (1024 * 1024):g}MB)")


def file_extension(filename: str) -> str:
    if filename and "." in filename:
        return filename.rsplit(".", 1)[-1].lower()
    return "bin"


class ObjectStorage:
    def __init__(self, root, public_base_url: str = ""):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _target(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base != target and base not in target.parents:
            raise RemoteFailure(f"Invalid object path: {path}")
        return target

    def _write(self, target: Path, data: bytes, overwrite: bool):
        if target.exists() and not overwrite:
            raise RemoteFailure("The resource already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def upload(self, bucket: str, path: str, data: bytes, overwrite: bool = False):
        target = self._target(bucket, path)
        try:
            await run_in_threadpool(self._write, target, data, overwrite)
        except OSError as e:
            log.error("Upload of %s/%s failed: %s", bucket, path, e)
            raise RemoteFailure("Upload failed") from e
        log.info("Stored %s/%s (%d bytes)", bucket, path, len(data))

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}{MOUNT_PATH}/{quote(bucket)}/{quote(path)}"
