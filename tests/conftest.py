import asyncio

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import DocumentStore
from errors import RemoteFailure
from notifications import Notifier
from schemas import Session

MB = 1024 * 1024


def run(coro):
    return asyncio.run(coro)


class RecordingStore(DocumentStore):
    """Real DocumentStore over mongomock that also records writes."""

    def __init__(self, db):
        super().__init__(db)
        self.updates = []
        self.deletes = []
        self.fail_writes = False

    async def update(self, collection, doc_id, patch):
        if self.fail_writes:
            raise RemoteFailure("store offline")
        self.updates.append((collection, doc_id, dict(patch)))
        return await super().update(collection, doc_id, patch)

    async def delete(self, collection, doc_id):
        if self.fail_writes:
            raise RemoteFailure("store offline")
        self.deletes.append((collection, doc_id))
        return await super().delete(collection, doc_id)

    async def insert(self, collection, data):
        if self.fail_writes:
            raise RemoteFailure("store offline")
        return await super().insert(collection, data)


class SpyStorage:
    def __init__(self, fail=False, control=None):
        self.fail = fail
        self.control = control
        self.uploads = []
        self.busy_during_upload = None

    async def upload(self, bucket, path, data, overwrite=False):
        if self.control is not None:
            self.busy_during_upload = self.control.busy
        if self.fail:
            raise RemoteFailure("Upload failed")
        self.uploads.append((bucket, path, len(data), overwrite))

    def get_public_url(self, bucket, path):
        return f"https://cdn.test/{bucket}/{path}"


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["biolink_test"]


@pytest.fixture
def store(mongo_db):
    return RecordingStore(mongo_db)


@pytest.fixture
def notifier():
    return Notifier(ttl=60)


@pytest.fixture
def session():
    return Session(user_id="u1", email="alice@biolink.io", access_token="token-1")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        storage_dir=str(tmp_path / "uploads"),
        save_delay_seconds=0.05,
        toast_seconds=60,
    )


@pytest.fixture
def client(settings, mongo_db):
    from main import create_app

    app = create_app(settings, database=mongo_db)
    with TestClient(app) as c:
        yield c
