import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson.objectid import ObjectId
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import Conflict, RemoteFailure

log = logging.getLogger(__name__)


def connect(database_url: Optional[str], database_name: str) -> Optional[Database]:
    if not database_url:
        return None
    client = MongoClient(database_url)
    return client[database_name]


def _oid(value):
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def to_public(doc: dict):
    if not doc:
        return doc
    doc = {**doc}
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def _to_query(filt: Optional[dict]) -> dict:
    query = dict(filt or {})
    if "id" in query:
        query["_id"] = _oid(query.pop("id"))
    return query


class DocumentStore:
    """Async CRUD over a pymongo Database; driver calls run in the threadpool."""

    def __init__(self, db: Database):
        self.db = db

    def ensure_indexes(self):
        self.db["profile"].create_index("username", unique=True)
        self.db["user"].create_index("email", unique=True)
        self.db["link"].create_index([("user_id", ASCENDING), ("order_index", ASCENDING)])

    async def _call(self, fn, *args):
        try:
            return await run_in_threadpool(fn, *args)
        except DuplicateKeyError as e:
            raise Conflict("Already exists") from e
        except PyMongoError as e:
            log.error("Document store call failed: %s", e)
            raise RemoteFailure(f"Database error: {str(e)[:80]}") from e

    def _find(self, collection: str, filt: Optional[dict], order_by: Optional[str]) -> List[dict]:
        cursor = self.db[collection].find(_to_query(filt))
        if order_by:
            cursor = cursor.sort([(order_by, ASCENDING), ("_id", ASCENDING)])
        return [to_public(d) for d in cursor]

    def _insert(self, collection: str, data: dict) -> dict:
        doc = dict(data)
        if doc.get("id") is not None:
            doc["_id"] = _oid(doc.pop("id"))
        else:
            doc.pop("id", None)
        now = datetime.now(timezone.utc)
        doc["created_at"] = now
        doc["updated_at"] = now
        result = self.db[collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return to_public(doc)

    def _update(self, collection: str, doc_id: str, patch: dict) -> int:
        update = {**patch, "updated_at": datetime.now(timezone.utc)}
        res = self.db[collection].update_one({"_id": _oid(doc_id)}, {"$set": update})
        return res.matched_count

    def _delete(self, collection: str, doc_id: str) -> int:
        res = self.db[collection].delete_one({"_id": _oid(doc_id)})
        return res.deleted_count

    async def get(self, collection: str, filt: Optional[dict] = None, order_by: Optional[str] = None) -> List[dict]:
        return await self._call(self._find, collection, filt, order_by)

    async def get_one(self, collection: str, filt: dict) -> Optional[dict]:
        docs = await self.get(collection, filt)
        return docs[0] if docs else None

    async def insert(self, collection: str, data: Union[BaseModel, Dict[str, Any]]) -> dict:
        if isinstance(data, BaseModel):
            data = data.model_dump()
        return await self._call(self._insert, collection, data)

    async def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> int:
        return await self._call(self._update, collection, doc_id, patch)

    async def delete(self, collection: str, doc_id: str) -> int:
        return await self._call(self._delete, collection, doc_id)

    def collection_names(self) -> List[str]:
        return self.db.list_collection_names()
