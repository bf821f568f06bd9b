"""
Database Helpers

MongoDB connection and the small persistence port used by the API handlers.
Connection settings come from the environment (or a local .env file):
- DATABASE_URL: MongoDB connection string
- DATABASE_NAME: database to use
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.errors import PyMongoError

load_dotenv()

logger = logging.getLogger(__name__)

_client = None
db = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]

# collection -> unique business keys
UNIQUE_KEYS: Dict[str, List[str]] = {
    "user": ["email"],
    "game": ["gameId"],
    "league": ["league_id"],
    "league_member": ["league_member_id"],
    "season": ["seasonId"],
}

# unique only when the field is present
SPARSE_UNIQUE_KEYS: Dict[str, List[str]] = {
    "user": ["playerId"],
}


class DatabaseUnavailable(PyMongoError):
    """Raised when no database is configured."""


def get_db():
    if db is None:
        raise DatabaseUnavailable("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db


def ensure_indexes() -> None:
    """Create the unique indexes the collections rely on."""
    database = get_db()
    for collection_name, keys in UNIQUE_KEYS.items():
        for key in keys:
            database[collection_name].create_index(key, unique=True)
    for collection_name, keys in SPARSE_UNIQUE_KEYS.items():
        for key in keys:
            database[collection_name].create_index(key, unique=True, sparse=True)
    logger.info("Indexes ensured on %d collections", len(UNIQUE_KEYS))


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for value, or None when it isn't one."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


# ---------------------- Persistence port ----------------------

def find_all(collection_name: str) -> List[Dict[str, Any]]:
    return list(get_db()[collection_name].find({}))


def find_by_id(collection_name: str, doc_id: Any) -> Optional[Dict[str, Any]]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    return get_db()[collection_name].find_one({"_id": oid})


def find_one(collection_name: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return get_db()[collection_name].find_one(filter_dict)


def insert(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert a new document and return it as stored."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    collection = get_db()[collection_name]
    result = collection.insert_one(data_dict)
    logger.debug("Inserted %s into %s", result.inserted_id, collection_name)
    return collection.find_one({"_id": result.inserted_id})


def save(collection_name: str, doc: Dict[str, Any]) -> Dict[str, Any]:
    """Write back an already-loaded document, replacing it by _id."""
    collection = get_db()[collection_name]
    collection.replace_one({"_id": doc["_id"]}, doc, upsert=True)
    return collection.find_one({"_id": doc["_id"]})


def delete_one(collection_name: str, doc_id: ObjectId) -> int:
    result = get_db()[collection_name].delete_one({"_id": doc_id})
    return result.deleted_count


def delete_many(collection_name: str, filter_dict: Dict[str, Any]) -> int:
    result = get_db()[collection_name].delete_many(filter_dict)
    logger.info("Deleted %d documents from %s", result.deleted_count, collection_name)
    return result.deleted_count


# ---------------------- Lookup ----------------------

FOUND = "found"
NOT_FOUND = "not_found"
ERROR = "error"


@dataclass
class Lookup:
    """Outcome of resolving a path identifier to a stored document."""

    status: str
    doc: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == FOUND


def load_by_key(collection_name: str, key: str, value: Any) -> Lookup:
    """Resolve value against key ("_id" or a business key) in a collection."""
    try:
        if key == "_id":
            doc = find_by_id(collection_name, value)
        else:
            doc = find_one(collection_name, {key: value})
    except PyMongoError as e:
        logger.error("Lookup of %s=%r in %s failed: %s", key, value, collection_name, e)
        return Lookup(status=ERROR, message=str(e))
    if doc is None:
        return Lookup(status=NOT_FOUND)
    return Lookup(status=FOUND, doc=doc)
