"""
MongoDB access for the donation platform.

The client is created once at startup by ``init_db`` and closed by
``close_db`` at shutdown. Handlers reach collections through
``get_collection`` so a missing connection surfaces as a ``StoreError``
instead of an ``AttributeError`` on ``None``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings
from errors import StoreError

logger = logging.getLogger(__name__)

USERS = "users"
DONATIONS = "donations"
TOP_DONORS = "topDonors"
COMMENTS = "comments"
VOLUNTEERS = "volunteers"

client: Optional[MongoClient] = None
db: Optional[Database] = None


def init_db(mongo_client: Optional[MongoClient] = None) -> Database:
    """Connect to MongoDB (or adopt ``mongo_client``) and ensure indexes."""
    global client, db
    if mongo_client is None:
        mongo_client = MongoClient(settings.database_url)
    client = mongo_client
    db = client[settings.database_name]
    ensure_indexes()
    logger.info("Connected to MongoDB database %r", settings.database_name)
    return db


def close_db() -> None:
    global client, db
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
    client = None
    db = None


def ensure_indexes() -> None:
    # Email uniqueness is enforced by the store, not by a find-then-insert.
    get_collection(USERS).create_index([("email", ASCENDING)], unique=True)


def get_collection(name: str):
    if db is None:
        raise StoreError("Database is not initialised")
    return db[name]


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document and return its id as a string.

    A ``timestamp`` is added when the document does not carry one.
    """
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True)
    else:
        doc = dict(data)
    if doc.get("timestamp") is None:
        doc["timestamp"] = datetime.now(timezone.utc)
    result = get_collection(collection_name).insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
