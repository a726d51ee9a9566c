import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, TEXT, MongoClient
from pymongo.database import Database

from config import settings

logger = logging.getLogger(__name__)

ADMIN = "admin"
COURSE = "course"
TOPPER = "topper"
ACHIEVEMENT = "achievement"
GALLERY = "gallery"
HOME = "home"
CONTACT = "contact"

# MongoClient connects lazily, so importing this module never blocks on the server
client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=5000, tz_aware=True)
db = client[settings.DATABASE_NAME]


def get_db() -> Database:
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]], database: Optional[Database] = None) -> str:
    """Insert a document stamped with createdAt/updatedAt and return its id."""
    database = database if database is not None else db
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True, exclude_none=True)
    else:
        data_dict = dict(data)
    stamp = now()
    data_dict["createdAt"] = stamp
    data_dict["updatedAt"] = stamp
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def ensure_indexes(database: Database) -> None:
    database[ADMIN].create_index("email", unique=True)
    database[HOME].create_index("section", unique=True)
    database[HOME].create_index([("section", ASCENDING), ("isActive", ASCENDING), ("order", ASCENDING)])
    database[COURSE].create_index([("title", TEXT), ("description", TEXT), ("category", TEXT)])
    database[TOPPER].create_index([("year", DESCENDING), ("featured", DESCENDING)])
    database[ACHIEVEMENT].create_index([("date", DESCENDING), ("featured", DESCENDING), ("category", ASCENDING)])
    database[GALLERY].create_index([("category", ASCENDING), ("date", DESCENDING), ("featured", DESCENDING)])
    database[CONTACT].create_index([("createdAt", DESCENDING), ("status", ASCENDING), ("isRead", ASCENDING)])


def ping() -> None:
    """Raise if the server cannot be reached."""
    client.admin.command("ping")
    logger.info("MongoDB connected: %s", settings.DATABASE_NAME)
