import json
import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Type

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, Request, UploadFile
from pydantic import BaseModel, ValidationError
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from pymongo.collection import Collection
from pymongo.database import Database
from starlette.datastructures import UploadFile as StarletteUploadFile

from auth import AdminContext
from database import CONTACT, now
from errors import ValidationFailed, envelope, not_found, server_errors
from media import MediaHost, discard, store_upload
from schemas import ContactStatus

logger = logging.getLogger(__name__)

MANAGED_FIELDS = ("_id", "id", "__v", "createdAt", "updatedAt")


# -------------------- Helpers -------------------- #

def serialize_doc(doc: Any) -> Any:
    if isinstance(doc, dict):
        d = {}
        for k, v in doc.items():
            if k == "__v":
                continue
            if k == "_id":
                d["id"] = str(v)
            else:
                d[k] = serialize_doc(v)
        return d
    if isinstance(doc, list):
        return [serialize_doc(v) for v in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, (datetime, date)):
        return doc.isoformat()
    return doc


def serialize_list(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_doc(d) for d in docs]


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def paginate(collection: Collection, query: Dict[str, Any], sort: List[Tuple[str, int]],
             page: int, limit: int) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    cursor = collection.find(query, {"__v": 0}).sort(sort).skip((page - 1) * limit).limit(limit)
    items = list(cursor)
    total = collection.count_documents(query)
    return items, {"current": page, "pages": math.ceil(total / limit), "total": total}


async def read_payload(request: Request, file_field: Optional[str] = None) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Read a JSON or form body into a dict, splitting off the attached image if any."""
    content_type = request.headers.get("content-type", "")
    data: Dict[str, Any] = {}
    upload = None
    if content_type.startswith("multipart/form-data") or content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, StarletteUploadFile):
                if key == file_field and value.filename:
                    upload = value
                continue
            # Browsers submit untouched inputs as empty strings
            if value == "":
                continue
            if key in data:
                existing = data[key]
                data[key] = existing + [value] if isinstance(existing, list) else [existing, value]
            else:
                data[key] = value
        return data, upload

    body = await request.body()
    if not body:
        return data, None
    try:
        parsed = json.loads(body)
    except ValueError:
        raise ValidationFailed.for_field("body", "Request body must be valid JSON")
    if not isinstance(parsed, dict):
        raise ValidationFailed.for_field("body", "Request body must be a JSON object")
    return parsed, None


def parse_structured_fields(data: Dict[str, Any], fields: Dict[str, type]) -> Dict[str, Any]:
    """Decode list/object fields that arrive as JSON text in multipart submissions.

    Malformed text falls back to an empty value of the expected type.
    """
    for name, kind in fields.items():
        value = data.get(name)
        if not isinstance(value, str):
            continue
        try:
            parsed = json.loads(value)
        except ValueError:
            parsed = None
        if not isinstance(parsed, kind):
            logger.warning("Malformed %s field %r, using empty default", name, value[:80])
            parsed = kind()
        data[name] = parsed
    return data


def dump_fields(model: BaseModel, only_set: bool = False) -> Dict[str, Any]:
    """Dump a validated model under its wire names, optionally only the fields the caller supplied."""
    full = model.model_dump(by_alias=True)
    if not only_set:
        return {k: v for k, v in full.items() if v is not None}
    fields = type(model).model_fields
    return {fields[name].alias or name: full[fields[name].alias or name] for name in model.model_fields_set}


# -------------------- Resource controller -------------------- #

class ResourceController:
    """CRUD over one collection: list/get/create/update/delete with image handling."""

    # Insert errors the subclass recovers from instead of reporting a 500
    insert_passthrough: Tuple[Type[Exception], ...] = ()

    def __init__(self, collection: str, model: Type[BaseModel], name: str, plural: str,
                 sort: List[Tuple[str, int]], image_field: Optional[str] = "image",
                 image_required: bool = True, image_message: Optional[str] = None,
                 structured_fields: Optional[Dict[str, type]] = None, plural_label: Optional[str] = None):
        self.collection = collection
        self.model = model
        self.name = name
        self.plural = plural
        self.sort = sort
        self.image_field = image_field
        self.image_required = image_required
        self.image_message = image_message or f"{name} image is required"
        self.structured_fields = structured_fields or {}
        self.plural_label = plural_label or plural

    @property
    def label(self) -> str:
        return self.name.lower()

    def _filter(self, key: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(key)
        return {"_id": oid} if oid is not None else None

    def find(self, database: Database, key: str) -> Optional[Dict[str, Any]]:
        flt = self._filter(key)
        if flt is None:
            return None
        return database[self.collection].find_one(flt, {"__v": 0})

    def validate(self, data: Dict[str, Any]) -> BaseModel:
        data = parse_structured_fields(dict(data), self.structured_fields)
        for managed in MANAGED_FIELDS:
            data.pop(managed, None)
        try:
            return self.model.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailed.from_pydantic(exc)

    def list(self, database: Database, query: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        with server_errors(f"fetching {self.plural_label}"):
            items, pagination = paginate(database[self.collection], query, self.sort, page, limit)
        return envelope(True, data={self.plural: serialize_list(items), "pagination": pagination})

    def get(self, database: Database, key: str) -> Dict[str, Any]:
        with server_errors(f"fetching {self.label}"):
            doc = self.find(database, key)
        if not doc:
            raise not_found(self.name)
        return envelope(True, data=serialize_doc(doc))

    def create(self, database: Database, media: MediaHost, data: Dict[str, Any],
               upload: Optional[UploadFile] = None, actor: Optional[AdminContext] = None) -> Dict[str, Any]:
        model = self.validate(data)
        values = dump_fields(model)
        if self.image_field and self.image_required and upload is None and not values.get(self.image_field):
            raise ValidationFailed.for_field(self.image_field, self.image_message)

        with server_errors(f"creating {self.label}", passthrough=self.insert_passthrough):
            if upload is not None:
                values[self.image_field] = store_upload(media, upload, self.image_field)
            stamp = now()
            values["createdAt"] = stamp
            values["updatedAt"] = stamp
            try:
                result = database[self.collection].insert_one(values)
            except PyMongoError:
                if upload is not None:
                    discard(media, values[self.image_field])
                raise
            doc = database[self.collection].find_one({"_id": result.inserted_id}, {"__v": 0})
        _audit("created", self.name, doc, actor)
        return envelope(True, message=f"{self.name} created successfully", data=serialize_doc(doc))

    def update(self, database: Database, media: MediaHost, key: str, data: Dict[str, Any],
               upload: Optional[UploadFile] = None, actor: Optional[AdminContext] = None) -> Dict[str, Any]:
        with server_errors(f"fetching {self.label}"):
            existing = self.find(database, key)
        if not existing:
            raise not_found(self.name)
        return self._apply_update(database, media, existing, data, upload, actor)

    def _apply_update(self, database: Database, media: MediaHost, existing: Dict[str, Any],
                      data: Dict[str, Any], upload: Optional[UploadFile],
                      actor: Optional[AdminContext]) -> Dict[str, Any]:
        model = self.validate(data)
        values = dump_fields(model, only_set=True)

        with server_errors(f"updating {self.label}"):
            if upload is not None:
                values[self.image_field] = store_upload(media, upload, self.image_field)
                discard(media, existing.get(self.image_field))
            values["updatedAt"] = now()
            doc = database[self.collection].find_one_and_update(
                {"_id": existing["_id"]},
                {"$set": values},
                projection={"__v": 0},
                return_document=ReturnDocument.AFTER,
            )
        _audit("updated", self.name, doc, actor)
        return envelope(True, message=f"{self.name} updated successfully", data=serialize_doc(doc))

    def delete(self, database: Database, media: Optional[MediaHost], key: str,
               actor: Optional[AdminContext] = None) -> Dict[str, Any]:
        with server_errors(f"fetching {self.label}"):
            existing = self.find(database, key)
        if not existing:
            raise not_found(self.name)

        with server_errors(f"deleting {self.label}"):
            if self.image_field:
                discard(media, existing.get(self.image_field))
            database[self.collection].delete_one({"_id": existing["_id"]})
        _audit("deleted", self.name, existing, actor)
        return envelope(True, message=f"{self.name} deleted successfully")


class HomeController(ResourceController):
    """Home sections are addressed by their unique section name instead of an id."""

    insert_passthrough = (DuplicateKeyError,)

    def _filter(self, key: str) -> Optional[Dict[str, Any]]:
        return {"section": key}

    def upsert(self, database: Database, media: MediaHost, data: Dict[str, Any],
               upload: Optional[UploadFile] = None,
               actor: Optional[AdminContext] = None) -> Tuple[bool, Dict[str, Any]]:
        """Create the section, or update it in place when it already exists.

        Returns (created, envelope).
        """
        section = data.get("section")
        existing = None
        if isinstance(section, str):
            with server_errors(f"creating {self.label}"):
                existing = self.find(database, section)
        if existing:
            return False, self._apply_update(database, media, existing, data, upload, actor)
        try:
            return True, super().create(database, media, data, upload, actor)
        except DuplicateKeyError:
            # Another request created the section between the lookup and the insert
            with server_errors(f"updating {self.label}"):
                existing = self.find(database, section)
            if not existing:
                raise HTTPException(status_code=500, detail=f"Server error while creating {self.label}")
            return False, self._apply_update(database, media, existing, data, upload, actor)

    def create(self, database: Database, media: MediaHost, data: Dict[str, Any],
               upload: Optional[UploadFile] = None, actor: Optional[AdminContext] = None) -> Dict[str, Any]:
        return self.upsert(database, media, data, upload, actor)[1]

    def update(self, database: Database, media: MediaHost, key: str, data: Dict[str, Any],
               upload: Optional[UploadFile] = None, actor: Optional[AdminContext] = None) -> Dict[str, Any]:
        data = dict(data)
        # The path names the section; the body cannot move it
        data["section"] = key
        return super().update(database, media, key, data, upload, actor)


class ContactController(ResourceController):
    def __init__(self, model: Type[BaseModel], update_model: Type[BaseModel]):
        super().__init__(CONTACT, model, "Contact", "contacts", sort=[("createdAt", DESCENDING)],
                         image_field=None, image_required=False)
        self.update_model = update_model

    def create(self, database: Database, media: Optional[MediaHost], data: Dict[str, Any],
               upload: Optional[UploadFile] = None, actor: Optional[AdminContext] = None) -> Dict[str, Any]:
        model = self.validate(data)
        values = dump_fields(model)
        # Workflow fields are set by admins, not by the public form
        values.update(status=ContactStatus.new.value, isRead=False)
        values.pop("adminNotes", None)

        with server_errors("submitting contact form"):
            stamp = now()
            values["createdAt"] = stamp
            values["updatedAt"] = stamp
            result = database[self.collection].insert_one(values)
            doc = database[self.collection].find_one({"_id": result.inserted_id})
        return envelope(
            True,
            message="Contact form submitted successfully. We will get back to you soon!",
            data=serialize_doc(doc),
        )

    def get(self, database: Database, key: str) -> Dict[str, Any]:
        with server_errors("fetching contact"):
            doc = self.find(database, key)
            if doc and not doc.get("isRead"):
                stamp = now()
                database[self.collection].update_one(
                    {"_id": doc["_id"]}, {"$set": {"isRead": True, "updatedAt": stamp}}
                )
                doc["isRead"] = True
                doc["updatedAt"] = stamp
        if not doc:
            raise not_found(self.name)
        return envelope(True, data=serialize_doc(doc))

    def update(self, database: Database, media: Optional[MediaHost], key: str, data: Dict[str, Any],
               upload: Optional[UploadFile] = None, actor: Optional[AdminContext] = None) -> Dict[str, Any]:
        with server_errors("fetching contact"):
            existing = self.find(database, key)
        if not existing:
            raise not_found(self.name)
        try:
            model = self.update_model.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailed.from_pydantic(exc)
        values = dump_fields(model, only_set=True)

        with server_errors("updating contact"):
            values["updatedAt"] = now()
            doc = database[self.collection].find_one_and_update(
                {"_id": existing["_id"]},
                {"$set": values},
                return_document=ReturnDocument.AFTER,
            )
        _audit("updated", self.name, doc, actor)
        return envelope(True, message="Contact updated successfully", data=serialize_doc(doc))

    def stats(self, database: Database) -> Dict[str, Any]:
        with server_errors("fetching contact stats"):
            collection = database[self.collection]
            grouped = collection.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}])
            status_stats = sorted(
                ({"status": row["_id"], "count": row["count"]} for row in grouped),
                key=lambda row: str(row["status"]),
            )
            total = collection.count_documents({})
            unread = collection.count_documents({"isRead": False})
        return envelope(True, data={
            "statusStats": status_stats,
            "totalContacts": total,
            "unreadContacts": unread,
        })


def _audit(action: str, name: str, doc: Optional[Dict[str, Any]], actor: Optional[AdminContext]):
    if actor is None or not doc:
        return
    logger.info("%s %s %s by %s", name, doc.get("_id"), action, actor.email)
