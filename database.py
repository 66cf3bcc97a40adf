"""
MongoDB access for the Shop API.

``Database`` wraps a ``pymongo`` database handle.  Writes take the
Pydantic records from ``schemas`` and are validated before they reach
the driver; reads return plain documents that ``serialize_doc`` turns
into JSON-ready dicts.  Driver errors are translated into the error
types from ``errors`` so handlers never see ``pymongo`` exceptions.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database as MongoDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import Conflict, InternalFailure, InvalidArgument, NotFound

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError as exc:
        raise Conflict("Duplicate record") from exc
    except PyMongoError as exc:
        logger.error("MongoDB %s failed: %s", action, exc)
        raise InternalFailure() from exc


def _serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            # pymongo returns naive UTC datetimes unless tz_aware is set
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[Document]) -> Optional[Document]:
    if not doc:
        return doc
    out = {}
    for key, value in doc.items():
        if key == "_id":
            out["id"] = _serialize_value(value)
        else:
            out[key] = _serialize_value(value)
    return out


def to_object_id(value: Any) -> ObjectId:
    """Parse an identifier, raising ``InvalidArgument`` if it is malformed."""
    if value is None:
        # ObjectId(None) would mint a fresh id
        raise InvalidArgument()
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise InvalidArgument() from exc


class Database:
    def __init__(self, db: MongoDatabase):
        self.db = db

    @classmethod
    def connect(cls, uri: str, name: str) -> "Database":
        # MongoClient connects lazily; failures surface on first use.
        client = MongoClient(uri, tz_aware=True)
        logger.info("Using MongoDB database %r", name)
        return cls(client[name])

    def ensure_indexes(self) -> None:
        with _store_errors("index creation"):
            self.db["user"].create_index([("email", ASCENDING)], unique=True)
        logger.info("MongoDB indexes ensured")

    def create_document(self, collection_name: str, data: Union[BaseModel, Document]) -> Document:
        if isinstance(data, BaseModel):
            doc = data.model_dump(by_alias=True)
        else:
            doc = dict(data)
        with _store_errors(f"insert into {collection_name}"):
            result = self.db[collection_name].insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def get_documents(
        self,
        collection_name: str,
        filter_dict: Optional[Document] = None,
        limit: Optional[int] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
    ) -> Iterator[Document]:
        """Yield matching documents lazily; the iterator can be consumed once."""
        with _store_errors(f"query on {collection_name}"):
            cursor = self.db[collection_name].find(filter_dict or {})
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            for doc in cursor:
                yield doc

    def get_document(self, collection_name: str, document_id: Any) -> Document:
        oid = to_object_id(document_id)
        doc = self.find_document(collection_name, {"_id": oid})
        if doc is None:
            raise NotFound()
        return doc

    def find_document(self, collection_name: str, filter_dict: Document) -> Optional[Document]:
        with _store_errors(f"lookup on {collection_name}"):
            return self.db[collection_name].find_one(filter_dict)

    def collection_names(self) -> List[str]:
        with _store_errors("listing collections"):
            return self.db.list_collection_names()


def get_database(request: Request) -> Database:
    return request.app.state.database
