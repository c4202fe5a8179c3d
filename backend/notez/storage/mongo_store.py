"""MongoDB-backed notes collection.

Documents keep the camelCase field names (``ownerId``, ``ownerName`` ...) so an
existing ``NotesTable`` collection can be reused as is.
"""
import logging
from typing import Any, Optional

from pymongo import ASCENDING, IndexModel, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from notez.storage.errors import StoreUnavailable
from notez.storage.notes_store import Note, NotesStore, utc_now_iso

log = logging.getLogger(__name__)

COLLECTION_NAME = "NotesTable"


def _strip_object_id(raw: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if raw is None:
        return None
    return {k: v for k, v in raw.items() if k != "_id"}


class MongoNotesStore(NotesStore):
    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_indexes(self) -> None:
        try:
            self.collection.create_indexes([
                IndexModel([("id", ASCENDING)], name="note_id_unique", unique=True),
                IndexModel([("ownerId", ASCENDING)], name="owner_idx"),
            ])
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def find_by_owner(self, owner_id: str) -> list[Note]:
        try:
            cursor = self.collection.find({"ownerId": owner_id}).sort("title", ASCENDING)
            return [Note.from_document(_strip_object_id(raw)) for raw in cursor]
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def find_by_id(self, note_id: str) -> Optional[Note]:
        try:
            raw = self.collection.find_one({"id": note_id})
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return Note.from_document(_strip_object_id(raw)) if raw is not None else None

    def insert(self, note: Note) -> None:
        now = utc_now_iso()
        doc = note.to_document()
        doc["createdAt"] = doc["createdAt"] or now
        doc["updatedAt"] = doc["updatedAt"] or now
        try:
            self.collection.replace_one({"id": note.id}, doc, upsert=True)
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def _find_and_update(self, note_id: str, update: dict[str, Any]) -> Optional[Note]:
        try:
            raw = self.collection.find_one_and_update(
                {"id": note_id},
                update,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return Note.from_document(_strip_object_id(raw)) if raw is not None else None

    def update_by_id(self, note_id: str, title: str, content: str) -> Optional[Note]:
        return self._find_and_update(note_id, {
            "$set": {"title": title, "content": content, "public": False, "updatedAt": utc_now_iso()},
            "$inc": {"version": 1},
        })

    def set_public(self, note_id: str, public: bool) -> Optional[Note]:
        return self._find_and_update(note_id, {"$set": {"public": public, "updatedAt": utc_now_iso()}})

    def delete_by_id(self, note_id: str) -> None:
        try:
            self.collection.delete_one({"id": note_id})
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc


def open_mongo_store(url: str, database: str, timeout_ms: int) -> MongoNotesStore:
    client: MongoClient = MongoClient(
        url,
        serverSelectionTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
        socketTimeoutMS=timeout_ms,
    )
    store = MongoNotesStore(client[database][COLLECTION_NAME])
    try:
        store.ensure_indexes()
    except StoreUnavailable as exc:
        # the app still starts; requests answer 503 until the database is back
        log.warning("Could not create note indexes: %s", exc)
    log.info("Using MongoDB note store (database %s)", database)
    return store
