import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from notez.storage.errors import StoreUnavailable

log = logging.getLogger(__name__)

# what a readable file that is not a note document raises in Note.from_document
_BAD_DOCUMENT = (ValueError, KeyError, TypeError)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)


@dataclass(frozen=True)
class Note:
    id: str
    title: str
    content: str
    owner_id: str
    owner_name: str
    public: bool = False
    created_at: str = ""
    updated_at: str = ""
    version: int = 1

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "public": self.public,
            "ownerId": self.owner_id,
            "ownerName": self.owner_name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "version": self.version,
        }

    @classmethod
    def from_document(cls, raw: dict[str, Any]) -> "Note":
        return cls(
            id=raw["id"],
            title=raw.get("title") or "",
            content=raw.get("content") or "",
            public=bool(raw.get("public", False)),
            owner_id=raw.get("ownerId") or "",
            owner_name=raw.get("ownerName") or "",
            created_at=raw.get("createdAt") or "",
            updated_at=raw.get("updatedAt") or "",
            version=int(raw.get("version", 1)),
        )


class NotesStore(ABC):
    """Everything the request handlers need from a notes collection."""

    @abstractmethod
    def find_by_owner(self, owner_id: str) -> list[Note]:
        ...

    @abstractmethod
    def find_by_id(self, note_id: str) -> Optional[Note]:
        ...

    @abstractmethod
    def insert(self, note: Note) -> None:
        """Store a new note; a note already stored under the same id is replaced."""

    @abstractmethod
    def update_by_id(self, note_id: str, title: str, content: str) -> Optional[Note]:
        """Overwrite title and content and force the note private.

        Returns None when no note has that id.
        """

    @abstractmethod
    def set_public(self, note_id: str, public: bool) -> Optional[Note]:
        ...

    @abstractmethod
    def delete_by_id(self, note_id: str) -> None:
        """Remove the note if present. Unknown ids are ignored."""


class JsonNotesStore(NotesStore):
    """One JSON document per note under ``<base_dir>/notes``."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self._lock = threading.Lock()

    @property
    def notes_dir(self) -> Path:
        return self.base_dir / "notes"

    def _note_path(self, note_id: str) -> Path:
        # owner ids come from OAuth providers; quote anything path-like
        return self.notes_dir / f"{quote(note_id, safe='')}.json"

    def _read(self, path: Path) -> Optional[Note]:
        if not path.exists():
            return None
        return Note.from_document(json.loads(path.read_text(encoding="utf-8")))

    def find_by_owner(self, owner_id: str) -> list[Note]:
        if not self.notes_dir.exists():
            return []
        out: list[Note] = []
        try:
            paths = sorted(self.notes_dir.glob("*.json"))
            for p in paths:
                try:
                    note = self._read(p)
                except _BAD_DOCUMENT as exc:
                    log.warning("Skipping unreadable note document %s: %s", p.name, exc)
                    continue
                if note is not None and note.owner_id == owner_id:
                    out.append(note)
        except OSError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return sorted(out, key=lambda n: n.title.lower())

    def find_by_id(self, note_id: str) -> Optional[Note]:
        try:
            return self._read(self._note_path(note_id))
        except (OSError, *_BAD_DOCUMENT) as exc:
            raise StoreUnavailable(str(exc)) from exc

    def insert(self, note: Note) -> None:
        now = utc_now_iso()
        note = replace(note, created_at=note.created_at or now, updated_at=note.updated_at or now)
        with self._lock:
            try:
                _atomic_write_json(self._note_path(note.id), note.to_document())
            except OSError as exc:
                raise StoreUnavailable(str(exc)) from exc

    def _modify(self, note_id: str, bump_version: bool = False, **changes: Any) -> Optional[Note]:
        path = self._note_path(note_id)
        with self._lock:
            try:
                existing = self._read(path)
                if existing is None:
                    return None
                if bump_version:
                    changes["version"] = existing.version + 1
                updated = replace(existing, updated_at=utc_now_iso(), **changes)
                _atomic_write_json(path, updated.to_document())
            except (OSError, *_BAD_DOCUMENT) as exc:
                raise StoreUnavailable(str(exc)) from exc
        return updated

    def update_by_id(self, note_id: str, title: str, content: str) -> Optional[Note]:
        return self._modify(note_id, bump_version=True, title=title, content=content, public=False)

    def set_public(self, note_id: str, public: bool) -> Optional[Note]:
        return self._modify(note_id, public=public)

    def delete_by_id(self, note_id: str) -> None:
        with self._lock:
            try:
                self._note_path(note_id).unlink(missing_ok=True)
            except OSError as exc:
                raise StoreUnavailable(str(exc)) from exc
