"""Date-partitioned record storage with interchangeable backends.

Every collection is a flat list of JSON-compatible dicts. Three backends are
available and exactly one is active per application, chosen by the
``STORAGE_BACKEND`` config value:

* ``file``     -- one JSON array per collection under ``DATA_DIR``
* ``memory``   -- lists held in the process, lost on restart
* ``database`` -- rows of :class:`~app.cgl_prep.models.ContentRecord`
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app

from ..models import ContentRecord, db
from ..utils import merge_updates, today_string

VOCABULARY = "vocabulary.json"
IDIOMS = "idioms.json"
GK_QUESTIONS = "gk-questions.json"
NEWS = "news.json"
GK_FACTS = "gk-facts.json"
PRACTICE_SESSIONS = "practice-sessions.json"
USER_PROGRESS = "user-progress.json"
USER_STATS = "user-stats.json"

COLLECTIONS = (
    VOCABULARY,
    IDIOMS,
    GK_QUESTIONS,
    NEWS,
    GK_FACTS,
    PRACTICE_SESSIONS,
    USER_PROGRESS,
    USER_STATS,
)

_EXTENSION_KEY = "cgl_storage"


def _date_key(record: Dict[str, Any]) -> Optional[str]:
    """Calendar date of a record; practice sessions carry a full timestamp in 'date'."""
    value = record.get("dateAdded") or record.get("date")
    return str(value)[:10] if value else None


class ContentStore:
    """Common record operations built on ``all`` and ``save_all``."""

    name = "base"

    def all(self, collection: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def save_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    def add(self, collection: str, records: Iterable[Dict[str, Any]]) -> None:
        self.save_all(collection, self.all(collection) + list(records))

    def todays(self, collection: str, field: str = "dateAdded") -> List[Dict[str, Any]]:
        today = today_string()
        return [record for record in self.all(collection) if record.get(field) == today]

    def find(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self.all(collection):
            if record.get("id") == record_id:
                return record
        return None

    def update(self, collection: str, record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge updates into the record with this id and persist; None if unknown."""
        records = self.all(collection)
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                records[index] = merge_updates(record, updates)
                self.save_all(collection, records)
                return records[index]
        return None

    def clear(self, collection: str) -> None:
        self.save_all(collection, [])


class JSONFileStorage(ContentStore):
    """Collections as pretty-printed JSON arrays, rewritten wholesale on save."""

    name = "file"

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def _path(self, collection: str) -> Path:
        return self.data_dir / collection

    def all(self, collection: str) -> List[Dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            current_app.logger.error("Error reading %s: %s", path, exc)
            return []
        return payload if isinstance(payload, list) else []

    def save_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        path = self._path(collection)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as handle:
                json.dump(list(records), handle, indent=2, ensure_ascii=False)
        except OSError as exc:
            current_app.logger.error("Error writing %s: %s", path, exc)
            raise


class MemoryStorage(ContentStore):
    """Collections held in the running process."""

    name = "memory"

    def __init__(self):
        self._collections: Dict[str, List[Dict[str, Any]]] = {}

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return [dict(record) for record in self._collections.get(collection, [])]

    def save_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._collections[collection] = [dict(record) for record in records]

    def add(self, collection: str, records: Iterable[Dict[str, Any]]) -> None:
        self._collections.setdefault(collection, []).extend(dict(record) for record in records)


class DatabaseStorage(ContentStore):
    """Collections stored as JSON payload rows through Flask-SQLAlchemy."""

    name = "database"

    def __init__(self):
        self._tables_ready = False

    def _ensure_tables(self) -> None:
        if not self._tables_ready:
            db.create_all()
            self._tables_ready = True

    @staticmethod
    def _row(collection: str, record: Dict[str, Any]) -> ContentRecord:
        return ContentRecord(
            collection=collection,
            record_id=record.get("id"),
            date_added=_date_key(record),
            payload=dict(record),
        )

    def all(self, collection: str) -> List[Dict[str, Any]]:
        self._ensure_tables()
        rows = ContentRecord.query.filter_by(collection=collection).order_by(ContentRecord.id).all()
        return [row.to_dict() for row in rows]

    def save_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._ensure_tables()
        try:
            ContentRecord.query.filter_by(collection=collection).delete()
            db.session.add_all([self._row(collection, record) for record in records])
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def add(self, collection: str, records: Iterable[Dict[str, Any]]) -> None:
        self._ensure_tables()
        try:
            db.session.add_all([self._row(collection, record) for record in records])
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def todays(self, collection: str, field: str = "dateAdded") -> List[Dict[str, Any]]:
        if field not in ("dateAdded", "date"):
            return super().todays(collection, field)
        self._ensure_tables()
        rows = (
            ContentRecord.query.filter_by(collection=collection, date_added=today_string())
            .order_by(ContentRecord.id)
            .all()
        )
        return [row.to_dict() for row in rows]

    def find(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        self._ensure_tables()
        row = ContentRecord.query.filter_by(collection=collection, record_id=record_id).first()
        return row.to_dict() if row else None

    def update(self, collection: str, record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._ensure_tables()
        row = ContentRecord.query.filter_by(collection=collection, record_id=record_id).first()
        if row is None:
            return None
        merged = merge_updates(row.to_dict(), updates)
        try:
            # Assign a new dict so the JSON column change is detected
            row.payload = merged
            row.date_added = _date_key(merged)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return merged


def create_storage(backend: str, data_dir: Optional[str] = None) -> ContentStore:
    """Build the storage backend with the given name."""
    if backend == "file":
        if not data_dir:
            raise ValueError("The file storage backend needs DATA_DIR")
        return JSONFileStorage(data_dir)
    if backend == "memory":
        return MemoryStorage()
    if backend == "database":
        return DatabaseStorage()
    raise ValueError(f"Unknown storage backend: {backend!r}")


def get_storage() -> ContentStore:
    """Return the application's storage backend, creating it on first use."""
    store = current_app.extensions.get(_EXTENSION_KEY)
    if store is None:
        backend = current_app.config.get("STORAGE_BACKEND", "file")
        store = create_storage(backend, current_app.config.get("DATA_DIR"))
        current_app.extensions[_EXTENSION_KEY] = store
        current_app.logger.info("Using %s storage backend", store.name)
    return store


def reset_storage() -> None:
    """Drop the cached backend so the next call rebuilds it from config."""
    current_app.extensions.pop(_EXTENSION_KEY, None)
