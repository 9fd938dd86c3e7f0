"""SQLAlchemy database models for the database storage backend."""
from datetime import datetime, timezone
import sqlite3

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite connections for better concurrency."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA busy_timeout=15000;")
        cursor.close()


def utcnow():
    """Get current UTC time."""
    return datetime.now(timezone.utc)


class ContentRecord(db.Model):
    """One stored record of a content collection (vocabulary, idioms, news...)."""
    __tablename__ = 'content_records'

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(64), index=True, nullable=False)
    record_id = db.Column(db.String(64), index=True, nullable=True)
    date_added = db.Column(db.String(10), index=True, nullable=True)
    payload = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f'<ContentRecord {self.collection}:{self.record_id}>'

    def to_dict(self):
        """Return the stored record as a plain dict."""
        return dict(self.payload or {})
