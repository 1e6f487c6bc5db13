"""Database module."""

from geoaccess.api.db.models import Base, StoredRecord
from geoaccess.api.db.session import create_db_engine, create_session_factory, init_db, close_db
from geoaccess.api.db.store import RecordStore, InMemoryRecordStore, SqlRecordStore

__all__ = [
    "Base",
    "StoredRecord",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "close_db",
    "RecordStore",
    "InMemoryRecordStore",
    "SqlRecordStore",
]
