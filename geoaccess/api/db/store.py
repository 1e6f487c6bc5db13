"""
Record Store

Keyed-collection persistence used by every component of the engine.

The store is the single source of truth. All access is serialized by a
re-entrant lock so read-modify-write sequences in the services can hold
it across several calls and readers always see a consistent snapshot.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from geoaccess.api.db.models import StoredRecord
from geoaccess.core.constants import (
    ACCESS_REQUESTS,
    AUDIT_ENTRIES,
    TEMPORARY_GRANTS,
    ZONE_ASSIGNMENTS,
    ZONES,
)
from geoaccess.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


# Field holding each collection's key
KEY_FIELDS: Dict[str, str] = {
    ZONES: "id",
    ZONE_ASSIGNMENTS: "user_id",
    TEMPORARY_GRANTS: "id",
    ACCESS_REQUESTS: "id",
    AUDIT_ENTRIES: "id",
}


def record_key(collection: str, record: Record) -> str:
    """Extract the key of a record."""
    field = KEY_FIELDS.get(collection, "id")
    try:
        return str(record[field])
    except KeyError:
        raise PersistenceError(
            f"Record in '{collection}' has no '{field}' key",
            collection=collection,
        )


class RecordStore(ABC):
    """
    Abstract keyed-collection store.

    Records are plain JSON-compatible dicts. ``load_all`` returns records
    in insertion order (oldest first); updating a record keeps its
    position.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator["RecordStore"]:
        """Hold the store lock across several operations."""
        with self._lock:
            yield self

    @abstractmethod
    def load_all(self, collection: str) -> List[Record]:
        """Load every record of a collection."""

    @abstractmethod
    def save_all(self, collection: str, records: Iterable[Record]) -> None:
        """Replace a whole collection."""

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[Record]:
        """Get one record by key."""

    @abstractmethod
    def upsert(self, collection: str, record: Record) -> None:
        """Insert or replace one record."""

    @abstractmethod
    def delete(self, collection: str, key: str) -> bool:
        """Delete one record. Returns False if it did not exist."""

    @abstractmethod
    def count(self, collection: str) -> int:
        """Number of records in a collection."""

    @abstractmethod
    def trim(self, collection: str, keep: int) -> int:
        """Evict the oldest records beyond ``keep``. Returns evicted count."""


class InMemoryRecordStore(RecordStore):
    """Dict-backed store; records are copied in and out."""

    def __init__(self):
        super().__init__()
        self._collections: Dict[str, Dict[str, Record]] = {}

    def _collection(self, collection: str) -> Dict[str, Record]:
        return self._collections.setdefault(collection, {})

    def load_all(self, collection: str) -> List[Record]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._collection(collection).values()]

    def save_all(self, collection: str, records: Iterable[Record]) -> None:
        with self._lock:
            replaced: Dict[str, Record] = {}
            for record in records:
                replaced[record_key(collection, record)] = copy.deepcopy(record)
            self._collections[collection] = replaced

    def get(self, collection: str, key: str) -> Optional[Record]:
        with self._lock:
            record = self._collection(collection).get(key)
            return copy.deepcopy(record) if record is not None else None

    def upsert(self, collection: str, record: Record) -> None:
        with self._lock:
            self._collection(collection)[record_key(collection, record)] = copy.deepcopy(record)

    def delete(self, collection: str, key: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(key, None) is not None

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collection(collection))

    def trim(self, collection: str, keep: int) -> int:
        with self._lock:
            records = self._collection(collection)
            excess = len(records) - keep
            if excess <= 0:
                return 0
            for key in list(records.keys())[:excess]:
                del records[key]
            return excess


class SqlRecordStore(RecordStore):
    """
    SQLAlchemy-backed store.

    Each call runs in its own transaction; SQLAlchemy errors are raised
    as PersistenceError.
    """

    def __init__(self, session_factory: sessionmaker):
        super().__init__()
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self, collection: str):
        with self._lock:
            try:
                with self._session_factory() as session:
                    with session.begin():
                        yield session
            except SQLAlchemyError as e:
                logger.error(f"Record store failure on '{collection}': {e}")
                raise PersistenceError(
                    f"Store operation on '{collection}' failed: {e}",
                    collection=collection,
                ) from e

    def _find(self, session, collection: str, key: str) -> Optional[StoredRecord]:
        return session.execute(
            select(StoredRecord).where(
                StoredRecord.collection == collection,
                StoredRecord.record_key == key,
            )
        ).scalar_one_or_none()

    def load_all(self, collection: str) -> List[Record]:
        with self._transaction(collection) as session:
            rows = session.execute(
                select(StoredRecord.payload)
                .where(StoredRecord.collection == collection)
                .order_by(StoredRecord.seq)
            ).scalars().all()
            return [dict(payload) for payload in rows]

    def save_all(self, collection: str, records: Iterable[Record]) -> None:
        with self._transaction(collection) as session:
            session.execute(
                delete(StoredRecord).where(StoredRecord.collection == collection)
            )
            for record in records:
                session.add(
                    StoredRecord(
                        collection=collection,
                        record_key=record_key(collection, record),
                        payload=dict(record),
                    )
                )

    def get(self, collection: str, key: str) -> Optional[Record]:
        with self._transaction(collection) as session:
            row = self._find(session, collection, key)
            return dict(row.payload) if row else None

    def upsert(self, collection: str, record: Record) -> None:
        key = record_key(collection, record)
        with self._transaction(collection) as session:
            row = self._find(session, collection, key)
            if row is None:
                session.add(
                    StoredRecord(collection=collection, record_key=key, payload=dict(record))
                )
            else:
                row.payload = dict(record)

    def delete(self, collection: str, key: str) -> bool:
        with self._transaction(collection) as session:
            result = session.execute(
                delete(StoredRecord).where(
                    StoredRecord.collection == collection,
                    StoredRecord.record_key == key,
                )
            )
            return result.rowcount > 0

    def count(self, collection: str) -> int:
        with self._transaction(collection) as session:
            return session.scalar(
                select(func.count(StoredRecord.seq)).where(
                    StoredRecord.collection == collection
                )
            ) or 0

    def trim(self, collection: str, keep: int) -> int:
        with self._transaction(collection) as session:
            stale = session.execute(
                select(StoredRecord.seq)
                .where(StoredRecord.collection == collection)
                .order_by(StoredRecord.seq.desc())
                .offset(keep)
            ).scalars().all()
            if not stale:
                return 0
            session.execute(delete(StoredRecord).where(StoredRecord.seq.in_(stale)))
            return len(stale)
