"""
SQLAlchemy ORM Models

Keyed-collection storage for the authorization engine. Every logical
collection (zones, zone_assignments, temporary_grants, access_requests,
audit_entries) shares one table; the primary key doubles as the
insertion sequence used for ordering and FIFO eviction.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from geoaccess.core.clock import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class StoredRecord(Base):
    """One record of one logical collection."""

    __tablename__ = "stored_records"
    __table_args__ = (
        UniqueConstraint("collection", "record_key", name="uq_collection_record_key"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    record_key: Mapped[str] = mapped_column(String(128), nullable=False)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<StoredRecord {self.collection}/{self.record_key}>"
