"""
ORM entities of the migration ledger.

``migration_batch`` holds one row per run; ``migration_data`` one row per
entity processed in that run.  Rows are identified by the destination
table name and the WordPress-side id (``old_id``), unique per batch.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BatchStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class RecordStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class Base(DeclarativeBase):
    pass


class MigrationBatch(Base):
    """One migration run."""

    __tablename__ = "migration_batch"
    __table_args__ = (Index("idx_migration_batch_status", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BatchStatus.RUNNING.value)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    batch_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSONType, nullable=True)

    records: Mapped[list["MigrationRecord"]] = relationship(back_populates="batch")

    def __repr__(self) -> str:
        return f"<MigrationBatch id={self.id} name={self.batch_name!r} status={self.status}>"


class MigrationRecord(Base):
    """Outcome of one entity inside a batch."""

    __tablename__ = "migration_data"
    __table_args__ = (
        UniqueConstraint("table_name", "old_id", "batch_id", name="uq_migration_data_table_old_batch"),
        Index("idx_migration_data_table_old", "table_name", "old_id"),
        Index("idx_migration_data_batch", "batch_id"),
        Index("idx_migration_data_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("migration_batch.id"), nullable=False)
    table_name: Mapped[str] = mapped_column(String(100), nullable=False)
    old_id: Mapped[str] = mapped_column(String(1024), nullable=False)
    new_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=RecordStatus.PENDING.value)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    batch: Mapped[MigrationBatch] = relationship(back_populates="records")

    def __repr__(self) -> str:
        return (
            f"<MigrationRecord {self.table_name}:{self.old_id} -> {self.new_id} "
            f"status={self.status} batch={self.batch_id}>"
        )
