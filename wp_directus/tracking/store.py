"""
Transactional ledger of migration batches and per-entity outcomes.

Every write commits on its own, so a run interrupted at any point leaves
the ledger describing exactly the entities whose side effects completed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from wp_directus.db import upsert_insert
from wp_directus.tracking.models import (
    Base,
    BatchStatus,
    MigrationBatch,
    MigrationRecord,
    RecordStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

# Imported files stay in Directus; a rollback never deletes them.
MEDIA_TABLE = "directus_files"


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, (BatchStatus, RecordStatus)) else str(status)


class MigrationTracker:
    """Read/write access to ``migration_batch`` and ``migration_data``."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def init_schema(self) -> None:
        """Create the ledger tables and indexes when they do not exist."""
        Base.metadata.create_all(self.engine)

    # --- batches ---

    def create_batch(self, name: str, description: str = "") -> int:
        now = utcnow()
        batch = MigrationBatch(
            batch_name=name,
            description=description,
            status=BatchStatus.RUNNING.value,
            started_at=now,
            batch_metadata={"started": now.isoformat()},
        )
        with self._sessions.begin() as session:
            session.add(batch)
            session.flush()
            batch_id = batch.id
        logger.info("Created migration batch %s (%s)", batch_id, name)
        return batch_id

    def complete_batch(
        self,
        batch_id: int,
        status: Any = BatchStatus.COMPLETED,
        error_message: Optional[str] = None,
    ) -> None:
        with self._sessions.begin() as session:
            session.execute(
                update(MigrationBatch)
                .where(MigrationBatch.id == batch_id)
                .values(status=_status_value(status), completed_at=utcnow(), error_message=error_message)
            )

    def get_batch(self, batch_id: int) -> Optional[MigrationBatch]:
        with self._sessions() as session:
            return session.get(MigrationBatch, batch_id)

    def latest_completed_batch(self) -> Optional[MigrationBatch]:
        with self._sessions() as session:
            return session.scalars(
                select(MigrationBatch)
                .where(MigrationBatch.status == BatchStatus.COMPLETED.value)
                .order_by(MigrationBatch.completed_at.desc(), MigrationBatch.id.desc())
                .limit(1)
            ).first()

    # --- records ---

    def upsert_record(
        self,
        batch_id: int,
        table_name: str,
        old_id: Any,
        new_id: Any,
        status: Any,
        source_data: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Insert or overwrite the record keyed by ``(table_name, old_id,
        batch_id)`` with a single conflict-resolving statement.
        """
        now = utcnow()
        table = MigrationRecord.__table__
        stmt = upsert_insert(self.engine.dialect.name, table).values(
            batch_id=batch_id,
            table_name=table_name,
            old_id=str(old_id),
            new_id=None if new_id is None else str(new_id),
            status=_status_value(status),
            error_message=error_message,
            source_data=source_data,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.table_name, table.c.old_id, table.c.batch_id],
            set_={
                "new_id": stmt.excluded.new_id,
                "status": stmt.excluded.status,
                "error_message": stmt.excluded.error_message,
                "source_data": stmt.excluded.source_data,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def is_already_migrated(self, table_name: str, old_id: Any) -> bool:
        """True when any batch holds a ``success`` record for the entity."""
        with self._sessions() as session:
            found = session.scalar(
                select(MigrationRecord.id)
                .where(
                    MigrationRecord.table_name == table_name,
                    MigrationRecord.old_id == str(old_id),
                    MigrationRecord.status == RecordStatus.SUCCESS.value,
                )
                .limit(1)
            )
        return found is not None

    def get_migrated_id(self, table_name: str, old_id: Any) -> Optional[str]:
        """``new_id`` of the most recently created ``success`` record."""
        with self._sessions() as session:
            return session.scalar(
                select(MigrationRecord.new_id)
                .where(
                    MigrationRecord.table_name == table_name,
                    MigrationRecord.old_id == str(old_id),
                    MigrationRecord.status == RecordStatus.SUCCESS.value,
                )
                .order_by(MigrationRecord.created_at.desc(), MigrationRecord.id.desc())
                .limit(1)
            )

    def success_records_by_table(self, batch_id: int) -> Dict[str, List[Dict[str, Any]]]:
        """``success`` records of one batch, grouped by destination table."""
        grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        with self._sessions() as session:
            rows = session.execute(
                select(MigrationRecord.table_name, MigrationRecord.old_id, MigrationRecord.new_id)
                .where(
                    MigrationRecord.batch_id == batch_id,
                    MigrationRecord.status == RecordStatus.SUCCESS.value,
                )
                .order_by(MigrationRecord.id)
            ).all()
        for table_name, old_id, new_id in rows:
            grouped[table_name].append({"old_id": old_id, "new_id": new_id})
        return dict(grouped)

    def success_new_ids(self, table_name: str) -> List[str]:
        """Distinct ``new_id`` values of every ``success`` record of a table."""
        with self._sessions() as session:
            return list(
                session.scalars(
                    select(MigrationRecord.new_id)
                    .where(
                        MigrationRecord.table_name == table_name,
                        MigrationRecord.status == RecordStatus.SUCCESS.value,
                        MigrationRecord.new_id.is_not(None),
                    )
                    .distinct()
                )
            )

    def _content_success_count(self, session, batch_id: int) -> int:
        return session.scalar(
            select(func.count(MigrationRecord.id)).where(
                MigrationRecord.batch_id == batch_id,
                MigrationRecord.status == RecordStatus.SUCCESS.value,
                MigrationRecord.table_name != MEDIA_TABLE,
            )
        ) or 0

    def has_content_to_roll_back(self, batch_id: int) -> bool:
        """True while the batch still owns ``success`` records outside the media table."""
        with self._sessions() as session:
            return self._content_success_count(session, batch_id) > 0

    def mark_rolled_back(self, batch_id: int, tables: Optional[Iterable[str]] = None) -> int:
        """
        Flag the batch ``rolled_back`` along with its ``success`` records
        (only those of ``tables`` when given).  Records of other tables stay
        ``success``, which keeps them available to a later rollback, see
        :meth:`has_content_to_roll_back`.  Returns the number of records
        flagged.
        """
        with self._sessions.begin() as session:
            session.execute(
                update(MigrationBatch)
                .where(MigrationBatch.id == batch_id)
                .values(status=BatchStatus.ROLLED_BACK.value, completed_at=utcnow())
            )
            stmt = (
                update(MigrationRecord)
                .where(
                    MigrationRecord.batch_id == batch_id,
                    MigrationRecord.status == RecordStatus.SUCCESS.value,
                )
                .values(status=RecordStatus.ROLLED_BACK.value, updated_at=utcnow())
            )
            if tables is not None:
                stmt = stmt.where(MigrationRecord.table_name.in_(list(tables)))
            result = session.execute(stmt)
        return result.rowcount or 0

    # --- reporting ---

    def batch_summaries(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent batches with their record counts."""
        success = func.sum(case((MigrationRecord.status == RecordStatus.SUCCESS.value, 1), else_=0))
        failed = func.sum(case((MigrationRecord.status == RecordStatus.FAILED.value, 1), else_=0))
        with self._sessions() as session:
            rows = session.execute(
                select(
                    MigrationBatch,
                    func.count(MigrationRecord.id),
                    success,
                    failed,
                )
                .outerjoin(MigrationRecord, MigrationRecord.batch_id == MigrationBatch.id)
                .group_by(MigrationBatch.id)
                .order_by(MigrationBatch.started_at.desc(), MigrationBatch.id.desc())
                .limit(limit)
            ).all()
        return [
            {
                "id": batch.id,
                "batch_name": batch.batch_name,
                "status": batch.status,
                "started_at": batch.started_at,
                "completed_at": batch.completed_at,
                "error_message": batch.error_message,
                "total_records": total or 0,
                "success_count": ok or 0,
                "failed_count": ko or 0,
            }
            for batch, total, ok, ko in rows
        ]

    def table_summary(self, batch_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Record counts per ``(table_name, status)``."""
        stmt = select(
            MigrationRecord.table_name,
            MigrationRecord.status,
            func.count(MigrationRecord.id),
        ).group_by(MigrationRecord.table_name, MigrationRecord.status)
        if batch_id is not None:
            stmt = stmt.where(MigrationRecord.batch_id == batch_id)
        stmt = stmt.order_by(MigrationRecord.table_name, MigrationRecord.status)
        with self._sessions() as session:
            rows = session.execute(stmt).all()
        return [{"table_name": t, "status": s, "count": c} for t, s, c in rows]

    def clear(self) -> None:
        """Erase the whole ledger."""
        with self._sessions.begin() as session:
            session.execute(delete(MigrationRecord))
            session.execute(delete(MigrationBatch))
        logger.info("Cleared migration tracking tables")
