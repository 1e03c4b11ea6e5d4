"""
Rollback, status and cleanup of migration batches.

Rolling back deletes the content rows created by a batch and flags the
batch and its records ``rolled_back``; the ledger itself is kept.  Media
files imported into Directus are never deleted.  The two clean commands
are the only operations that erase ledger rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from wp_directus.content_store import DELETE_ORDER
from wp_directus.tracking.models import BatchStatus
from wp_directus.tracking.store import MEDIA_TABLE
from wp_directus.utils.errors import report_error

logger = logging.getLogger(__name__)


@dataclass
class RollbackResult:
    batch_id: Optional[int]
    rolled_back: bool = False
    deleted: Dict[str, int] = field(default_factory=dict)
    skipped_media: int = 0
    errors: Dict[str, str] = field(default_factory=dict)
    message: str = ""

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())


class BatchManager:
    def __init__(self, tracker, content_store):
        self.tracker = tracker
        self.content_store = content_store

    def rollback_batch(self, batch_id: Optional[int] = None, tables: Optional[Iterable[str]] = None) -> RollbackResult:
        """
        Undo the content writes of a completed batch.

        Args:
            batch_id: Batch to roll back; defaults to the most recently
                completed one.
            tables: Restrict the rollback to these content tables.  Records
                of other tables keep their ``success`` status and the batch
                stays open for a later rollback of those tables.

        Returns:
            RollbackResult: ``rolled_back`` is ``False`` when there was
            nothing to do (no such batch, or the batch is not completed).
        """
        if batch_id is None:
            latest = self.tracker.latest_completed_batch()
            if latest is None:
                logger.warning("No completed batch to rollback")
                return RollbackResult(None, message="No completed batch to rollback")
            batch_id = latest.id

        batch = self.tracker.get_batch(batch_id)
        if batch is None:
            logger.error("Batch #%s not found", batch_id)
            return RollbackResult(batch_id, message=f"Batch #{batch_id} not found")
        partially_rolled_back = (
            batch.status == BatchStatus.ROLLED_BACK.value and self.tracker.has_content_to_roll_back(batch_id)
        )
        if batch.status != BatchStatus.COMPLETED.value and not partially_rolled_back:
            message = f"Batch #{batch_id} ({batch.batch_name}) is not completed (status: {batch.status})"
            logger.warning(message)
            return RollbackResult(batch_id, message=message)

        selected = list(tables) if tables is not None else list(DELETE_ORDER)
        logger.info("Rolling back batch #%s: %s", batch_id, batch.batch_name)
        records = self.tracker.success_records_by_table(batch_id)
        result = RollbackResult(batch_id)

        media = records.get(MEDIA_TABLE, [])
        if media:
            result.skipped_media = len(media)
            logger.info("Skipping %s %s (media files preserved)", len(media), MEDIA_TABLE)

        for table_name in DELETE_ORDER:
            if table_name not in selected or not records.get(table_name):
                continue
            rows = records[table_name]
            logger.info("Rolling back %s records from %s...", len(rows), table_name)
            try:
                ids = [int(row["new_id"]) for row in rows if row["new_id"] is not None]
                deleted = self.content_store.delete_rows(table_name, ids)
            except (SQLAlchemyError, ValueError) as e:
                result.errors[table_name] = str(e)
                logger.error("Failed to delete from %s: %s", table_name, e)
                report_error("ROLLBACK_TABLE", {"table": table_name, "old_id": batch_id}, e)
                continue
            result.deleted[table_name] = deleted
            logger.info("Deleted %s records from %s", deleted, table_name)

        self.tracker.mark_rolled_back(batch_id, tables=selected if tables is not None else None)
        result.rolled_back = True
        result.message = f"Batch #{batch_id} rolled back"
        if tables is not None:
            result.message += f" ({', '.join(selected)})"
        logger.info("Batch #%s rolled back. Total deleted: %s, failed tables: %s",
                    batch_id, result.total_deleted, len(result.errors))
        return result

    def status(self, limit: int = 10) -> Dict[str, Any]:
        """Recent batches, the latest batch per table, and overall counts."""
        batches = self.tracker.batch_summaries(limit)
        latest: List[Dict[str, Any]] = []
        if batches:
            latest = self.tracker.table_summary(batches[0]["id"])
        return {
            "batches": batches,
            "latest_batch": latest,
            "overall": self.tracker.table_summary(),
        }

    def clean_migrated(self) -> Dict[str, int]:
        """Delete every content row the ledger knows about, then the ledger."""
        logger.warning("This will DELETE all migrated data from the database!")
        deleted: Dict[str, int] = {}
        for table_name in DELETE_ORDER:
            new_ids = self.tracker.success_new_ids(table_name)
            if not new_ids:
                continue
            logger.info("Cleaning %s...", table_name)
            try:
                deleted[table_name] = self.content_store.delete_rows(table_name, [int(i) for i in new_ids])
            except (SQLAlchemyError, ValueError) as e:
                logger.warning("Could not clean %s: %s", table_name, e)
                continue
            logger.info("Deleted %s rows from %s", deleted[table_name], table_name)
        self.tracker.clear()
        logger.info("All migrated data has been cleaned (%s preserved)", MEDIA_TABLE)
        return deleted

    def clean_all(self) -> Dict[str, int]:
        """Empty the seven content tables and the ledger."""
        logger.warning("This will DELETE ALL posts, tags and collections!")
        deleted: Dict[str, int] = {}
        for table_name in DELETE_ORDER:
            deleted[table_name] = self.content_store.clear_table(table_name)
            logger.info("Deleted %s rows from %s", deleted[table_name], table_name)
        self.tracker.clear()
        logger.info("All data has been cleaned (%s preserved). Ready for fresh migration.", MEDIA_TABLE)
        return deleted
