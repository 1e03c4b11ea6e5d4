"""
Migration ledger: batches, per-entity records, rollback and cleanup.
"""

from .models import BatchStatus, MigrationBatch, MigrationRecord, RecordStatus
from .store import MigrationTracker

__all__ = ["BatchStatus", "MigrationBatch", "MigrationRecord", "MigrationTracker", "RecordStatus"]
