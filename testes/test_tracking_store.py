import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from sqlalchemy import func, select

from wp_directus.tracking.models import BatchStatus, MigrationRecord, RecordStatus


def count_records(tracker):
    with tracker.engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(MigrationRecord.__table__)).scalar_one()


def test_create_and_complete_batch(tracker):
    batch_id = tracker.create_batch("migration_2024-01-01", "Test migration (limit: 5)")
    batch = tracker.get_batch(batch_id)
    assert batch.status == "running"
    assert batch.description == "Test migration (limit: 5)"
    assert "started" in batch.batch_metadata

    tracker.complete_batch(batch_id, BatchStatus.FAILED, "boom")
    batch = tracker.get_batch(batch_id)
    assert batch.status == "failed"
    assert batch.error_message == "boom"
    assert batch.completed_at is not None
    assert tracker.get_batch(999) is None


def test_upsert_is_idempotent_per_key_and_last_write_wins(tracker):
    batch_id = tracker.create_batch("b")
    tracker.upsert_record(batch_id, "post", 10, None, RecordStatus.FAILED, {"ID": 10}, "db down")
    tracker.upsert_record(batch_id, "post", "10", 10, RecordStatus.SUCCESS, {"ID": 10})

    assert count_records(tracker) == 1
    assert tracker.is_already_migrated("post", 10)
    assert tracker.get_migrated_id("post", "10") == "10"
    assert tracker.table_summary(batch_id) == [{"table_name": "post", "status": "success", "count": 1}]


def test_failed_records_do_not_count_as_migrated(tracker):
    batch_id = tracker.create_batch("b")
    tracker.upsert_record(batch_id, "tag", 1, None, RecordStatus.FAILED, None, "x")
    assert not tracker.is_already_migrated("tag", 1)
    assert tracker.get_migrated_id("tag", 1) is None


def test_same_entity_in_two_batches_uses_most_recent(tracker):
    first = tracker.create_batch("one")
    tracker.upsert_record(first, "directus_files", "u", "old-asset", RecordStatus.SUCCESS)
    second = tracker.create_batch("two")
    tracker.upsert_record(second, "directus_files", "u", "new-asset", RecordStatus.SUCCESS)
    assert count_records(tracker) == 2
    assert tracker.get_migrated_id("directus_files", "u") == "new-asset"


def test_success_records_grouped_and_rollback_marking(tracker):
    batch_id = tracker.create_batch("b")
    tracker.upsert_record(batch_id, "post", 1, 1, RecordStatus.SUCCESS)
    tracker.upsert_record(batch_id, "post", 2, 2, RecordStatus.SUCCESS)
    tracker.upsert_record(batch_id, "tag", 7, 7, RecordStatus.SUCCESS)
    tracker.upsert_record(batch_id, "tag", 8, None, RecordStatus.FAILED, None, "dup")

    grouped = tracker.success_records_by_table(batch_id)
    assert grouped == {
        "post": [{"old_id": "1", "new_id": "1"}, {"old_id": "2", "new_id": "2"}],
        "tag": [{"old_id": "7", "new_id": "7"}],
    }
    assert sorted(tracker.success_new_ids("post")) == ["1", "2"]

    assert tracker.mark_rolled_back(batch_id, tables=["post"]) == 2
    assert tracker.get_batch(batch_id).status == "rolled_back"
    assert tracker.has_content_to_roll_back(batch_id)
    assert not tracker.is_already_migrated("post", 1)
    assert tracker.is_already_migrated("tag", 7)

    tracker.upsert_record(batch_id, "directus_files", "u", "asset", RecordStatus.SUCCESS)
    assert tracker.mark_rolled_back(batch_id, tables=["tag"]) == 1
    assert not tracker.has_content_to_roll_back(batch_id)


def test_latest_completed_batch_and_summaries(tracker):
    assert tracker.latest_completed_batch() is None
    first = tracker.create_batch("one")
    tracker.complete_batch(first)
    second = tracker.create_batch("two")
    tracker.upsert_record(second, "tag", 1, 1, RecordStatus.SUCCESS)
    tracker.upsert_record(second, "tag", 2, None, RecordStatus.FAILED, None, "x")
    tracker.complete_batch(second)

    assert tracker.latest_completed_batch().id == second
    summaries = tracker.batch_summaries()
    assert [s["id"] for s in summaries] == [second, first]
    assert summaries[0]["total_records"] == 2
    assert summaries[0]["success_count"] == 1
    assert summaries[0]["failed_count"] == 1
    assert summaries[1]["total_records"] == 0

    tracker.clear()
    assert tracker.batch_summaries() == []
    assert count_records(tracker) == 0
