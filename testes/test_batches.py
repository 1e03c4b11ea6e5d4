import os
import sys
from datetime import datetime

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_directus.tracking.batches import BatchManager
from wp_directus.tracking.models import BatchStatus, RecordStatus


def save_post(content_store, post_id, collection=None):
    content_store.save_post(
        {
            "id": post_id,
            "status": "published",
            "date_created": datetime(2021, 1, 1),
            "collection": collection,
        },
        {"post_id": post_id, "languages_code": "en-VN", "title": f"Post {post_id}", "slug": f"post-{post_id}"},
    )


@pytest.fixture
def migrated_batch(tracker, content_store):
    """A completed batch with 3 posts, 1 tag, one link and one media file."""
    batch_id = tracker.create_batch("migration_test")
    for post_id in (1, 2, 3):
        save_post(content_store, post_id)
        tracker.upsert_record(batch_id, "post", post_id, post_id, RecordStatus.SUCCESS)
    content_store.insert_tag(10)
    tracker.upsert_record(batch_id, "tag", 10, 10, RecordStatus.SUCCESS)
    link_id = content_store.insert_post_tag(1, 10)
    tracker.upsert_record(batch_id, "post_tag", "1_10", link_id, RecordStatus.SUCCESS)
    tracker.upsert_record(batch_id, "directus_files", "https://example.com/a.jpg", "asset-1", RecordStatus.SUCCESS)
    tracker.complete_batch(batch_id, BatchStatus.COMPLETED)
    return batch_id


def test_rollback_of_post_tables_keeps_tag(tracker, content_store, migrated_batch):
    manager = BatchManager(tracker, content_store)
    result = manager.rollback_batch(migrated_batch, tables=["post_translations", "post_tag", "post"])

    assert result.rolled_back
    assert result.deleted == {"post_tag": 1, "post": 3}
    assert result.errors == {}
    assert result.skipped_media == 1
    assert content_store.count("post") == 0
    assert content_store.count("post_translations") == 0
    assert content_store.existing_ids("tag") == [10]
    assert tracker.get_batch(migrated_batch).status == "rolled_back"
    assert not tracker.is_already_migrated("post", 1)
    assert tracker.is_already_migrated("tag", 10)


def test_partially_rolled_back_batch_can_roll_back_remaining_tables(tracker, content_store, migrated_batch):
    manager = BatchManager(tracker, content_store)
    manager.rollback_batch(migrated_batch, tables=["post_translations", "post_tag", "post"])

    result = manager.rollback_batch(migrated_batch, tables=["tag"])

    assert result.rolled_back
    assert result.deleted == {"tag": 1}
    assert content_store.count("tag") == 0
    assert not tracker.is_already_migrated("tag", 10)
    assert tracker.get_batch(migrated_batch).status == "rolled_back"

    # only the preserved media record is left
    again = manager.rollback_batch(migrated_batch)
    assert not again.rolled_back
    assert "not completed" in again.message


def test_full_rollback_defaults_to_latest_completed_batch(tracker, content_store, migrated_batch):
    result = BatchManager(tracker, content_store).rollback_batch()

    assert result.batch_id == migrated_batch
    assert result.total_deleted == 5
    assert content_store.count("tag") == 0
    assert tracker.table_summary(migrated_batch) == [
        {"table_name": "directus_files", "status": "rolled_back", "count": 1},
        {"table_name": "post", "status": "rolled_back", "count": 3},
        {"table_name": "post_tag", "status": "rolled_back", "count": 1},
        {"table_name": "tag", "status": "rolled_back", "count": 1},
    ]


def test_rollback_refuses_batches_that_are_not_completed(tracker, content_store):
    running = tracker.create_batch("still running")
    manager = BatchManager(tracker, content_store)

    result = manager.rollback_batch(running)
    assert not result.rolled_back
    assert "not completed" in result.message
    assert tracker.get_batch(running).status == "running"

    assert not manager.rollback_batch(12345).rolled_back
    assert manager.rollback_batch().message == "No completed batch to rollback"


def test_rollback_collects_per_table_errors(tracker, content_store, migrated_batch):
    tracker.upsert_record(migrated_batch, "collection", 4, "not-a-number", RecordStatus.SUCCESS)
    result = BatchManager(tracker, content_store).rollback_batch(migrated_batch)

    assert "collection" in result.errors
    assert result.deleted["post"] == 3
    assert result.rolled_back


def test_deleting_a_collection_detaches_its_posts(tracker, content_store):
    content_store.upsert_collection(5, sort=1, template="t", post_template="pt")
    content_store.insert_collection_translation(5, "en-VN", "News", "news")
    save_post(content_store, 1, collection=5)
    batch_id = tracker.create_batch("b")
    tracker.upsert_record(batch_id, "collection", 5, 5, RecordStatus.SUCCESS)
    tracker.complete_batch(batch_id)

    BatchManager(tracker, content_store).rollback_batch(batch_id)

    assert content_store.count("collection") == 0
    assert content_store.count("collection_translations") == 0
    assert content_store.count("post") == 1


def test_status_report(tracker, content_store, migrated_batch):
    report = BatchManager(tracker, content_store).status()
    assert report["batches"][0]["id"] == migrated_batch
    assert report["batches"][0]["success_count"] == 6
    assert {"table_name": "post", "status": "success", "count": 3} in report["latest_batch"]
    assert report["overall"] == report["latest_batch"]


def test_clean_migrated_only_touches_tracked_rows(tracker, content_store, migrated_batch):
    content_store.insert_tag(99)
    deleted = BatchManager(tracker, content_store).clean_migrated()

    assert deleted["post"] == 3
    assert content_store.existing_ids("tag") == [99]
    assert tracker.batch_summaries() == []


def test_clean_all_empties_content_and_ledger(tracker, content_store, migrated_batch):
    content_store.insert_tag(99)
    deleted = BatchManager(tracker, content_store).clean_all()

    assert deleted["tag"] == 2
    assert all(content_store.count(name) == 0 for name in deleted)
    assert tracker.batch_summaries() == []
