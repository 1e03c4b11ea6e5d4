import csv
import json
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_directus.content_store import ContentStore
from wp_directus.db import make_engine
from wp_directus.tracking.store import MigrationTracker
from wp_directus.utils.errors import MediaImportError

WP_COLUMNS = [
    "ID",
    "post_type",
    "post_status",
    "post_title",
    "post_name",
    "post_content",
    "post_excerpt",
    "post_date",
    "post_modified",
]


@pytest.fixture(autouse=True)
def _run_in_tmp(tmp_path, monkeypatch):
    # reports/ and logs are written relative to the working directory
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def tracker():
    t = MigrationTracker(make_engine("sqlite:///:memory:"))
    t.init_schema()
    return t


@pytest.fixture
def content_store():
    store = ContentStore(make_engine("sqlite:///:memory:"))
    store.create_schema()
    return store


class FakeDirectusClient:
    """Stands in for DirectusClient.import_media; ids are asset-1, asset-2..."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls = []

    def import_media(self, url, folder, title=None):
        self.calls.append((url, folder, title))
        if url in self.fail:
            raise MediaImportError(f"Import failed: forbidden (url: {url})")
        return {"id": f"asset-{len(self.calls)}"}


@pytest.fixture
def fake_client():
    return FakeDirectusClient()


def write_posts_csv(path, rows):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(WP_COLUMNS)
        for row in rows:
            writer.writerow([row.get(col, "") for col in WP_COLUMNS])


def post_row(post_id, slug, title="", content="", status="publish", post_type="post"):
    return {
        "ID": str(post_id),
        "post_type": post_type,
        "post_status": status,
        "post_title": title,
        "post_name": slug,
        "post_content": content,
        "post_excerpt": "",
        "post_date": "2021-03-04 10:00:00",
        "post_modified": "2021-03-05 11:30:00",
    }


@pytest.fixture
def wp_export(tmp_path):
    """
    A small export: three published posts (one with an image), a draft,
    a page, two tags, two collections (one with a Vietnamese second name) and post/tag links.
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    write_posts_csv(
        str(data_dir / "wp" / "wp_posts.csv"),
        [
            post_row(
                101,
                "first-post",
                "First post",
                '<p><img src="/wp-content/uploads/2021/03/a.jpg"></p>\n<p><strong>Hi</strong> there</p>',
            ),
            post_row(102, "second-post", "Second post", "<p>Plain text</p>"),
            post_row(103, "don-dep-nha", "Dọn dẹp nhà", "<h2>Tiêu đề</h2><p>Nội dung</p>"),
            post_row(105, "unfinished", "Unfinished", "<p>draft</p>", status="draft"),
            post_row(104, "about", "About", "<p>page</p>", post_type="page"),
        ],
    )
    (data_dir / "directus_tags.json").write_text(
        json.dumps(
            [
                {"tag_id": 1, "name": "Cleaning", "slug": "cleaning"},
                {"tag_id": 2, "name": "Tips", "slug": "tips"},
            ]
        ),
        encoding="utf-8",
    )
    (data_dir / "category.json").write_text(
        json.dumps(
            {
                "Home Cleaning": {"id": 5, "priority": 1},
                "Dọn dẹp nhà": {"id": 5, "priority": 1},
                "News": {"id": 6, "priority": 2},
            },
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    (data_dir / "post_category.json").write_text(
        json.dumps(
            [
                {"post_name": "first-post", "category_id": 5},
                {"post_name": "second-post", "category_id": 99},
            ]
        ),
        encoding="utf-8",
    )
    (data_dir / "post_tags.json").write_text(
        json.dumps(
            [
                {"post_id": 101, "tag_id": 1},
                {"post_id": 101, "tag_id": 2},
                {"post_id": 102, "tag_id": ""},
            ]
        ),
        encoding="utf-8",
    )
    return data_dir


@pytest.fixture
def migration_config(wp_export):
    return {
        "wordpress": {
            "base_url": "https://example.com",
            "uploads_path": "/wp-content/uploads/",
            "data_dir": str(wp_export),
            "posts_csv": str(wp_export / "wp" / "wp_posts.csv"),
        },
        "directus": {
            "url": "http://directus.local",
            "token": "secret",
            "folder_id": "folder-1",
        },
        "database": {"url": "sqlite:///:memory:"},
        "tracking": {"url": "sqlite:///:memory:"},
        "migration": {
            "batch_size": 2,
            "batch_pause": 0,
            "author_id": "author-1",
            "author_name": "Editor",
            "post_template_id": "post-tpl",
            "collection_template_id": "collection-tpl",
            "tag_language": "vi-VN",
        },
    }
