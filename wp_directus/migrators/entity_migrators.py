"""
Per-entity migration procedures.

Each ``migrate_*`` method reads its source, writes the Directus content
tables through :class:`~wp_directus.content_store.ContentStore` and
records every outcome in the ledger.  An entity that already has a
``success`` record in any batch is skipped, so a run can be repeated or
resumed.  Failures of a single entity are recorded and the loop moves on.

Dependency order (enforced by :class:`~wp_directus.migration_tool.DirectusMigrationTool`):
tags → tag translations → categories → category translations → posts →
post/tag links.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import islice
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from wp_directus.extractors.csv_reader import count_wp_posts, read_wp_posts_csv
from wp_directus.extractors.json_sources import (
    load_categories,
    load_post_category_mapping,
    load_post_tags,
    load_tags,
    unique_categories,
)
from wp_directus.extractors.media_extractor import extract_media_urls
from wp_directus.models import WordPressPost
from wp_directus.parsers.language import HeuristicLanguageDetector, LanguageDetector
from wp_directus.parsers.tiptap_local import convert_html_to_tiptap
from wp_directus.parsers.url_rewriter import build_content_envelope, rewrite_html_urls, rewrite_tiptap_urls
from wp_directus.tracking.models import RecordStatus
from wp_directus.utils.errors import ConfigurationError, report_error, report_ok
from wp_directus.utils.slugs import slugify

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, int, str], None]

POST_STATUS_MAP = {
    "publish": "published",
    "draft": "draft",
    "pending": "draft",
    "private": "draft",
    "trash": "archived",
}


# Only published posts are migrated unless migration.post_status says otherwise;
# an explicit null migrates every status.
DEFAULT_POST_STATUS = "publish"


def map_post_status(wp_status: str) -> str:
    return POST_STATUS_MAP.get(wp_status, "draft")


def chunked(items: Iterable[Any], size: int) -> Iterator[List[Any]]:
    """Consume ``items`` lazily in lists of at most ``size``."""
    it = iter(items)
    while True:
        chunk = list(islice(it, max(1, size)))
        if not chunk:
            return
        yield chunk


@dataclass
class EntityStats:
    success: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.success + self.skipped + self.failed

    def add(self, status: str) -> None:
        setattr(self, status, getattr(self, status) + 1)

    def __str__(self) -> str:
        return f"{self.success} success, {self.skipped} skipped, {self.failed} failed"


@dataclass
class PostResult:
    status: str
    post_id: int
    images_imported: int = 0
    error: Optional[str] = None


class EntityMigrator:
    def __init__(
        self,
        content_store,
        tracker,
        media_importer_factory,
        config: Dict[str, Any],
        language_detector: Optional[LanguageDetector] = None,
        *,
        progress: Optional[ProgressFn] = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ):
        self.content_store = content_store
        self.tracker = tracker
        self.media_importer_factory = media_importer_factory
        self.config = config
        self.language_detector = language_detector or HeuristicLanguageDetector()
        self._progress = progress
        self._sleep = sleep_fn

    # --- helpers ---

    @property
    def _wp(self) -> Dict[str, Any]:
        return self.config.get("wordpress", {})

    @property
    def _migration(self) -> Dict[str, Any]:
        return self.config.get("migration", {})

    @property
    def data_dir(self) -> str:
        return self._wp.get("data_dir", "data")

    def progress(self, current: int, total: int, message: str) -> None:
        if self._progress:
            self._progress(current, total, message)

    def _record(self, batch_id, table, old_id, new_id, status, source=None, error=None) -> None:
        self.tracker.upsert_record(batch_id, table, old_id, new_id, status, source, error)

    def _record_failure(self, batch_id, table, old_id, source, exc: Exception, code: str) -> None:
        self._record(batch_id, table, old_id, None, RecordStatus.FAILED, source, str(exc))
        report_error(code, {"table": table, "old_id": old_id}, exc)

    @staticmethod
    def _limit(items: List[Any], limit: int) -> List[Any]:
        return items[:limit] if limit and limit > 0 else items

    # --- tags ---

    def migrate_tags(self, batch_id: int, limit: int = 0) -> EntityStats:
        logger.info("=== Migrating Tags ===")
        tags = self._limit(load_tags(self.data_dir), limit)
        stats = EntityStats()
        for i, tag in enumerate(tags, 1):
            old_id = str(tag.tag_id)
            source = tag.model_dump()
            if self.tracker.is_already_migrated("tag", old_id):
                stats.skipped += 1
            else:
                try:
                    self.content_store.insert_tag(tag.tag_id)
                except Exception as e:
                    stats.failed += 1
                    self._record_failure(batch_id, "tag", old_id, source, e, "TAG_SAVE")
                else:
                    self._record(batch_id, "tag", old_id, tag.tag_id, RecordStatus.SUCCESS, source)
                    stats.success += 1
            self.progress(i, len(tags), f"Tags: {stats}")
        logger.info("Tags: %s", stats)
        return stats

    def migrate_tag_translations(self, batch_id: int, limit: int = 0) -> EntityStats:
        logger.info("=== Migrating Tag Translations ===")
        language = self._migration.get("tag_language") or "vi-VN"
        tags = self._limit(load_tags(self.data_dir), limit)
        stats = EntityStats()
        for i, tag in enumerate(tags, 1):
            old_id = f"{tag.tag_id}_{language}"
            source = tag.model_dump()
            if self.tracker.is_already_migrated("tag_translations", old_id):
                stats.skipped += 1
            else:
                try:
                    row_id = self.content_store.insert_tag_translation(tag.tag_id, language, tag.name, tag.slug)
                except Exception as e:
                    stats.failed += 1
                    self._record_failure(batch_id, "tag_translations", old_id, source, e, "TRANSLATION_SAVE")
                else:
                    if row_id is not None:
                        self._record(batch_id, "tag_translations", old_id, row_id, RecordStatus.SUCCESS, source)
                        stats.success += 1
                    else:
                        stats.skipped += 1
            self.progress(i, len(tags), f"Tag Translations: {stats}")
        logger.info("Tag Translations: %s", stats)
        return stats

    # --- categories ---

    def migrate_categories(self, batch_id: int, limit: int = 0) -> EntityStats:
        logger.info("=== Migrating Categories ===")
        post_template = self._migration.get("post_template_id")
        collection_template = self._migration.get("collection_template_id")
        if not post_template or not collection_template:
            raise ConfigurationError(
                "post_template_id and collection_template_id must be provided "
                "(--post-template and --collection-template)"
            )

        categories = self._limit(unique_categories(load_categories(self.data_dir)), limit)
        stats = EntityStats()
        for i, category in enumerate(categories, 1):
            old_id = str(category.id)
            source = category.model_dump()
            if self.tracker.is_already_migrated("collection", old_id):
                stats.skipped += 1
            else:
                try:
                    self.content_store.upsert_collection(
                        category.id,
                        sort=category.priority,
                        template=collection_template,
                        post_template=post_template,
                    )
                except Exception as e:
                    stats.failed += 1
                    self._record_failure(batch_id, "collection", old_id, source, e, "COLLECTION_SAVE")
                else:
                    self._record(batch_id, "collection", old_id, category.id, RecordStatus.SUCCESS, source)
                    stats.success += 1
            self.progress(i, len(categories), f"Categories: {stats}")
        logger.info("Categories: %s", stats)
        return stats

    def migrate_category_translations(self, batch_id: int) -> EntityStats:
        logger.info("=== Migrating Category Translations ===")
        categories = load_categories(self.data_dir)
        stats = EntityStats()
        languages: Dict[str, int] = {}
        for i, category in enumerate(categories, 1):
            language = self.language_detector.detect(category.name)
            languages[language] = languages.get(language, 0) + 1
            old_id = f"{category.id}_{language}_{category.name}"
            source = {**category.model_dump(), "languages_code": language}
            if self.tracker.is_already_migrated("collection_translations", old_id):
                stats.skipped += 1
            elif not self.content_store.collection_exists(category.id):
                logger.warning("Collection %s not found, skipping translation for %r", category.id, category.name)
                stats.skipped += 1
            else:
                try:
                    row_id = self.content_store.insert_collection_translation(
                        category.id, language, category.name, slugify(category.name)
                    )
                except Exception as e:
                    stats.failed += 1
                    self._record_failure(batch_id, "collection_translations", old_id, source, e, "TRANSLATION_SAVE")
                else:
                    if row_id is not None:
                        self._record(
                            batch_id, "collection_translations", old_id, row_id, RecordStatus.SUCCESS, source
                        )
                        stats.success += 1
                    else:
                        stats.skipped += 1
            self.progress(i, len(categories), f"Category Translations: {stats}")
        logger.info("Category Translations: %s", stats)
        logger.info("Language distribution: %s", languages)
        return stats

    # --- posts ---

    def migrate_single_post(
        self,
        batch_id: int,
        post: WordPressPost,
        post_category_mapping: Dict[str, int],
        importer=None,
    ) -> PostResult:
        """
        Import the post's media, convert its content and write ``post`` +
        ``post_translations`` in one transaction.  The ledger is written
        only after that transaction commits.
        """
        old_id = post.old_id
        if self.tracker.is_already_migrated("post", old_id):
            return PostResult("skipped", post.id)

        importer = importer or self.media_importer_factory(batch_id)
        base_url = self._wp.get("base_url", "")
        uploads_path = self._wp.get("uploads_path", "/wp-content/uploads/")
        images = 0
        thumbnail = None
        collection_id = None
        try:
            urls = extract_media_urls(post.post_content, base_url=base_url, uploads_path=uploads_path)
            summary = importer.import_all(urls)
            images, thumbnail = summary.imported, summary.thumbnail

            assets = importer.cache.as_mapping()
            html = rewrite_html_urls(post.post_content, assets, base_url=base_url, uploads_path=uploads_path)
            tree = convert_html_to_tiptap(html)
            tree = rewrite_tiptap_urls(tree, assets, base_url=base_url, uploads_path=uploads_path)
            content = build_content_envelope(html, tree)

            collection_id = post_category_mapping.get(post.post_name)
            if collection_id and not self.content_store.collection_exists(collection_id):
                logger.warning("Collection %s not found in database, setting to NULL", collection_id)
                collection_id = None

            author_id = self._migration.get("author_id") or None
            self.content_store.save_post(
                {
                    "id": post.id,
                    "status": map_post_status(post.post_status),
                    "thumbnail": thumbnail,
                    "publish_date": post.post_date,
                    "date_created": post.post_date or datetime.now(timezone.utc),
                    "date_updated": post.post_modified,
                    "collection": collection_id,
                    "author": author_id,
                    "author_name": self._migration.get("author_name") or None,
                    "user_created": author_id,
                },
                {
                    "post_id": post.id,
                    "languages_code": self.language_detector.detect(post.post_title or post.post_name),
                    "title": post.post_title,
                    "description": post.post_excerpt,
                    "content": content,
                    "slug": post.post_name,
                },
            )
        except Exception as e:
            self._record_failure(batch_id, "post", old_id, post.snapshot(), e, "POST_SAVE")
            logger.error("Failed post %s: %s", old_id, e)
            return PostResult("failed", post.id, images_imported=images, error=str(e))

        snapshot = {**post.snapshot(), "thumbnail": thumbnail, "collection": collection_id, "imagesImported": images}
        self._record(batch_id, "post", old_id, post.id, RecordStatus.SUCCESS, snapshot)
        report_ok("POST_MIGRATED", {"table": "post", "old_id": old_id, "slug": post.post_name}, {"images": images})
        return PostResult("success", post.id, images_imported=images)

    def migrate_posts(self, batch_id: int, limit: int = 0) -> EntityStats:
        logger.info("=== Migrating WordPress Posts ===")
        csv_path = self._wp.get("posts_csv") or os.path.join(self.data_dir, "wp", "wp_posts.csv")
        stats = EntityStats()
        if not os.path.exists(csv_path):
            logger.warning("%s not found, skipping", csv_path)
            return stats

        filters = {
            "post_type": self._migration.get("post_type") or "post",
            "post_status": self._migration.get("post_status", DEFAULT_POST_STATUS),
            "limit": limit or 0,
        }
        total = count_wp_posts(csv_path, **filters)
        batch_size = int(self._migration.get("batch_size") or 30)
        pause = float(self._migration.get("batch_pause") or 0)
        logger.info("Found %s posts, processing in chunks of %s", total, batch_size)

        mapping = load_post_category_mapping(self.data_dir)
        importer = self.media_importer_factory(batch_id)
        images = 0
        processed = 0
        for chunk in chunked(read_wp_posts_csv(csv_path, **filters), batch_size):
            for post in chunk:
                result = self.migrate_single_post(batch_id, post, mapping, importer=importer)
                stats.add(result.status)
                images += result.images_imported
                processed += 1
                self.progress(processed, total, f"Posts: {stats}")
            if pause and processed < total:
                self._sleep(pause)

        logger.info("Posts: %s", stats)
        logger.info("Total images imported: %s", images)
        return stats

    # --- post/tag links ---

    def migrate_post_tags(self, batch_id: int, limit: int = 0) -> EntityStats:
        logger.info("=== Migrating Post Tags ===")
        links = self._limit(load_post_tags(self.data_dir), limit)
        stats = EntityStats()
        for i, link in enumerate(links, 1):
            if not link.post_id or not link.tag_id:
                stats.skipped += 1
            elif self.tracker.is_already_migrated("post_tag", link.old_id):
                stats.skipped += 1
            else:
                source = link.model_dump()
                try:
                    row_id = self.content_store.insert_post_tag(link.post_id, link.tag_id)
                except Exception as e:
                    stats.failed += 1
                    self._record_failure(batch_id, "post_tag", link.old_id, source, e, "POST_TAG_SAVE")
                else:
                    if row_id is not None:
                        self._record(batch_id, "post_tag", link.old_id, row_id, RecordStatus.SUCCESS, source)
                        stats.success += 1
                    else:
                        stats.skipped += 1
            self.progress(i, len(links), f"Post Tags: {stats}")
        logger.info("Post Tags: %s", stats)
        return stats
