"""
High-level orchestration of the WordPress → Directus migration.

This module defines a :class:`DirectusMigrationTool` class that ties
together the extractors, parsers, migrators and the tracking ledger into
a complete pipeline.  A run creates a migration batch, migrates tags,
categories, posts (with their media) and post/tag links in dependency
order, and completes the batch; batches can later be inspected, rolled
back or cleaned.

Configuration is supplied via a JSON file path or directly as a
dictionary and completed from the environment, see
:func:`wp_directus.utils.config.load_config`.  The database engines,
content store, ledger, Directus client and language detector can all be
injected, which is how the tests run the pipeline against SQLite.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, Optional

from wp_directus.content_store import ContentStore
from wp_directus.db import make_engine
from wp_directus.migrators.directus_client import DirectusClient
from wp_directus.migrators.entity_migrators import EntityMigrator, EntityStats
from wp_directus.migrators.media_importer import AssetCache, make_importer_factory
from wp_directus.parsers.language import HeuristicLanguageDetector, LanguageDetector
from wp_directus.tracking.batches import BatchManager, RollbackResult
from wp_directus.tracking.models import BatchStatus
from wp_directus.tracking.store import MigrationTracker
from wp_directus.utils.config import load_config
from wp_directus.utils.pre_flight_checks import run_pre_flight_checks

logger = logging.getLogger("wp_directus.migration")


class DirectusMigrationTool:
    """
    Encapsulates all state required to migrate a WordPress export into
    Directus: configuration, the two databases, the Directus client and
    the per-run asset cache.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        config_file: Optional[str] = None,
        content_store: Optional[ContentStore] = None,
        tracker: Optional[MigrationTracker] = None,
        client: Optional[DirectusClient] = None,
        language_detector: Optional[LanguageDetector] = None,
    ) -> None:
        self.config = load_config(config, config_file=config_file)
        self.content_store = content_store or ContentStore(make_engine(self.config["database"]["url"]))
        self.tracker = tracker or MigrationTracker(make_engine(self.config["tracking"]["url"]))
        self._client = client
        self.language_detector = language_detector or HeuristicLanguageDetector()
        self.cache = AssetCache()
        self.batches = BatchManager(self.tracker, self.content_store)

    @property
    def client(self) -> DirectusClient:
        if self._client is None:
            self._client = DirectusClient.from_config(self.config)
        return self._client

    def log_message(self, message: str, level: str = "INFO") -> None:
        logger.log(getattr(logging, level.upper(), logging.INFO), message)

    def log_progress(self, current: int, total: int, message: str) -> None:
        self.log_message(f"[{current}/{total}] {message}")

    def entity_migrator(self) -> EntityMigrator:
        factory = make_importer_factory(
            self.client, self.tracker, self.cache, self.config["directus"].get("folder_id") or None
        )
        return EntityMigrator(
            self.content_store,
            self.tracker,
            factory,
            self.config,
            self.language_detector,
            progress=self.log_progress,
        )

    def init(self) -> None:
        """Create the ledger tables."""
        self.log_message("Creating migration tracking tables...")
        self.tracker.init_schema()
        self.log_message("Migration tracking database initialized successfully!")

    def run_migration(self, limit: Optional[int] = None, *, check_connection: bool = True) -> Dict[str, EntityStats]:
        """
        Run a complete migration as one batch.

        :param limit: Maximum number of posts and post/tag links
            (``0`` = all).  Tags and categories are always migrated in
            full since posts reference them.
        :param check_connection: Verify the Directus token before starting.
        :return: Statistics per step.
        :raises ConfigurationError: before any batch is created, when a
            required setting is missing.
        """
        if limit is None:
            limit = int(self.config["migration"].get("limit") or 0)
        run_pre_flight_checks(
            self.config,
            session=self.client.session if check_connection else None,
            check_connection=check_connection,
        )

        self.log_message(f"WordPress: {self.config['wordpress']['base_url']}")
        self.log_message(f"Directus: {self.config['directus']['url']}")
        self.log_message(f"Migration limit: {'NONE (full migration)' if not limit else limit}")

        batch_id = self.tracker.create_batch(
            f"migration_{date.today().isoformat()}",
            "Full WordPress to Directus migration" if not limit else f"Test migration (limit: {limit})",
        )
        self.log_message(f"Created batch #{batch_id}")

        migrator = self.entity_migrator()
        results: Dict[str, EntityStats] = {}
        try:
            self.log_message("--- Step 1: Migrate Tags ---")
            results["tag"] = migrator.migrate_tags(batch_id)
            results["tag_translations"] = migrator.migrate_tag_translations(batch_id)

            self.log_message("--- Step 2: Migrate Categories (collections) ---")
            results["collection"] = migrator.migrate_categories(batch_id)
            results["collection_translations"] = migrator.migrate_category_translations(batch_id)

            self.log_message("--- Step 3: Migrate WordPress Posts (media + post + translations) ---")
            results["post"] = migrator.migrate_posts(batch_id, limit)

            self.log_message("--- Step 4: Migrate Post Tags ---")
            results["post_tag"] = migrator.migrate_post_tags(batch_id, limit)
        except Exception as e:
            self.tracker.complete_batch(batch_id, BatchStatus.FAILED, str(e))
            self.log_message(f"Migration failed: {e}", level="ERROR")
            raise

        self.tracker.complete_batch(batch_id, BatchStatus.COMPLETED)
        self.log_message(f"Migration batch #{batch_id} completed!")
        return results

    def rollback(self, batch_id: Optional[int] = None, tables: Optional[Iterable[str]] = None) -> RollbackResult:
        return self.batches.rollback_batch(batch_id, tables)

    def status(self, limit: int = 10) -> Dict[str, Any]:
        return self.batches.status(limit)

    def clean(self) -> Dict[str, int]:
        return self.batches.clean_migrated()

    def clean_all(self) -> Dict[str, int]:
        return self.batches.clean_all()
