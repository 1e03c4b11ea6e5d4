"""
Import WordPress uploads into Directus exactly once.

A URL is looked up, in order, in the :class:`AssetCache` of the current
run, in the migration ledger (a ``success`` record of a previous run) and
only then imported through the Directus API.  Outcomes are written to the
ledger under the ``directus_files`` table with the URL as ``old_id``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional

import requests

from wp_directus.migrators.directus_client import filename_from_url
from wp_directus.tracking.models import RecordStatus
from wp_directus.utils.errors import MediaImportError, report_error

logger = logging.getLogger(__name__)

FILES_TABLE = "directus_files"


class AssetCache:
    """URL → Directus file id for the lifetime of one run.  Append-only."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._assets: Dict[str, str] = dict(initial or {})

    def get(self, url: str) -> Optional[str]:
        return self._assets.get(url)

    def put(self, url: str, asset_id: str) -> None:
        self._assets.setdefault(url, asset_id)

    def as_mapping(self) -> Dict[str, str]:
        return dict(self._assets)

    def __contains__(self, url: object) -> bool:
        return url in self._assets

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)


@dataclass
class ImportSummary:
    thumbnail: Optional[str]
    imported: int


class MediaImporter:
    def __init__(self, client, tracker, cache: AssetCache, *, batch_id: int, folder_id: Optional[str]):
        self.client = client
        self.tracker = tracker
        self.cache = cache
        self.batch_id = batch_id
        self.folder_id = folder_id

    def import_url(self, url: str) -> Optional[str]:
        """
        Return the Directus file id for ``url``, importing it if needed.
        Failures are recorded and yield ``None``.
        """
        cached = self.cache.get(url)
        if cached:
            return cached

        existing = self.tracker.get_migrated_id(FILES_TABLE, url)
        if existing:
            self.cache.put(url, existing)
            return existing

        filename = filename_from_url(url)
        try:
            data = self.client.import_media(url, self.folder_id, title=filename)
            asset_id = str(data["id"])
        except (MediaImportError, requests.RequestException, KeyError, TypeError) as e:
            message = str(e)
            self.tracker.upsert_record(
                self.batch_id, FILES_TABLE, url, None, RecordStatus.FAILED, {"url": url}, message
            )
            logger.warning("Failed to import %s: %s", url, message)
            report_error("MEDIA_IMPORT", {"table": FILES_TABLE, "old_id": url}, e)
            return None

        self.tracker.upsert_record(self.batch_id, FILES_TABLE, url, asset_id, RecordStatus.SUCCESS, {"url": url})
        self.cache.put(url, asset_id)
        logger.info("Imported: %s -> %s", filename, asset_id)
        return asset_id

    def import_all(self, urls: Iterable[str]) -> ImportSummary:
        """Import every URL; the first successful one becomes the thumbnail."""
        thumbnail: Optional[str] = None
        imported = 0
        for url in urls:
            asset_id = self.import_url(url)
            if asset_id:
                imported += 1
                if thumbnail is None:
                    thumbnail = asset_id
        return ImportSummary(thumbnail=thumbnail, imported=imported)


def make_importer_factory(client, tracker, cache: AssetCache, folder_id: Optional[str]):
    """Bind everything but the batch id, which is only known once a run starts."""

    def factory(batch_id: int) -> MediaImporter:
        return MediaImporter(client, tracker, cache, batch_id=batch_id, folder_id=folder_id)

    return factory
