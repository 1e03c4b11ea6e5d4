"""
Error types and structured reports for the migration.

Every entity outcome worth reviewing after a run is appended to a JSON
Lines file under ``reports/migration``:

``report_error``
    Record a failure for an entity.  An optional exception can be supplied
    and will be serialized to the log.

``report_ok``
    Record a successful step for an entity.  Additional key/value
    information can be attached via the ``extra`` parameter.

The ``ERRORS`` dictionary maps event codes to human readable messages.
Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Required settings (token, folder, author, templates) are missing."""


class PreFlightCheckError(Exception):
    """Directus is unreachable or rejected the configured token."""


class MediaImportError(Exception):
    """A media file could not be imported into Directus."""


# Event codes used throughout the migration.
ERRORS: Dict[str, str] = {
    "MEDIA_IMPORT": "Failed to import media into Directus",
    "POST_SAVE": "Failed to save post",
    "TAG_SAVE": "Failed to save tag",
    "COLLECTION_SAVE": "Failed to save collection",
    "TRANSLATION_SAVE": "Failed to save translation",
    "POST_TAG_SAVE": "Failed to link post and tag",
    "ROLLBACK_TABLE": "Failed to roll back table",
    "POST_MIGRATED": "Post migrated successfully",
    "MEDIA_IMPORTED": "Media imported successfully",
}

REPORT_DIR = os.path.join("reports", "migration")
_ERROR_LOG = "errors.jsonl"
_OK_LOG = "success.jsonl"


def _write_jsonl(filename: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline."""
    os.makedirs(REPORT_DIR, exist_ok=True)
    with open(os.path.join(REPORT_DIR, filename), "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, default=str)
        f.write("\n")


def _entry(code: str, entity: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "code": code,
        "message": ERRORS.get(code, code),
        "table": entity.get("table"),
        "old_id": entity.get("old_id"),
        "slug": entity.get("slug"),
    }


def report_error(code: str, entity: Dict[str, Any], exc: Optional[BaseException] = None) -> None:
    """Log an error event for ``entity``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    entity:
        Identifies what failed.  Only the ``table``, ``old_id`` and
        ``slug`` keys are referenced if present.
    exc:
        Optional exception that triggered the error.
    """
    entry = _entry(code, entity)
    if exc is not None:
        entry["error"] = str(exc)
    logger.error("%s - %s:%s", entry["message"], entry["table"] or "", entry["old_id"] or "")
    _write_jsonl(_ERROR_LOG, entry)


def report_ok(code: str, entity: Dict[str, Any], extra: Optional[Dict[str, Any]] = None) -> None:
    """Log a successful event for ``entity``; ``extra`` is merged into the entry."""
    entry = _entry(code, entity)
    if extra:
        entry.update(extra)
    logger.debug("%s - %s:%s", entry["message"], entry["table"] or "", entry["old_id"] or "")
    _write_jsonl(_OK_LOG, entry)
