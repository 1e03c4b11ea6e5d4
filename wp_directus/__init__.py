"""
Top-level package for the WordPress → Directus migration utility.

This package bundles all components required to stream posts out of a
WordPress ``wp_posts.csv`` export, convert their HTML to the TipTap JSON
document format used by the Directus editor, import referenced media
through the Directus files API, write posts, tags and collections into
the Directus PostgreSQL schema, and track every migrated record so that
batches can be audited, rolled back or cleaned.  Modules are split into
subpackages:

* :mod:`wp_directus.extractors` – streaming CSV reader, media URL
  extraction and the JSON side files (tags, categories, links)
* :mod:`wp_directus.parsers` – HTML to TipTap conversion, URL rewriting
  and language detection
* :mod:`wp_directus.migrators` – Directus API client, media importer and
  the per-entity migrators
* :mod:`wp_directus.tracking` – migration batches, per-record ledger and
  rollback
* :mod:`wp_directus.utils` – configuration, logging, JSONL reports and
  pre-flight checks

Each layer has no direct knowledge of configuration or execution
strategy; orchestration is handled in :mod:`wp_directus.migration_tool`.
"""

__version__ = "0.1.0"
