"""
Configuration loading.

Settings come from a JSON file (``config/migration_config.json`` by
default) or a dictionary and are completed from environment variables.
Values present in the file always win over the environment.

Sections: ``wordpress``, ``directus``, ``database``, ``tracking`` and
``migration``.  See ``config/migration_config.example.json``.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

CONFIG_FILE = os.path.join("config", "migration_config.json")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    try:
        return int(value) if value not in (None, "") else default
    except ValueError:
        return default


def _pg_url(prefix: str, host: str, port: int, user: str, password: str, database: str) -> str:
    host = os.getenv(f"{prefix}HOST", host)
    port = _env_int(f"{prefix}PORT", port)
    user = os.getenv(f"{prefix}USER", user)
    password = os.getenv(f"{prefix}PASSWORD", password)
    database = os.getenv(f"{prefix}DATABASE", database)
    return f"postgresql+psycopg2://{quote_plus(user)}:{quote_plus(password)}@{host}:{port}/{database}"


def load_config(config: Optional[Dict[str, Any]] = None, *, config_file: Optional[str] = None) -> Dict[str, Any]:
    """Return a complete configuration dictionary."""
    if config_file and os.path.exists(config_file):
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
    elif config is None:
        config = {}

    config.setdefault("wordpress", {})
    wp = config["wordpress"]
    wp.setdefault("base_url", os.getenv("WP_BASE_URL", ""))
    wp.setdefault("uploads_path", "/wp-content/uploads/")
    wp.setdefault("data_dir", os.getenv("WP_DATA_DIR", "data"))
    wp.setdefault("posts_csv", os.path.join(wp["data_dir"], "wp", "wp_posts.csv"))

    config.setdefault("directus", {})
    directus = config["directus"]
    directus.setdefault("url", os.getenv("DIRECTUS_URL", "http://localhost:8055"))
    directus.setdefault("token", os.getenv("DIRECTUS_TOKEN", ""))
    directus.setdefault("folder_id", os.getenv("DIRECTUS_FOLDER_ID", ""))
    directus.setdefault("timeout", 120)
    directus.setdefault("upload_fallback", True)
    directus.setdefault("requests_per_minute", 300)

    config.setdefault("database", {})
    config["database"].setdefault(
        "url",
        os.getenv("DATABASE_URL") or _pg_url("PG_", "localhost", 5433, "directus", "directus", "directus"),
    )

    config.setdefault("tracking", {})
    config["tracking"].setdefault(
        "url",
        os.getenv("MIGRATION_DATABASE_URL")
        or _pg_url("MIGRATION_PG_", "localhost", 5434, "migration_user", "migration_pass", "migration_tracking"),
    )

    config.setdefault("migration", {})
    migration = config["migration"]
    migration.setdefault("limit", 0)
    migration.setdefault("batch_size", _env_int("BATCH_SIZE", 30))
    migration.setdefault("batch_pause", 0.1)
    migration.setdefault("retry_attempts", 3)
    migration.setdefault("retry_delay", 1.0)
    migration.setdefault("author_id", "")
    migration.setdefault("author_name", "")
    migration.setdefault("post_template_id", "")
    migration.setdefault("collection_template_id", "")
    migration.setdefault("tag_language", "vi-VN")
    migration.setdefault("post_type", "post")
    migration.setdefault("post_status", "publish")
    return config
