from __future__ import annotations

import logging
import os
import sys

from .errors import REPORT_DIR

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE = os.path.join(REPORT_DIR, "migration.log")

_configured = False


def configure_logging(level: str = "INFO", log_file: str = LOG_FILE) -> None:
    """Send ``wp_directus`` logs to stdout and to ``log_file``.  Idempotent."""
    global _configured
    if _configured:
        return
    root = logging.getLogger("wp_directus")
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    _configured = True
