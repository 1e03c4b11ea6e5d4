"""Configuration, logging, error reporting and small text helpers."""

from .config import load_config
from .errors import ConfigurationError, MediaImportError, PreFlightCheckError, report_error, report_ok
from .log import configure_logging
from .slugs import slugify

__all__ = [
    "ConfigurationError",
    "MediaImportError",
    "PreFlightCheckError",
    "configure_logging",
    "load_config",
    "report_error",
    "report_ok",
    "slugify",
]
