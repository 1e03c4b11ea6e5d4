"""
Readers for the JSON side files that accompany the ``wp_posts`` export.

All files live in the configured data directory:

- ``directus_tags.json``: list of ``{tag_id, name, slug}``
- ``category.json``: object ``name -> {id, priority}``
- ``post_category.json``: list of ``{post_name, category_id}``
- ``post_tags.json``: list of ``{post_id, tag_id}``

A missing file yields an empty result; entries that do not validate are
skipped.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from wp_directus.models import CategorySource, PostCategory, PostTagLink, TagSource

logger = logging.getLogger(__name__)

TAGS_FILE = "directus_tags.json"
CATEGORIES_FILE = "category.json"
POST_CATEGORY_FILE = "post_category.json"
POST_TAGS_FILE = "post_tags.json"

M = TypeVar("M", bound=BaseModel)


def _load_json(data_dir: str, filename: str) -> Optional[Any]:
    path = os.path.join(data_dir, filename)
    if not os.path.exists(path):
        logger.warning("%s not found, skipping", path)
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _validate_all(model: Type[M], items: List[Dict[str, Any]], source: str) -> List[M]:
    result: List[M] = []
    for item in items:
        try:
            result.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping invalid entry in %s: %s", source, e.errors()[0].get("msg"))
    return result


def load_tags(data_dir: str) -> List[TagSource]:
    data = _load_json(data_dir, TAGS_FILE)
    if not data:
        return []
    return _validate_all(TagSource, data, TAGS_FILE)


def load_categories(data_dir: str) -> List[CategorySource]:
    """Every name of ``category.json``, in file order."""
    data = _load_json(data_dir, CATEGORIES_FILE)
    if not data:
        return []
    items = [{"name": name, **(value or {})} for name, value in data.items()]
    return _validate_all(CategorySource, items, CATEGORIES_FILE)


def unique_categories(categories: List[CategorySource]) -> List[CategorySource]:
    """First entry of each category id; later names are translations."""
    seen: Dict[int, CategorySource] = {}
    for category in categories:
        seen.setdefault(category.id, category)
    return list(seen.values())


def load_post_category_mapping(data_dir: str) -> Dict[str, int]:
    """``post_name`` → collection id."""
    data = _load_json(data_dir, POST_CATEGORY_FILE)
    if not data:
        return {}
    return {item.post_name: item.category_id for item in _validate_all(PostCategory, data, POST_CATEGORY_FILE)}


def load_post_tags(data_dir: str) -> List[PostTagLink]:
    """
    Post → tag links.  Some exports put tag translations in this file
    instead (their items carry ``languages_id``); those are ignored.
    """
    data = _load_json(data_dir, POST_TAGS_FILE)
    if not data:
        return []
    if isinstance(data[0], dict) and data[0].get("languages_id"):
        logger.warning("%s contains tag translations, not post/tag links. Skipping.", POST_TAGS_FILE)
        return []
    return _validate_all(PostTagLink, data, POST_TAGS_FILE)
