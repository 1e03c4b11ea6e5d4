"""
Point converted content at the imported Directus assets.

The rewriters never touch their input: :func:`rewrite_tiptap_urls` returns
a new tree and :func:`rewrite_html_urls` a new string.  Sources that do not
resolve to an imported asset are left exactly as written.
"""

from __future__ import annotations

import copy
import json
import re
import time
from typing import Any, Dict, Mapping, Optional

from wp_directus.extractors.media_extractor import (
    DEFAULT_UPLOADS_PATH,
    normalize_media_url,
    unescape_export_quotes,
)

ASSET_PATH = "/assets/{asset_id}"


def asset_path(asset_id: str) -> str:
    return ASSET_PATH.format(asset_id=asset_id)


def _lookup(
    src: str,
    mapping: Mapping[str, str],
    base_url: str,
    uploads_path: str,
) -> Optional[str]:
    if src in mapping:
        return mapping[src]
    url = normalize_media_url(src, base_url, uploads_path)
    if url is None:
        return None
    return mapping.get(url)


def rewrite_tiptap_urls(
    tree: Optional[Dict[str, Any]],
    mapping: Mapping[str, str],
    *,
    base_url: str,
    uploads_path: str = DEFAULT_UPLOADS_PATH,
) -> Optional[Dict[str, Any]]:
    """Return a copy of ``tree`` with image sources replaced by asset paths.

    Args:
        tree: A document produced by
            :func:`~wp_directus.parsers.tiptap_local.convert_html_to_tiptap`.
        mapping: Fully-qualified legacy URL to Directus file id.
        base_url: Used to resolve site-relative and loopback sources.
        uploads_path: Path prefix of the WordPress uploads directory.
    """
    if tree is None:
        return None
    result = copy.deepcopy(tree)
    if not mapping:
        return result

    def visit(node: Dict[str, Any]) -> None:
        if node.get("type") == "image":
            attrs = node.get("attrs") or {}
            src = attrs.get("src")
            if src:
                asset_id = _lookup(src, mapping, base_url, uploads_path)
                if asset_id:
                    attrs["src"] = asset_path(asset_id)
        for child in node.get("content") or []:
            if isinstance(child, dict):
                visit(child)

    visit(result)
    return result


def rewrite_html_urls(
    html: str,
    mapping: Mapping[str, str],
    *,
    base_url: str,
    uploads_path: str = DEFAULT_UPLOADS_PATH,
) -> str:
    """
    Replace every mapped upload URL in raw HTML with its asset path.

    Absolute, site-relative and loopback spellings of the same file are all
    replaced.  Export quote doubling is undone first, like the extractor
    does, so the stored HTML matches what was scanned.
    """
    text = unescape_export_quotes(html)
    if not mapping or not text:
        return text

    uploads = re.escape(uploads_path)
    pattern = re.compile(
        rf"(?:https?://[^\s\"'<>()/]+)?{uploads}[^\s\"'<>()]+",
        re.IGNORECASE,
    )

    def replace(match: "re.Match[str]") -> str:
        asset_id = _lookup(match.group(0), mapping, base_url, uploads_path)
        return asset_path(asset_id) if asset_id else match.group(0)

    return pattern.sub(replace, text)


def build_content_envelope(html: str, tree: Optional[Dict[str, Any]]) -> str:
    """Serialize the value stored in ``post_translations.content``."""
    return json.dumps(
        {
            "json": tree,
            "html": html,
            "lastSaved": int(time.time() * 1000),
        },
        ensure_ascii=False,
    )
