"""
Media URL extraction from raw WordPress post content.

WordPress content references uploads in several shapes: absolute URLs on
the site host, site-relative ``/wp-content/uploads/...`` paths, URLs left
over from a local development copy (``http://localhost:8000/...``),
download links, images wrapped in ``[caption]`` shortcodes and bare paths
in inline styles.  :func:`extract_media_urls` finds all of them and
returns their fully-qualified form, which is also the key used by the
asset cache and the tracking ledger.  It is a pure text scan.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

DEFAULT_UPLOADS_PATH = "/wp-content/uploads/"

MEDIA_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp", "svg", "pdf", "doc", "docx")

_CAPTION_RE = re.compile(r"\[caption[^\]]*\](.*?)\[/caption\]", re.IGNORECASE | re.DOTALL)
_LOOPBACK_RE = re.compile(r"^https?://(?:localhost|127\.0\.0\.1)(?::\d+)?(/.*)$", re.IGNORECASE)


# An empty attribute value (alt="") is left alone; any other pair is one doubled quote.
_DOUBLED_QUOTE_RE = re.compile(r'(=""(?=\s|/?>|$))|""')


def unescape_export_quotes(content: str) -> str:
    """Undo the ``""`` quote doubling of the CSV export."""
    return _DOUBLED_QUOTE_RE.sub(lambda m: m.group(1) or '"', content or "")


def _site_host(base_url: str) -> str:
    host = urlparse(base_url).netloc.lower()
    return host[4:] if host.startswith("www.") else host


def normalize_media_url(url: str, base_url: str, uploads_path: str = DEFAULT_UPLOADS_PATH) -> Optional[str]:
    """
    Return the fully-qualified form of an upload URL, or ``None`` when
    ``url`` does not point into the site's uploads directory.

    Site-relative paths and loopback origins are resolved against
    ``base_url``; absolute URLs on the site host are kept as written.
    """
    if not url:
        return None
    url = url.strip()
    base = base_url.rstrip("/")
    if url.startswith(uploads_path):
        return base + url
    loopback = _LOOPBACK_RE.match(url)
    if loopback:
        path = loopback.group(1)
        return base + path if path.startswith(uploads_path) else None
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return None
    host = parsed.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    if host == _site_host(base_url) and parsed.path.startswith(uploads_path):
        return url
    return None


def _patterns(base_url: str, uploads_path: str) -> List[re.Pattern]:
    host = re.escape(_site_host(base_url))
    uploads = re.escape(uploads_path)
    absolute = rf"https?://(?:www\.)?{host}{uploads}[^\"']+"
    loopback = rf"https?://(?:localhost|127\.0\.0\.1)(?::\d+)?{uploads}[^\"']+"
    relative = rf"{uploads}[^\"']+"
    extensions = "|".join(MEDIA_EXTENSIONS)
    return [
        re.compile(rf"src=[\"']({absolute})[\"']", re.IGNORECASE),
        re.compile(rf"src=[\"']({relative})[\"']", re.IGNORECASE),
        re.compile(rf"src=[\"']({loopback})[\"']", re.IGNORECASE),
        re.compile(rf"href=[\"']({absolute}|{relative}|{loopback})[\"']", re.IGNORECASE),
        # bare paths (inline styles, plain text); not the tail of a longer URL
        re.compile(rf"(?<![\w.:/-])({uploads}[^\s\"'<>()]+\.(?:{extensions}))(?![\w])", re.IGNORECASE),
    ]


def _scan(text: str, offset: int, patterns: List[re.Pattern], base_url: str, uploads_path: str) -> List[Tuple[int, str]]:
    found: List[Tuple[int, str]] = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            url = normalize_media_url(match.group(1), base_url, uploads_path)
            if url:
                found.append((offset + match.start(1), url))
    return found


def extract_media_urls(
    content: str,
    *,
    base_url: str,
    uploads_path: str = DEFAULT_UPLOADS_PATH,
) -> List[str]:
    """Extract every upload URL referenced by ``content``.

    Args:
        content (str): Raw ``post_content`` as read from the export.
        base_url (str): Public URL of the WordPress site, used to qualify
            relative and loopback references.
        uploads_path (str): Path prefix of the uploads directory.

    Returns:
        list: Fully-qualified URLs, de-duplicated, ordered by their first
        appearance in the content.
    """
    if not content:
        return []
    text = unescape_export_quotes(content)
    patterns = _patterns(base_url, uploads_path)

    found = _scan(text, 0, patterns, base_url, uploads_path)
    # Caption blocks are scanned on their own so shortcode quoting quirks
    # inside them cannot hide an image.
    for caption in _CAPTION_RE.finditer(text):
        found.extend(_scan(caption.group(1), caption.start(1), patterns[:3], base_url, uploads_path))

    first_seen: Dict[str, int] = {}
    for position, url in found:
        if url not in first_seen or position < first_seen[url]:
            first_seen[url] = position
    return sorted(first_seen, key=lambda u: first_seen[u])
