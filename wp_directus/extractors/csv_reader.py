"""
Streaming reader for the WordPress ``wp_posts.csv`` export.

The export is a raw dump of the ``wp_posts`` table and is routinely
larger than 50MB, so it is never loaded into memory.  Physical lines are
read one at a time and glued back together while a quoted field is still
open (post content is full of newlines and doubled quotes); each logical
record is then split with :mod:`csv` and validated into a
:class:`~wp_directus.models.WordPressPost`.  Records that cannot be
reassembled into the header's column count, or that fail validation, are
skipped without raising.
"""

from __future__ import annotations

import csv
import logging
from typing import Iterator, List, Optional

from pydantic import ValidationError

from wp_directus.models import REQUIRED_COLUMNS, WordPressPost

logger = logging.getLogger(__name__)


def parse_csv_line(line: str) -> List[str]:
    """Split one logical CSV record into its fields.

    Quoted fields may contain commas, newlines and ``""`` escapes.

    Args:
        line (str): A complete logical record (possibly spanning several
            physical lines).

    Returns:
        list: The field values with quoting removed.  An unparsable line
        yields an empty list.
    """
    try:
        rows = list(csv.reader([line]))
    except csv.Error:
        return []
    return rows[0] if rows else []


def _iter_logical_records(lines: Iterator[str]) -> Iterator[str]:
    """Join physical lines until the running quote count is even."""
    buffer: Optional[str] = None
    quotes = 0
    for raw in lines:
        line = raw.rstrip("\r\n")
        if buffer is None:
            buffer = line
            quotes = line.count('"')
        else:
            buffer = f"{buffer}\n{line}"
            quotes += line.count('"')
        if quotes % 2 == 0:
            yield buffer
            buffer = None
            quotes = 0
    # An unterminated quote at EOF never completes a record.


def iter_csv_records(file_path: str) -> Iterator[dict]:
    """Yield header-mapped rows of ``file_path`` one at a time.

    Rows whose column count differs from the header are dropped.
    """
    with open(file_path, mode="r", encoding="utf-8", newline="") as csvfile:
        records = _iter_logical_records(iter(csvfile))
        header_line = next(records, None)
        if header_line is None:
            return
        headers = parse_csv_line(header_line)
        for record in records:
            values = parse_csv_line(record)
            if len(values) != len(headers):
                continue
            yield dict(zip(headers, values))


def read_wp_posts_csv(
    file_path: str,
    *,
    post_type: str = "post",
    post_status: Optional[str] = None,
    limit: int = 0,
) -> Iterator[WordPressPost]:
    """Stream posts from a ``wp_posts.csv`` export.

    Args:
        file_path (str): Path of the export.
        post_type (str): Only rows with this ``post_type`` are yielded.
        post_status (str, optional): When given, only rows with this
            ``post_status`` are yielded.
        limit (int): Stop after this many matching rows (``0`` = no limit).
            The file is closed as soon as the limit is reached.

    Yields:
        WordPressPost: Validated post records, in file order.
    """
    count = 0
    records = iter_csv_records(file_path)
    try:
        for row in records:
            missing = [col for col in REQUIRED_COLUMNS if col not in row]
            if missing:
                logger.warning("wp_posts export %s lacks columns %s; nothing to read", file_path, missing)
                return
            if row.get("post_type") != post_type:
                continue
            if post_status and row.get("post_status") != post_status:
                continue
            try:
                post = WordPressPost.model_validate(row)
            except ValidationError:
                continue
            count += 1
            yield post
            if limit and count >= limit:
                return
    finally:
        records.close()


def count_wp_posts(
    file_path: str,
    *,
    post_type: str = "post",
    post_status: Optional[str] = None,
    limit: int = 0,
) -> int:
    """Count the rows :func:`read_wp_posts_csv` would yield."""
    return sum(1 for _ in read_wp_posts_csv(file_path, post_type=post_type, post_status=post_status, limit=limit))
