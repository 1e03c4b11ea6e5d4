"""
Typed records for everything the migrator reads: rows of the WordPress
posts export and the JSON side files describing tags and categories.
"""

from .sources import CategorySource, PostCategory, PostTagLink, TagSource
from .wordpress_post import REQUIRED_COLUMNS, WordPressPost

__all__ = [
    "CategorySource",
    "PostCategory",
    "PostTagLink",
    "TagSource",
    "REQUIRED_COLUMNS",
    "WordPressPost",
]
