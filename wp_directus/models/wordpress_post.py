from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Columns a wp_posts.csv export must carry for a row to be usable.
REQUIRED_COLUMNS = (
    "ID",
    "post_type",
    "post_status",
    "post_title",
    "post_name",
    "post_content",
)

# WordPress writes this for dates that were never set.
_ZERO_DATE = "0000-00-00 00:00:00"


def _parse_wp_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text or text == _ZERO_DATE:
        return None
    return datetime.fromisoformat(text)


class WordPressPost(BaseModel):
    """One row of the ``wp_posts`` table export."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: int = Field(..., alias="ID")
    post_type: str
    post_status: str
    post_title: str = ""
    post_name: str = ""
    post_content: str = ""
    post_excerpt: str = ""
    post_date: Optional[datetime] = None
    post_modified: Optional[datetime] = None

    @field_validator("post_date", "post_modified", mode="before")
    @classmethod
    def _wp_dates(cls, v: Any) -> Optional[datetime]:
        return _parse_wp_datetime(v)

    @field_validator("post_excerpt", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return v or ""

    @property
    def old_id(self) -> str:
        return str(self.id)

    def snapshot(self) -> dict[str, Any]:
        """Small subset of the row kept in the tracking ledger."""
        return {"ID": self.id, "post_name": self.post_name, "post_title": self.post_title}
