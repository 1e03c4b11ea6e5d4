from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TagSource(BaseModel):
    """Entry of ``directus_tags.json``."""

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    tag_id: int
    name: str = ""
    slug: str = ""


class CategorySource(BaseModel):
    """
    One name of ``category.json``.  Several names can point at the same
    collection id; each one becomes a translation row.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    priority: Optional[int] = None


class PostCategory(BaseModel):
    model_config = ConfigDict(extra="allow")

    post_name: str
    category_id: int


class PostTagLink(BaseModel):
    model_config = ConfigDict(extra="allow")

    post_id: Optional[int] = None
    tag_id: Optional[int] = None
    languages_id: Optional[str] = Field(None, exclude=True)

    @field_validator("post_id", "tag_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if v in ("", None):
            return None
        return v

    @property
    def old_id(self) -> str:
        return f"{self.post_id}_{self.tag_id}"
