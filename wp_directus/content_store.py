"""
Directus content tables the migrator writes to.

The tables are owned by Directus; the definitions below only describe the
columns the migrator reads and writes.  :meth:`ContentStore.create_schema`
exists for local SQLite databases and tests.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine

from wp_directus.db import upsert_insert

logger = logging.getLogger(__name__)

metadata = MetaData()

post = Table(
    "post",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("status", String(20), nullable=False, default="draft"),
    Column("thumbnail", String(36), nullable=True),
    Column("publish_date", DateTime(timezone=True), nullable=True),
    Column("date_created", DateTime(timezone=True), nullable=True),
    Column("date_updated", DateTime(timezone=True), nullable=True),
    Column("collection", Integer, nullable=True),
    Column("author", String(36), nullable=True),
    Column("author_name", String(255), nullable=True),
    Column("user_created", String(36), nullable=True),
)

post_translations = Table(
    "post_translations",
    metadata,
    Column("post_id", Integer, primary_key=True),
    Column("languages_code", String(10), primary_key=True),
    Column("title", Text, nullable=True),
    Column("description", Text, nullable=True),
    Column("content", Text, nullable=True),
    Column("slug", String(255), nullable=True),
)

tag = Table(
    "tag",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
)

tag_translations = Table(
    "tag_translations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tag_id", Integer, nullable=False),
    Column("languages_code", String(10), nullable=False),
    Column("name", String(255), nullable=True),
    Column("slug", String(255), nullable=True),
    UniqueConstraint("tag_id", "languages_code", name="uq_tag_translations_tag_lang"),
)

collection = Table(
    "collection",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("sort", Integer, nullable=True),
    Column("is_visible", Boolean, nullable=False, default=True),
    Column("template", String(36), nullable=True),
    Column("post_template", String(36), nullable=True),
)

collection_translations = Table(
    "collection_translations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("collection_id", Integer, nullable=False),
    Column("languages_code", String(10), nullable=False),
    Column("name", String(255), nullable=True),
    Column("slug", String(255), nullable=True),
    UniqueConstraint("collection_id", "languages_code", "name", name="uq_collection_translations_name"),
)

post_tag = Table(
    "post_tag",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, nullable=False),
    Column("tag_id", Integer, nullable=False),
    UniqueConstraint("post_id", "tag_id", name="uq_post_tag_post_tag"),
)

# Children first, so deleting in this order never orphans a row.
DELETE_ORDER = (
    "post_translations",
    "post_tag",
    "post",
    "tag_translations",
    "tag",
    "collection_translations",
    "collection",
)

TABLES: Dict[str, Table] = {t.name: t for t in metadata.sorted_tables}

# Column that identifies a row of each table in the migration ledger.
KEY_COLUMNS = {"post_translations": "post_id"}


class ContentStore:
    """Writes migrated entities into the Directus content tables."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def _insert(self, table: Table):
        return upsert_insert(self.dialect, table)

    def _insert_returning_id(self, table: Table, values: Dict[str, Any]) -> Optional[int]:
        stmt = self._insert(table).values(**values).on_conflict_do_nothing().returning(table.c.id)
        with self.engine.begin() as conn:
            return conn.execute(stmt).scalar_one_or_none()

    # --- tags ---

    def insert_tag(self, tag_id: int) -> bool:
        """Insert a ``tag`` row; an existing row is left alone."""
        stmt = self._insert(tag).values(id=tag_id).on_conflict_do_nothing(index_elements=[tag.c.id])
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return bool(result.rowcount)

    def insert_tag_translation(self, tag_id: int, languages_code: str, name: str, slug: str) -> Optional[int]:
        """Returns the new row id, or ``None`` when the row already existed."""
        return self._insert_returning_id(
            tag_translations,
            {"tag_id": tag_id, "languages_code": languages_code, "name": name, "slug": slug},
        )

    # --- collections ---

    def upsert_collection(
        self,
        collection_id: int,
        *,
        sort: Optional[int],
        template: Optional[str],
        post_template: Optional[str],
        is_visible: bool = True,
    ) -> None:
        values = {
            "id": collection_id,
            "sort": sort,
            "is_visible": is_visible,
            "template": template,
            "post_template": post_template,
        }
        stmt = self._insert(collection).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[collection.c.id],
            set_={k: getattr(stmt.excluded, k) for k in values if k != "id"},
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def collection_exists(self, collection_id: int) -> bool:
        with self.engine.connect() as conn:
            found = conn.execute(
                select(collection.c.id).where(collection.c.id == collection_id)
            ).first()
        return found is not None

    def insert_collection_translation(
        self, collection_id: int, languages_code: str, name: str, slug: str
    ) -> Optional[int]:
        return self._insert_returning_id(
            collection_translations,
            {"collection_id": collection_id, "languages_code": languages_code, "name": name, "slug": slug},
        )

    # --- posts ---

    def _upsert_post(self, conn: Connection, values: Dict[str, Any]) -> None:
        stmt = self._insert(post).values(**values)
        # date_created keeps its first value
        keep = {"id", "date_created"}
        stmt = stmt.on_conflict_do_update(
            index_elements=[post.c.id],
            set_={k: getattr(stmt.excluded, k) for k in values if k not in keep},
        )
        conn.execute(stmt)

    def _upsert_post_translation(self, conn: Connection, values: Dict[str, Any]) -> None:
        stmt = self._insert(post_translations).values(**values)
        keep = {"post_id", "languages_code"}
        stmt = stmt.on_conflict_do_update(
            index_elements=[post_translations.c.post_id, post_translations.c.languages_code],
            set_={k: getattr(stmt.excluded, k) for k in values if k not in keep},
        )
        conn.execute(stmt)

    def save_post(self, post_values: Dict[str, Any], translation_values: Dict[str, Any]) -> None:
        """Upsert a ``post`` row and its translation in one transaction."""
        with self.engine.begin() as conn:
            self._upsert_post(conn, post_values)
            self._upsert_post_translation(conn, translation_values)

    def insert_post_tag(self, post_id: int, tag_id: int) -> Optional[int]:
        return self._insert_returning_id(post_tag, {"post_id": post_id, "tag_id": tag_id})

    # --- deletes ---

    def delete_rows(self, table_name: str, ids: Iterable[int]) -> int:
        """
        Delete rows of ``table_name`` by id together with the rows that
        depend on them.  Returns the number of ``table_name`` rows deleted.
        """
        ids = list(ids)
        if not ids:
            return 0
        table = TABLES[table_name]
        key = table.c[KEY_COLUMNS.get(table_name, "id")]
        with self.engine.begin() as conn:
            if table_name == "post":
                conn.execute(delete(post_translations).where(post_translations.c.post_id.in_(ids)))
                conn.execute(delete(post_tag).where(post_tag.c.post_id.in_(ids)))
            elif table_name == "tag":
                conn.execute(delete(tag_translations).where(tag_translations.c.tag_id.in_(ids)))
                conn.execute(delete(post_tag).where(post_tag.c.tag_id.in_(ids)))
            elif table_name == "collection":
                conn.execute(
                    delete(collection_translations).where(collection_translations.c.collection_id.in_(ids))
                )
                conn.execute(update(post).where(post.c.collection.in_(ids)).values(collection=None))
            result = conn.execute(delete(table).where(key.in_(ids)))
        return result.rowcount or 0

    def clear_table(self, table_name: str) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(delete(TABLES[table_name]))
        return result.rowcount or 0

    def count(self, table_name: str) -> int:
        table = TABLES[table_name]
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    def existing_ids(self, table_name: str) -> List[int]:
        table = TABLES[table_name]
        key = table.c[KEY_COLUMNS.get(table_name, "id")]
        with self.engine.connect() as conn:
            return list(conn.execute(select(key)).scalars())
