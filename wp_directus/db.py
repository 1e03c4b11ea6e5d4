"""Engine construction and dialect helpers shared by the SQL stores."""

from __future__ import annotations

from sqlalchemy import Table, create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


def make_engine(url: str, **kwargs) -> Engine:
    """
    Build an engine for ``url``.

    In-memory SQLite URLs share one connection so every session sees the
    same database.
    """
    if url.startswith("sqlite") and ":memory:" in url:
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        kwargs.setdefault("poolclass", StaticPool)
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


def upsert_insert(dialect_name: str, table: Table):
    """
    Return an ``INSERT`` construct that supports ``on_conflict_do_update`` /
    ``on_conflict_do_nothing`` for the given dialect.
    """
    if dialect_name == "postgresql":
        return postgresql.insert(table)
    if dialect_name == "sqlite":
        return sqlite.insert(table)
    raise ValueError(f"Unsupported database dialect for upserts: {dialect_name}")
