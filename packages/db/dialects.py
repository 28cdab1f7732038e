"""Dialect aware helpers for single-statement upserts."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Table
from sqlalchemy.exc import IntegrityError
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def upsert_insert(session: AsyncSession, table: Table) -> Any:
    """Return an ``INSERT`` construct supporting ``ON CONFLICT`` for the bound dialect."""

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Upserts are not supported for the '{dialect}' dialect")


def ensure_aware(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on round trips; treat naive values as UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_unique_violation(exc: IntegrityError, column: str) -> bool:
    """True when ``exc`` reports a unique constraint or index on ``column``.

    SQLite names the column (``UNIQUE constraint failed: table.slug``);
    PostgreSQL names the index (``ix_table_slug``) and the key (``Key (slug)=...``).
    """

    message = str(getattr(exc, "orig", None) or exc).lower()
    if "unique" not in message and "duplicate" not in message:
        return False
    return f".{column}" in message or f"_{column}\"" in message or f"({column})" in message
