"""Globally ordered, human readable code generation."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from apps.api.core.clock import Clock, utcnow
from packages.db.dialects import upsert_insert
from packages.db.models import SequenceCounterTable

from .errors import ConcurrencyConflictError

logger = logging.getLogger(__name__)


class CounterStore(Protocol):
    """Keyed counters supporting an atomic find-and-increment."""

    async def increment(self, name: str) -> int:
        """Increment ``name`` (creating it at 1) and return the new value."""
        ...


class SqlCounterStore:
    """Counter store backed by the ``sequence_counters`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine
        self._clock = clock

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    async def increment(self, name: str) -> int:
        try:
            return await self._increment_once(name)
        except ConcurrencyConflictError:
            logger.warning("Counter '%s' increment matched no row; retrying once", name)
            return await self._increment_once(name)

    async def peek(self, name: str) -> int:
        async with self._session_factory() as session:
            row = await session.get(SequenceCounterTable, name)
            return 0 if row is None else int(row.seq)

    async def _increment_once(self, name: str) -> int:
        table = SequenceCounterTable.__table__
        now = self._clock()
        async with self._session_factory() as session:
            async with session.begin():
                statement = (
                    upsert_insert(session, table)
                    .values(name=name, seq=1, updated_at=now)
                    .on_conflict_do_update(
                        index_elements=[table.c.name],
                        set_={"seq": table.c.seq + 1, "updated_at": now},
                    )
                    .returning(table.c.seq)
                )
                result = await session.execute(statement)
                value = result.scalar_one_or_none()
        if value is None:
            raise ConcurrencyConflictError(f"Counter '{name}' could not be incremented")
        return int(value)


class SequentialCodeGenerator:
    """Produce ``PREFIX-YEAR-NNNNNN`` codes from a shared counter."""

    def __init__(self, store: CounterStore, *, prefix: str = "SUP", clock: Clock = utcnow) -> None:
        self._store = store
        self._prefix = prefix
        self._clock = clock

    @staticmethod
    def format_code(prefix: str, year: int | str, seq: int) -> str:
        return f"{prefix}-{year}-{seq:06d}"

    async def next_code(self, counter_name: str, *, year: int | str | None = None) -> str:
        seq = await self._store.increment(counter_name)
        # year comes from the generation instant, never cached
        year_tag = year if year is not None else self._clock().year
        code = self.format_code(self._prefix, year_tag, seq)
        logger.info("Issued code %s from counter '%s'", code, counter_name)
        return code
