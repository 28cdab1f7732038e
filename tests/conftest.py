from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel


class SteppingClock:
    """Deterministic clock that advances by ``step`` after every reading."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + self.step
        return value


class MemoryCounterStore:
    """Counter store double; the lock makes each increment atomic across tasks."""

    def __init__(self, initial: dict[str, int] | None = None):
        self.values: dict[str, int] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def increment(self, name: str) -> int:
        async with self._lock:
            await asyncio.sleep(0)
            value = self.values.get(name, 0) + 1
            self.values[name] = value
            return value


@pytest.fixture
def clock_factory():
    def factory(start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> SteppingClock:
        return SteppingClock(start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc), step)

    return factory


@pytest.fixture
def clock(clock_factory) -> SteppingClock:
    return clock_factory()


@pytest.fixture
def counter_store() -> MemoryCounterStore:
    return MemoryCounterStore()


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncEngine:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'help-center.db'}")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, expire_on_commit=False)
