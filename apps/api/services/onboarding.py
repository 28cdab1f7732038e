from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from apps.api.core.clock import Clock, utcnow
from packages.db.dialects import ensure_aware, upsert_insert
from packages.db.models import OnboardingProgressTable

from .content import GuideService

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ChecklistProgress:
    indices: tuple[int, ...]
    completed: bool


def _as_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def normalize_completed_steps(raw: Iterable[Any] | None, step_count: int) -> ChecklistProgress:
    """Reduce ``raw`` to the sorted, unique step indices in ``[0, step_count)``.

    ``completed`` is set only when every step of a non-empty guide is checked.
    Normalizing an already normalized set returns it unchanged.
    """

    if raw is None or isinstance(raw, (str, bytes)):
        raw = ()
    indices = {index for index in map(_as_index, raw) if index is not None and 0 <= index < step_count}
    ordered = tuple(sorted(indices))
    return ChecklistProgress(indices=ordered, completed=step_count > 0 and len(ordered) == step_count)


@dataclass(slots=True)
class OnboardingProgress:
    owner_id: str
    guide_slug: str
    completed_steps: tuple[int, ...] = field(default_factory=tuple)
    completed: bool = False
    updated_at: datetime | None = None


class ProgressRepository:
    """One progress row per (owner, guide), written with a single upsert."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    async def get(self, owner_id: str, guide_slug: str) -> OnboardingProgress | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(OnboardingProgressTable).where(
                    OnboardingProgressTable.owner_id == owner_id,
                    OnboardingProgressTable.guide_slug == guide_slug,
                )
            )
            row = result.scalars().first()
        if row is None:
            return None
        return OnboardingProgress(
            owner_id=row.owner_id,
            guide_slug=row.guide_slug,
            completed_steps=tuple(int(index) for index in row.completed_steps or []),
            completed=bool(row.completed),
            updated_at=ensure_aware(row.updated_at),
        )

    async def upsert(self, progress: OnboardingProgress) -> None:
        table = OnboardingProgressTable.__table__
        async with self._session_factory() as session:
            async with session.begin():
                statement = (
                    upsert_insert(session, table)
                    .values(
                        id=str(uuid.uuid4()),
                        owner_id=progress.owner_id,
                        guide_slug=progress.guide_slug,
                        completed_steps=list(progress.completed_steps),
                        completed=progress.completed,
                        created_at=progress.updated_at,
                        updated_at=progress.updated_at,
                    )
                    .on_conflict_do_update(
                        index_elements=[table.c.owner_id, table.c.guide_slug],
                        set_={
                            "completed_steps": list(progress.completed_steps),
                            "completed": progress.completed,
                            "updated_at": progress.updated_at,
                        },
                    )
                )
                await session.execute(statement)


class OnboardingService:
    """Track owners' checklist progress through published onboarding guides."""

    def __init__(self, repository: ProgressRepository, guides: GuideService, *, clock: Clock = utcnow) -> None:
        self._repository = repository
        self._guides = guides
        self._clock = clock

    async def ensure_schema(self) -> None:
        await self._repository.ensure_schema()

    async def get_progress(self, owner_id: str, guide_slug: str) -> OnboardingProgress:
        guide = await self._guides.get_published_guide(guide_slug)
        stored = await self._repository.get(owner_id, guide.slug)
        if stored is None:
            return OnboardingProgress(owner_id=owner_id, guide_slug=guide.slug)
        # steps may have been edited since the progress was written
        checklist = normalize_completed_steps(stored.completed_steps, guide.step_count)
        return replace(stored, completed_steps=checklist.indices, completed=checklist.completed)

    async def update_progress(self, owner_id: str, guide_slug: str, completed_steps: Any) -> OnboardingProgress:
        guide = await self._guides.get_published_guide(guide_slug)
        # step count is read from the guide as stored right now
        checklist = normalize_completed_steps(
            completed_steps if isinstance(completed_steps, (list, tuple)) else None,
            guide.step_count,
        )
        progress = OnboardingProgress(
            owner_id=owner_id,
            guide_slug=guide.slug,
            completed_steps=checklist.indices,
            completed=checklist.completed,
            updated_at=self._clock(),
        )
        await self._repository.upsert(progress)
        if checklist.completed:
            logger.info("Owner %s completed onboarding guide '%s'", owner_id, guide.slug)
        return progress
