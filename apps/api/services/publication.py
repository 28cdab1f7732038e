from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Protocol, TypeVar

from apps.api.core.clock import Clock, utcnow

from .errors import InvalidTransitionError


class PublicationStatus(str, Enum):
    """Publication states shared by articles, guides and videos."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"

    @classmethod
    def parse(cls, value: "PublicationStatus | str") -> "PublicationStatus":
        try:
            return cls(str(value.value if isinstance(value, cls) else value).strip().upper())
        except ValueError as exc:
            raise InvalidTransitionError(f"Unknown publication status: {value!r}") from exc


class Publishable(Protocol):
    status: PublicationStatus
    published_at: datetime | None


P = TypeVar("P", bound=Publishable)


class PublicationLifecycle:
    """Keep ``published_at`` set exactly while ``status`` is ``PUBLISHED``.

    Every operation returns an updated copy of the dataclass it receives.
    ``ARCHIVED`` is not terminal; content can be moved back to ``DRAFT`` or
    ``PUBLISHED`` at any time.
    """

    def __init__(self, *, clock: Clock = utcnow) -> None:
        self._clock = clock

    def initial(self, requested: PublicationStatus | str | None = None) -> tuple[PublicationStatus, datetime | None]:
        status = PublicationStatus.DRAFT if requested in (None, "") else PublicationStatus.parse(requested)
        return status, self._clock() if status is PublicationStatus.PUBLISHED else None

    def publish(self, entity: P) -> P:
        return replace(entity, status=PublicationStatus.PUBLISHED, published_at=self._clock())

    def unpublish(self, entity: P, target: PublicationStatus | str | None = None) -> P:
        status = PublicationStatus.DRAFT if target in (None, "") else PublicationStatus.parse(target)
        if status is PublicationStatus.PUBLISHED:
            raise InvalidTransitionError("Unpublish target must be DRAFT or ARCHIVED")
        return replace(entity, status=status, published_at=None)

    def archive(self, entity: P) -> P:
        return replace(entity, status=PublicationStatus.ARCHIVED, published_at=None)

    def apply_edit(self, entity: P, requested: PublicationStatus | str | None = None) -> P:
        status = entity.status if requested in (None, "") else PublicationStatus.parse(requested)
        if status is not PublicationStatus.PUBLISHED:
            return replace(entity, status=status, published_at=None)
        # republishing through an edit keeps the original publish time
        return replace(entity, status=status, published_at=entity.published_at or self._clock())

    @staticmethod
    def is_consistent(entity: Publishable) -> bool:
        return (entity.status is PublicationStatus.PUBLISHED) == (entity.published_at is not None)
