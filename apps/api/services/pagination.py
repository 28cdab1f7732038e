from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100


@dataclass(slots=True, frozen=True)
class PageRequest:
    """Validated page/limit pair."""

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def parse(
        cls,
        page: Any = None,
        limit: Any = None,
        *,
        default_limit: int = DEFAULT_PAGE_SIZE,
        max_limit: int = MAX_PAGE_SIZE,
    ) -> "PageRequest":
        return cls(
            page=max(1, _to_int(page, 1)),
            limit=min(max_limit, max(1, _to_int(limit, default_limit))),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(slots=True)
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _to_int(value: Any, fallback: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return fallback
    return parsed or fallback
