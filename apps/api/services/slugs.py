"""Collision-safe slug allocation for content records."""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Awaitable, Callable, Protocol, TypeVar

from apps.api.core.clock import Clock, utcnow

from .errors import SlugConflictError, UniquenessExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SLUG_MAX_LENGTH = 120
DEFAULT_MAX_ATTEMPTS = 1000

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(raw: str | None, *, max_length: int = DEFAULT_SLUG_MAX_LENGTH, clock: Clock = utcnow) -> str:
    """Derive a lowercase ASCII slug; empty results fall back to ``item-<millis>``."""

    text = unicodedata.normalize("NFKD", str(raw or ""))
    text = text.encode("ascii", errors="ignore").decode("ascii").lower()
    slug = _NON_ALNUM.sub("-", text).strip("-")
    slug = slug[:max_length].strip("-")
    if slug:
        return slug
    return f"item-{int(clock().timestamp() * 1000)}"


class SlugLookup(Protocol):
    """Slug index of one entity scope."""

    async def find_id_by_slug(self, slug: str) -> str | None:
        ...


class UniqueSlugAllocator:
    """Pick the first free ``root``, ``root-1``, ``root-2`` ... candidate in one scope.

    The lookup is only a collision avoider. The storage unique index remains the
    final arbiter, which is why :meth:`allocate_and_persist` resumes allocation
    from the next suffix when a concurrent writer wins the race.
    """

    def __init__(
        self,
        lookup: SlugLookup,
        *,
        max_length: int = DEFAULT_SLUG_MAX_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Clock = utcnow,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        self._lookup = lookup
        self._max_length = max_length
        self._max_attempts = max_attempts
        self._clock = clock

    def root(self, raw: str | None) -> str:
        return slugify(raw, max_length=self._max_length, clock=self._clock)

    def candidate(self, root: str, attempt: int) -> str:
        if attempt == 0:
            return root
        suffix = f"-{attempt}"
        trimmed = root[: max(1, self._max_length - len(suffix))].rstrip("-") or root[:1]
        return f"{trimmed}{suffix}"

    async def allocate(self, raw: str | None, *, exclude_id: str | None = None, start: int = 0) -> str:
        slug, _ = await self._allocate_from(self.root(raw), exclude_id=exclude_id, start=start)
        return slug

    async def allocate_and_persist(
        self,
        raw: str | None,
        persist: Callable[[str], Awaitable[T]],
        *,
        exclude_id: str | None = None,
    ) -> T:
        root = self.root(raw)
        start = 0
        while start < self._max_attempts:
            slug, attempt = await self._allocate_from(root, exclude_id=exclude_id, start=start)
            try:
                return await persist(slug)
            except SlugConflictError:
                logger.debug("Slug '%s' was taken concurrently; retrying from suffix %d", slug, attempt + 1)
                start = attempt + 1
        raise UniquenessExhaustedError(f"No free slug for '{root}' after {self._max_attempts} attempts")

    async def _allocate_from(self, root: str, *, exclude_id: str | None, start: int) -> tuple[str, int]:
        for attempt in range(start, self._max_attempts):
            candidate = self.candidate(root, attempt)
            owner = await self._lookup.find_id_by_slug(candidate)
            if owner is None or (exclude_id is not None and owner == exclude_id):
                return candidate, attempt
            logger.debug("Slug candidate '%s' is taken", candidate)
        raise UniquenessExhaustedError(f"No free slug for '{root}' after {self._max_attempts} attempts")
