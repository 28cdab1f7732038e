"""Record views of published knowledge base articles and resources."""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from apps.api.core.clock import Clock, utcnow
from packages.db.dialects import ensure_aware
from packages.db.models import ContentViewTable

from .content import ArticleService, ResourceService
from .errors import ForbiddenError, ValidationFailedError
from .publication import PublicationStatus
from .sanitize import coerce_choice, sanitize_text

logger = logging.getLogger(__name__)


class ViewedContentType(str, Enum):
    ARTICLE = "ARTICLE"
    RESOURCE = "RESOURCE"


class ViewerRole(str, Enum):
    GUEST = "GUEST"
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    ADMIN = "ADMIN"


def viewer_role_for(account_role: str | None) -> ViewerRole:
    if account_role is None or account_role == "guest":
        return ViewerRole.GUEST
    if account_role == "admin":
        return ViewerRole.ADMIN
    if account_role == "vendor":
        return ViewerRole.VENDOR
    return ViewerRole.CUSTOMER


def fingerprint(ip_address: str | None, user_agent: str | None) -> str:
    """Hash of the client address and agent; raw addresses are never stored."""

    raw = f"{ip_address or ''}|{user_agent or ''}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class ContentView:
    id: str
    content_type: ViewedContentType
    content_id: str
    viewer_id: str | None
    viewer_role: ViewerRole
    session_id: str | None
    ip_hash: str | None
    created_at: datetime


class ContentViewRepository:
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

    async def add(self, view: ContentView) -> ContentView:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    ContentViewTable(
                        id=view.id,
                        content_type=view.content_type.value,
                        content_id=view.content_id,
                        viewer_id=view.viewer_id,
                        viewer_role=view.viewer_role.value,
                        session_id=view.session_id,
                        ip_hash=view.ip_hash,
                        created_at=view.created_at,
                    )
                )
        return view

    async def count(self, content_type: ViewedContentType, content_id: str) -> int:
        async with self._session_factory() as session:
            total = await session.scalar(
                select(func.count())
                .select_from(ContentViewTable)
                .where(
                    ContentViewTable.content_type == content_type.value,
                    ContentViewTable.content_id == content_id,
                )
            )
        return int(total or 0)

    async def latest(self, content_type: ViewedContentType, content_id: str) -> ContentView | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ContentViewTable)
                .where(
                    ContentViewTable.content_type == content_type.value,
                    ContentViewTable.content_id == content_id,
                )
                .order_by(ContentViewTable.created_at.desc())
                .limit(1)
            )
            row = result.scalars().first()
        if row is None:
            return None
        return ContentView(
            id=row.id,
            content_type=ViewedContentType(row.content_type),
            content_id=row.content_id,
            viewer_id=row.viewer_id,
            viewer_role=ViewerRole(row.viewer_role),
            session_id=row.session_id,
            ip_hash=row.ip_hash,
            created_at=ensure_aware(row.created_at),
        )


class ContentViewService:
    """Track who looked at which article or resource.

    Only published content may be tracked, except by administrators.
    """

    def __init__(
        self,
        repository: ContentViewRepository,
        *,
        articles: ArticleService,
        resources: ResourceService,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._articles = articles
        self._resources = resources
        self._clock = clock

    async def track(
        self,
        content_type: Any,
        content_id: str,
        *,
        viewer_id: str | None = None,
        account_role: str | None = None,
        session_id: Any = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> ContentView:
        kind = coerce_choice(ViewedContentType, content_type, None)
        if kind is None:
            raise ValidationFailedError("Invalid content_type")
        content_id = sanitize_text(content_id)
        if not content_id:
            raise ValidationFailedError("Invalid content_id")

        service = self._articles if kind is ViewedContentType.ARTICLE else self._resources
        content = await service.get(content_id)
        role = viewer_role_for(account_role)
        if content.status is not PublicationStatus.PUBLISHED and role is not ViewerRole.ADMIN:
            raise ForbiddenError("Cannot track unpublished content")

        view = ContentView(
            id=str(uuid.uuid4()),
            content_type=kind,
            content_id=content.id,
            viewer_id=viewer_id,
            viewer_role=role,
            session_id=sanitize_text(session_id) or None,
            ip_hash=fingerprint(ip_address, user_agent),
            created_at=self._clock(),
        )
        await self._repository.add(view)
        logger.debug("Recorded %s view of %s by %s", kind.value, content.id, role.value)
        return view

    async def count_views(self, content_type: Any, content_id: str) -> int:
        kind = coerce_choice(ViewedContentType, content_type, None)
        if kind is None:
            raise ValidationFailedError("Invalid content_type")
        return await self._repository.count(kind, content_id)
