from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Generic, Mapping, Sequence, TypeVar

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from apps.api.core.clock import Clock, utcnow
from packages.db.dialects import ensure_aware, is_unique_violation
from packages.db.models import (
    FaqTable,
    KnowledgeArticleTable,
    KnowledgeResourceTable,
    OnboardingGuideTable,
    VideoTutorialTable,
)

from .errors import ConcurrencyConflictError, NotFoundError, SlugConflictError, ValidationFailedError
from .pagination import Page, PageRequest
from .publication import PublicationLifecycle, PublicationStatus
from .sanitize import coerce_choice, parse_tags, sanitize_rich_text, sanitize_text, to_bool
from .slugs import UniqueSlugAllocator


class Audience(str, Enum):
    """Who a piece of help content is addressed to."""

    ALL = "ALL"
    VENDOR = "VENDOR"
    CUSTOMER = "CUSTOMER"


class ArticleCategory(str, Enum):
    GETTING_STARTED = "GETTING_STARTED"
    PRODUCTS = "PRODUCTS"
    ORDERS = "ORDERS"
    PAYMENTS = "PAYMENTS"
    MARKETING = "MARKETING"
    POLICIES = "POLICIES"
    BEST_PRACTICES = "BEST_PRACTICES"
    OTHER = "OTHER"


class HelpCategory(str, Enum):
    GENERAL = "GENERAL"
    ORDERS = "ORDERS"
    PAYMENTS = "PAYMENTS"
    VENDORS = "VENDORS"
    PRODUCTS = "PRODUCTS"
    ACCOUNT = "ACCOUNT"
    SECURITY = "SECURITY"
    OTHER = "OTHER"


class VideoType(str, Enum):
    YOUTUBE = "YOUTUBE"
    VIMEO = "VIMEO"
    LINK = "LINK"
    UPLOAD = "UPLOAD"


class ResourceType(str, Enum):
    PDF = "PDF"
    VIDEO = "VIDEO"
    LINK = "LINK"
    FILE = "FILE"


def audiences_for_role(role: str | None) -> tuple[Audience, ...]:
    """Audiences visible to a viewer with the given account role."""

    if role is None or role == "guest":
        return (Audience.ALL,)
    if role == "vendor":
        return (Audience.ALL, Audience.VENDOR)
    if role == "customer":
        return (Audience.ALL, Audience.CUSTOMER)
    return (Audience.ALL, Audience.VENDOR, Audience.CUSTOMER)


def narrow_audiences(visible: Sequence[Audience], requested: Any) -> tuple[Audience, ...]:
    """Restrict ``visible`` to one requested audience when the viewer may see it."""

    audience = coerce_choice(Audience, requested, None)
    if audience is not None and audience in visible:
        return (audience,)
    return tuple(visible)


@dataclass(slots=True)
class KnowledgeArticle:
    id: str
    title: str
    slug: str
    summary: str
    content: str
    category: ArticleCategory
    tags: Sequence[str]
    audience: Audience
    status: PublicationStatus
    featured: bool
    cover_image_url: str
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class GuideStep:
    title: str
    content: str
    checklist_key: str = ""


@dataclass(slots=True)
class OnboardingGuide:
    id: str
    title: str
    slug: str
    description: str
    audience: Audience
    status: PublicationStatus
    display_order: int
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    steps: Sequence[GuideStep] = field(default_factory=list)
    published_at: datetime | None = None

    @property
    def step_count(self) -> int:
        return len(self.steps)


@dataclass(slots=True)
class VideoTutorial:
    id: str
    title: str
    slug: str
    description: str
    video_type: VideoType
    video_url: str
    thumbnail_url: str
    category: HelpCategory
    audience: Audience
    status: PublicationStatus
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None


@dataclass(slots=True)
class Faq:
    id: str
    question: str
    answer: str
    category: HelpCategory
    audience: Audience
    status: PublicationStatus
    featured: bool
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None


@dataclass(slots=True)
class KnowledgeResource:
    id: str
    title: str
    slug: str
    description: str
    resource_type: ResourceType
    category: ArticleCategory
    audience: Audience
    status: PublicationStatus
    featured: bool
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    file_url: str = ""
    file_name: str = ""
    file_size: int | None = None
    mime_type: str = ""
    storage_key: str = ""
    external_url: str = ""
    thumbnail_url: str = ""
    published_at: datetime | None = None


C = TypeVar("C", KnowledgeArticle, OnboardingGuide, VideoTutorial, Faq, KnowledgeResource)


class ContentRepository(Generic[C]):
    """Persistence for one content type.

    For slugged types the unique slug index is the uniqueness scope and its
    violations surface as :class:`SlugConflictError`; any other integrity
    failure propagates unchanged.
    """

    table: ClassVar[type[SQLModel]]
    slugged: ClassVar[bool] = True
    search_columns: ClassVar[tuple[str, ...]] = ("title",)

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

    async def find_id_by_slug(self, slug: str) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(select(self.table.id).where(self.table.slug == slug))
            return result.scalars().first()

    async def get(self, entity_id: str) -> C | None:
        async with self._session_factory() as session:
            row = await session.get(self.table, entity_id)
            return None if row is None else self._to_entity(row)

    async def get_by_slug(self, slug: str) -> C | None:
        async with self._session_factory() as session:
            result = await session.execute(select(self.table).where(self.table.slug == slug))
            row = result.scalars().first()
            return None if row is None else self._to_entity(row)

    async def insert(self, entity: C) -> C:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(self.table(**self._row_values(entity)))
        except IntegrityError as exc:
            self._raise_integrity_error(entity, exc)
        return entity

    async def save(self, entity: C) -> C | None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(self.table, entity.id)
                    if row is None:
                        return None
                    for key, value in self._row_values(entity).items():
                        setattr(row, key, value)
        except IntegrityError as exc:
            self._raise_integrity_error(entity, exc)
        return entity

    def _raise_integrity_error(self, entity: C, exc: IntegrityError) -> None:
        if self.slugged and is_unique_violation(exc, "slug"):
            raise SlugConflictError(entity.slug) from exc
        raise exc

    async def find_page(
        self,
        *,
        page: PageRequest,
        statuses: Sequence[PublicationStatus] = (),
        audiences: Sequence[Audience] = (),
        category: Enum | None = None,
        filters: Mapping[str, Any] | None = None,
        query: str | None = None,
        public: bool = False,
    ) -> Page[C]:
        conditions: list[Any] = []
        if statuses:
            conditions.append(self.table.status.in_([status.value for status in statuses]))
        if audiences:
            conditions.append(self.table.audience.in_([audience.value for audience in audiences]))
        if category is not None and hasattr(self.table, "category"):
            conditions.append(self.table.category == category.value)
        for column, value in (filters or {}).items():
            if value is None:
                continue
            conditions.append(getattr(self.table, column) == (value.value if isinstance(value, Enum) else value))
        if query:
            pattern = f"%{query}%"
            conditions.append(or_(*(getattr(self.table, column).ilike(pattern) for column in self.search_columns)))

        async with self._session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(self.table).where(*conditions))
            result = await session.execute(
                select(self.table)
                .where(*conditions)
                .order_by(*(self._public_order() if public else self._admin_order()))
                .offset(page.offset)
                .limit(page.limit)
            )
            items = [self._to_entity(row) for row in result.scalars().all()]
        return Page(items=items, total=int(total or 0), page=page.page, limit=page.limit)

    def _public_order(self) -> Sequence[Any]:
        return (self.table.published_at.desc(), self.table.created_at.desc())

    def _admin_order(self) -> Sequence[Any]:
        return (self.table.updated_at.desc(),)

    def _row_values(self, entity: C) -> dict[str, Any]:
        raise NotImplementedError

    def _to_entity(self, row: Any) -> C:
        raise NotImplementedError


class ArticleRepository(ContentRepository[KnowledgeArticle]):
    table = KnowledgeArticleTable

    def _public_order(self) -> Sequence[Any]:
        return (self.table.featured.desc(), self.table.published_at.desc(), self.table.created_at.desc())

    def _row_values(self, entity: KnowledgeArticle) -> dict[str, Any]:
        return {
            "id": entity.id,
            "title": entity.title,
            "slug": entity.slug,
            "summary": entity.summary,
            "content": entity.content,
            "category": entity.category.value,
            "tags": list(entity.tags),
            "audience": entity.audience.value,
            "status": entity.status.value,
            "featured": entity.featured,
            "cover_image_url": entity.cover_image_url,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "published_at": entity.published_at,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }

    def _to_entity(self, row: KnowledgeArticleTable) -> KnowledgeArticle:
        return KnowledgeArticle(
            id=row.id,
            title=row.title,
            slug=row.slug,
            summary=row.summary or "",
            content=row.content,
            category=ArticleCategory(row.category),
            tags=list(row.tags or []),
            audience=Audience(row.audience),
            status=PublicationStatus(row.status),
            featured=bool(row.featured),
            cover_image_url=row.cover_image_url or "",
            created_by=row.created_by,
            updated_by=row.updated_by,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
            published_at=ensure_aware(row.published_at),
        )


class GuideRepository(ContentRepository[OnboardingGuide]):
    table = OnboardingGuideTable

    def _public_order(self) -> Sequence[Any]:
        return (self.table.display_order.asc(), self.table.published_at.desc())

    def _admin_order(self) -> Sequence[Any]:
        return (self.table.display_order.asc(), self.table.updated_at.desc())

    def _row_values(self, entity: OnboardingGuide) -> dict[str, Any]:
        return {
            "id": entity.id,
            "title": entity.title,
            "slug": entity.slug,
            "description": entity.description,
            "steps": [
                {"title": step.title, "content": step.content, "checklist_key": step.checklist_key}
                for step in entity.steps
            ],
            "audience": entity.audience.value,
            "status": entity.status.value,
            "display_order": entity.display_order,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "published_at": entity.published_at,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }

    def _to_entity(self, row: OnboardingGuideTable) -> OnboardingGuide:
        return OnboardingGuide(
            id=row.id,
            title=row.title,
            slug=row.slug,
            description=row.description or "",
            steps=[
                GuideStep(
                    title=str(step.get("title", "")),
                    content=str(step.get("content", "")),
                    checklist_key=str(step.get("checklist_key") or ""),
                )
                for step in row.steps or []
            ],
            audience=Audience(row.audience),
            status=PublicationStatus(row.status),
            display_order=int(row.display_order or 0),
            created_by=row.created_by,
            updated_by=row.updated_by,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
            published_at=ensure_aware(row.published_at),
        )


class VideoRepository(ContentRepository[VideoTutorial]):
    table = VideoTutorialTable

    def _row_values(self, entity: VideoTutorial) -> dict[str, Any]:
        return {
            "id": entity.id,
            "title": entity.title,
            "slug": entity.slug,
            "description": entity.description,
            "video_type": entity.video_type.value,
            "video_url": entity.video_url,
            "thumbnail_url": entity.thumbnail_url,
            "category": entity.category.value,
            "audience": entity.audience.value,
            "status": entity.status.value,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "published_at": entity.published_at,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }

    def _to_entity(self, row: VideoTutorialTable) -> VideoTutorial:
        return VideoTutorial(
            id=row.id,
            title=row.title,
            slug=row.slug,
            description=row.description or "",
            video_type=VideoType(row.video_type),
            video_url=row.video_url,
            thumbnail_url=row.thumbnail_url or "",
            category=HelpCategory(row.category),
            audience=Audience(row.audience),
            status=PublicationStatus(row.status),
            created_by=row.created_by,
            updated_by=row.updated_by,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
            published_at=ensure_aware(row.published_at),
        )


class FaqRepository(ContentRepository[Faq]):
    table = FaqTable
    slugged = False
    search_columns = ("question", "answer")

    def _public_order(self) -> Sequence[Any]:
        return (self.table.featured.desc(), self.table.published_at.desc(), self.table.created_at.desc())

    def _row_values(self, entity: Faq) -> dict[str, Any]:
        return {
            "id": entity.id,
            "question": entity.question,
            "answer": entity.answer,
            "category": entity.category.value,
            "audience": entity.audience.value,
            "status": entity.status.value,
            "featured": entity.featured,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "published_at": entity.published_at,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }

    def _to_entity(self, row: FaqTable) -> Faq:
        return Faq(
            id=row.id,
            question=row.question,
            answer=row.answer,
            category=HelpCategory(row.category),
            audience=Audience(row.audience),
            status=PublicationStatus(row.status),
            featured=bool(row.featured),
            created_by=row.created_by,
            updated_by=row.updated_by,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
            published_at=ensure_aware(row.published_at),
        )


_RESOURCE_TEXT_FIELDS = (
    "file_url",
    "file_name",
    "mime_type",
    "storage_key",
    "external_url",
    "thumbnail_url",
)


class ResourceRepository(ContentRepository[KnowledgeResource]):
    table = KnowledgeResourceTable
    search_columns = ("title", "description")

    def _public_order(self) -> Sequence[Any]:
        return (self.table.featured.desc(), self.table.published_at.desc(), self.table.created_at.desc())

    def _row_values(self, entity: KnowledgeResource) -> dict[str, Any]:
        values = {
            "id": entity.id,
            "title": entity.title,
            "slug": entity.slug,
            "description": entity.description,
            "resource_type": entity.resource_type.value,
            "category": entity.category.value,
            "audience": entity.audience.value,
            "status": entity.status.value,
            "featured": entity.featured,
            "file_size": entity.file_size,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "published_at": entity.published_at,
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }
        values.update({name: getattr(entity, name) for name in _RESOURCE_TEXT_FIELDS})
        return values

    def _to_entity(self, row: KnowledgeResourceTable) -> KnowledgeResource:
        return KnowledgeResource(
            id=row.id,
            title=row.title,
            slug=row.slug,
            description=row.description or "",
            resource_type=ResourceType(row.resource_type),
            category=ArticleCategory(row.category),
            audience=Audience(row.audience),
            status=PublicationStatus(row.status),
            featured=bool(row.featured),
            file_size=row.file_size,
            created_by=row.created_by,
            updated_by=row.updated_by,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
            published_at=ensure_aware(row.published_at),
            **{name: getattr(row, name) or "" for name in _RESOURCE_TEXT_FIELDS},
        )


class ContentService(Generic[C]):
    """Create, edit and move content through its publication lifecycle.

    Slugged types draw their slug from ``slug_source`` through the allocator;
    types without a slug are addressed by id only.
    """

    entity_type: ClassVar[type]
    label: ClassVar[str] = "Content"
    slug_source: ClassVar[str | None] = "title"

    def __init__(
        self,
        repository: ContentRepository[C],
        *,
        lifecycle: PublicationLifecycle | None = None,
        allocator: UniqueSlugAllocator | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._lifecycle = lifecycle or PublicationLifecycle(clock=clock)
        self._allocator: UniqueSlugAllocator | None = None
        if self.slug_source is not None:
            self._allocator = allocator or UniqueSlugAllocator(repository, clock=clock)

    async def ensure_schema(self) -> None:
        await self._repository.ensure_schema()

    async def create(self, payload: Mapping[str, Any], *, actor: str) -> C:
        fields = self._build(payload)
        status, published_at = self._lifecycle.initial(payload.get("status"))
        now = self._clock()
        entity_id = str(uuid.uuid4())

        def build(**slug: str) -> C:
            return self.entity_type(
                id=entity_id,
                status=status,
                published_at=published_at,
                created_by=actor,
                updated_by=actor,
                created_at=now,
                updated_at=now,
                **slug,
                **fields,
            )

        if self._allocator is None:
            return await self._repository.insert(build())

        async def persist(slug: str) -> C:
            return await self._repository.insert(build(slug=slug))

        return await self._allocator.allocate_and_persist(payload.get("slug") or fields[self.slug_source], persist)

    async def get(self, entity_id: str) -> C:
        entity = await self._repository.get(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.label} {entity_id} not found")
        return entity

    async def update(self, entity_id: str, payload: Mapping[str, Any], *, actor: str) -> C:
        current = await self.get(entity_id)
        changes = self._patch(payload)
        updated = replace(current, updated_by=actor, updated_at=self._clock(), **changes)
        updated = self._lifecycle.apply_edit(updated, payload.get("status"))

        if self._allocator is not None and ("slug" in payload or self.slug_source in payload):
            raw = payload.get("slug") or payload.get(self.slug_source) or getattr(updated, self.slug_source)

            async def persist(slug: str) -> C:
                return await self._save(replace(updated, slug=slug))

            return await self._allocator.allocate_and_persist(raw, persist, exclude_id=entity_id)
        return await self._save(updated)

    async def publish(self, entity_id: str, *, actor: str) -> C:
        current = await self.get(entity_id)
        return await self._save(self._touch(self._lifecycle.publish(current), actor))

    async def unpublish(self, entity_id: str, *, actor: str, target: PublicationStatus | str | None = None) -> C:
        current = await self.get(entity_id)
        return await self._save(self._touch(self._lifecycle.unpublish(current, target), actor))

    async def delete(self, entity_id: str, *, actor: str) -> C:
        current = await self.get(entity_id)
        return await self._save(self._touch(self._lifecycle.archive(current), actor))

    async def get_published_by_slug(self, slug: str, *, audiences: Sequence[Audience]) -> C:
        if self.slug_source is None:
            raise NotFoundError(f"{self.label} entries are not addressable by slug")
        normalized = str(slug or "").strip().lower()
        entity = await self._repository.get_by_slug(normalized)
        if entity is None or entity.status is not PublicationStatus.PUBLISHED or entity.audience not in audiences:
            raise NotFoundError(f"{self.label} '{normalized}' not found")
        return entity

    async def list_published(
        self,
        *,
        audiences: Sequence[Audience],
        page: PageRequest,
        category: Enum | None = None,
        filters: Mapping[str, Any] | None = None,
        query: str | None = None,
    ) -> Page[C]:
        return await self._repository.find_page(
            page=page,
            statuses=(PublicationStatus.PUBLISHED,),
            audiences=audiences,
            category=category,
            filters=filters,
            query=(query or "").strip() or None,
            public=True,
        )

    async def list_admin(
        self,
        *,
        page: PageRequest,
        status: PublicationStatus | None = None,
        audience: Audience | None = None,
        category: Enum | None = None,
        filters: Mapping[str, Any] | None = None,
        query: str | None = None,
    ) -> Page[C]:
        return await self._repository.find_page(
            page=page,
            statuses=() if status is None else (status,),
            audiences=() if audience is None else (audience,),
            category=category,
            filters=filters,
            query=(query or "").strip() or None,
        )

    async def _save(self, entity: C) -> C:
        saved = await self._repository.save(entity)
        if saved is None:
            raise ConcurrencyConflictError(f"{self.label} {entity.id} disappeared during update")
        return saved

    def _touch(self, entity: C, actor: str) -> C:
        return replace(entity, updated_by=actor, updated_at=self._clock())

    def _build(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def _patch(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    @staticmethod
    def _require(values: Mapping[str, str], *names: str) -> None:
        missing = [name for name in names if not values.get(name)]
        if missing:
            raise ValidationFailedError(f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")


class ArticleService(ContentService[KnowledgeArticle]):
    entity_type = KnowledgeArticle
    label = "Article"

    def _build(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        title = sanitize_text(payload.get("title"))
        content = sanitize_rich_text(payload.get("content"))
        self._require({"title": title, "content": content}, "title", "content")
        return {
            "title": title,
            "summary": sanitize_text(payload.get("summary")),
            "content": content,
            "category": coerce_choice(ArticleCategory, payload.get("category"), ArticleCategory.OTHER),
            "tags": parse_tags(payload.get("tags")),
            "audience": coerce_choice(Audience, payload.get("audience"), Audience.VENDOR),
            "featured": to_bool(payload.get("featured")),
            "cover_image_url": sanitize_text(payload.get("cover_image_url")),
        }

    def _patch(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if "title" in payload:
            changes["title"] = sanitize_text(payload["title"])
            self._require(changes, "title")
        if "content" in payload:
            changes["content"] = sanitize_rich_text(payload["content"])
            self._require(changes, "content")
        if "summary" in payload:
            changes["summary"] = sanitize_text(payload["summary"])
        if "tags" in payload:
            changes["tags"] = parse_tags(payload["tags"])
        if "featured" in payload:
            changes["featured"] = to_bool(payload["featured"])
        if "cover_image_url" in payload:
            changes["cover_image_url"] = sanitize_text(payload["cover_image_url"])
        category = coerce_choice(ArticleCategory, payload.get("category"), None)
        if category is not None:
            changes["category"] = category
        audience = coerce_choice(Audience, payload.get("audience"), None)
        if audience is not None:
            changes["audience"] = audience
        return changes


def parse_guide_steps(value: Any) -> list[GuideStep]:
    """Keep the steps that carry both a title and content."""

    if not isinstance(value, (list, tuple)):
        return []
    steps: list[GuideStep] = []
    for item in value:
        if isinstance(item, GuideStep):
            item = {"title": item.title, "content": item.content, "checklist_key": item.checklist_key}
        if not isinstance(item, Mapping):
            continue
        step = GuideStep(
            title=sanitize_text(item.get("title")),
            content=sanitize_rich_text(item.get("content")),
            checklist_key=sanitize_text(item.get("checklist_key")),
        )
        if step.title and step.content:
            steps.append(step)
    return steps


_GUIDE_AUDIENCES = (Audience.VENDOR, Audience.ALL)


def _guide_audience(value: Any, default: Audience | None) -> Audience | None:
    audience = coerce_choice(Audience, value, default)
    return audience if audience in _GUIDE_AUDIENCES else default


def _to_order(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class GuideService(ContentService[OnboardingGuide]):
    entity_type = OnboardingGuide
    label = "Guide"

    async def get_published_guide(self, slug: str) -> OnboardingGuide:
        """Published guide regardless of audience; progress tracking is audience agnostic."""

        normalized = str(slug or "").strip().lower()
        guide = await self._repository.get_by_slug(normalized)
        if guide is None or guide.status is not PublicationStatus.PUBLISHED:
            raise NotFoundError(f"Guide '{normalized}' not found")
        return guide

    def _build(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        title = sanitize_text(payload.get("title"))
        self._require({"title": title}, "title")
        return {
            "title": title,
            "description": sanitize_text(payload.get("description")),
            "steps": parse_guide_steps(payload.get("steps")),
            "audience": _guide_audience(payload.get("audience"), Audience.VENDOR),
            "display_order": _to_order(payload.get("display_order")),
        }

    def _patch(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if "title" in payload:
            changes["title"] = sanitize_text(payload["title"])
            self._require(changes, "title")
        if "description" in payload:
            changes["description"] = sanitize_text(payload["description"])
        if "display_order" in payload:
            changes["display_order"] = _to_order(payload["display_order"])
        if isinstance(payload.get("steps"), (list, tuple)):
            changes["steps"] = parse_guide_steps(payload["steps"])
        audience = _guide_audience(payload.get("audience"), None)
        if audience is not None:
            changes["audience"] = audience
        return changes


class VideoService(ContentService[VideoTutorial]):
    entity_type = VideoTutorial
    label = "Video tutorial"

    def _build(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        title = sanitize_text(payload.get("title"))
        video_url = sanitize_text(payload.get("video_url"))
        self._require({"title": title, "video_url": video_url}, "title", "video_url")
        return {
            "title": title,
            "description": sanitize_text(payload.get("description")),
            "video_type": coerce_choice(VideoType, payload.get("video_type"), VideoType.LINK),
            "video_url": video_url,
            "thumbnail_url": sanitize_text(payload.get("thumbnail_url")),
            "category": coerce_choice(HelpCategory, payload.get("category"), HelpCategory.GENERAL),
            "audience": coerce_choice(Audience, payload.get("audience"), Audience.ALL),
        }

    def _patch(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if "title" in payload:
            changes["title"] = sanitize_text(payload["title"])
            self._require(changes, "title")
        if "video_url" in payload:
            changes["video_url"] = sanitize_text(payload["video_url"])
            self._require(changes, "video_url")
        if "description" in payload:
            changes["description"] = sanitize_text(payload["description"])
        if "thumbnail_url" in payload:
            changes["thumbnail_url"] = sanitize_text(payload["thumbnail_url"])
        for key, enum_cls in (("video_type", VideoType), ("category", HelpCategory), ("audience", Audience)):
            value = coerce_choice(enum_cls, payload.get(key), None)
            if value is not None:
                changes[key] = value
        return changes


class FaqService(ContentService[Faq]):
    entity_type = Faq
    label = "FAQ"
    slug_source = None

    def _build(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        question = sanitize_text(payload.get("question"))
        answer = sanitize_rich_text(payload.get("answer"))
        self._require({"question": question, "answer": answer}, "question", "answer")
        return {
            "question": question,
            "answer": answer,
            "category": coerce_choice(HelpCategory, payload.get("category"), HelpCategory.GENERAL),
            "audience": coerce_choice(Audience, payload.get("audience"), Audience.ALL),
            "featured": to_bool(payload.get("featured")),
        }

    def _patch(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if "question" in payload:
            changes["question"] = sanitize_text(payload["question"])
            self._require(changes, "question")
        if "answer" in payload:
            changes["answer"] = sanitize_rich_text(payload["answer"])
            self._require(changes, "answer")
        if "featured" in payload:
            changes["featured"] = to_bool(payload["featured"])
        for key, enum_cls in (("category", HelpCategory), ("audience", Audience)):
            value = coerce_choice(enum_cls, payload.get(key), None)
            if value is not None:
                changes[key] = value
        return changes


def _to_file_size(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        size = int(value)
    except (TypeError, ValueError):
        return None
    return size if size >= 0 else None


class ResourceService(ContentService[KnowledgeResource]):
    entity_type = KnowledgeResource
    label = "Resource"

    def _build(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        title = sanitize_text(payload.get("title"))
        resource_type = coerce_choice(ResourceType, payload.get("resource_type"), None)
        if not title or resource_type is None:
            raise ValidationFailedError("Valid title and resource_type are required")
        fields = {
            "title": title,
            "description": sanitize_text(payload.get("description")),
            "resource_type": resource_type,
            "category": coerce_choice(ArticleCategory, payload.get("category"), ArticleCategory.OTHER),
            "audience": coerce_choice(Audience, payload.get("audience"), Audience.VENDOR),
            "featured": to_bool(payload.get("featured")),
            "file_size": _to_file_size(payload.get("file_size")),
        }
        fields.update({name: sanitize_text(payload.get(name)) for name in _RESOURCE_TEXT_FIELDS})
        return fields

    def _patch(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        changes: dict[str, Any] = {}
        if "title" in payload:
            changes["title"] = sanitize_text(payload["title"])
            self._require(changes, "title")
        if "description" in payload:
            changes["description"] = sanitize_text(payload["description"])
        if "featured" in payload:
            changes["featured"] = to_bool(payload["featured"])
        if "file_size" in payload:
            changes["file_size"] = _to_file_size(payload["file_size"])
        for name in _RESOURCE_TEXT_FIELDS:
            if name in payload:
                changes[name] = sanitize_text(payload[name])
        for key, enum_cls in (("resource_type", ResourceType), ("category", ArticleCategory), ("audience", Audience)):
            value = coerce_choice(enum_cls, payload.get(key), None)
            if value is not None:
                changes[key] = value
        return changes
