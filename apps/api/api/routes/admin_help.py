from enum import Enum
from typing import Annotated, Any, Callable

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from apps.api.api.schemas import (
    ArticleModel,
    ArticleWriteRequest,
    FaqModel,
    FaqWriteRequest,
    GuideModel,
    GuideWriteRequest,
    PageModel,
    ResourceModel,
    ResourceWriteRequest,
    UnpublishRequest,
    VideoModel,
    VideoWriteRequest,
    ViewCountModel,
)
from apps.api.dependencies.auth import AdminUser
from apps.api.dependencies.services import (
    ContentViewServiceDep,
    PageDep,
    get_article_service,
    get_faq_service,
    get_guide_service,
    get_resource_service,
    get_video_service,
)
from apps.api.services.content import ArticleCategory, Audience, ContentService, HelpCategory, ResourceType
from apps.api.services.publication import PublicationStatus
from apps.api.services.sanitize import coerce_choice

router = APIRouter(prefix="/admin/help", tags=["admin-help"])


def _include_content_routes(
    path: str,
    *,
    get_service: Callable[..., Any],
    entity_model: type[BaseModel],
    write_model: type[BaseModel],
    category_enum: type[Enum] | None = None,
    type_filter: tuple[str, type[Enum]] | None = None,
) -> None:
    """Register list/create/read/update/publish/unpublish/delete endpoints for one content type."""

    ServiceDep = Annotated[ContentService, Depends(get_service)]

    @router.get(f"/{path}", response_model=PageModel[entity_model], name=f"list_{path}")
    async def list_items(
        service: ServiceDep,
        user: AdminUser,
        page: PageDep,
        status_filter: Annotated[str | None, Query(alias="status")] = None,
        audience: str | None = None,
        category: str | None = None,
        type_value: Annotated[str | None, Query(alias="type")] = None,
        q: str | None = None,
    ) -> PageModel:
        filters = None
        if type_filter is not None:
            column, type_enum = type_filter
            filters = {column: coerce_choice(type_enum, type_value, None)}
        result = await service.list_admin(
            page=page,
            status=None if not status_filter else PublicationStatus.parse(status_filter),
            audience=coerce_choice(Audience, audience, None),
            category=None if category_enum is None else coerce_choice(category_enum, category, None),
            filters=filters,
            query=q,
        )
        return PageModel.from_page(result, entity_model)

    @router.post(
        f"/{path}",
        response_model=entity_model,
        status_code=status.HTTP_201_CREATED,
        name=f"create_{path}",
    )
    async def create_item(payload: write_model, service: ServiceDep, user: AdminUser) -> Any:
        entity = await service.create(payload.model_dump(exclude_none=True), actor=user.username)
        return entity_model.model_validate(entity)

    @router.get(f"/{path}/{{entity_id}}", response_model=entity_model, name=f"get_{path}")
    async def get_item(entity_id: str, service: ServiceDep, user: AdminUser) -> Any:
        return entity_model.model_validate(await service.get(entity_id))

    @router.patch(f"/{path}/{{entity_id}}", response_model=entity_model, name=f"update_{path}")
    async def update_item(entity_id: str, payload: write_model, service: ServiceDep, user: AdminUser) -> Any:
        entity = await service.update(entity_id, payload.model_dump(exclude_unset=True), actor=user.username)
        return entity_model.model_validate(entity)

    @router.post(f"/{path}/{{entity_id}}/publish", response_model=entity_model, name=f"publish_{path}")
    async def publish_item(entity_id: str, service: ServiceDep, user: AdminUser) -> Any:
        return entity_model.model_validate(await service.publish(entity_id, actor=user.username))

    @router.post(f"/{path}/{{entity_id}}/unpublish", response_model=entity_model, name=f"unpublish_{path}")
    async def unpublish_item(
        entity_id: str,
        service: ServiceDep,
        user: AdminUser,
        payload: UnpublishRequest | None = None,
    ) -> Any:
        target = None if payload is None else payload.status
        entity = await service.unpublish(entity_id, actor=user.username, target=target)
        return entity_model.model_validate(entity)

    @router.delete(f"/{path}/{{entity_id}}", response_model=entity_model, name=f"delete_{path}")
    async def delete_item(entity_id: str, service: ServiceDep, user: AdminUser) -> Any:
        return entity_model.model_validate(await service.delete(entity_id, actor=user.username))


_include_content_routes(
    "articles",
    get_service=get_article_service,
    entity_model=ArticleModel,
    write_model=ArticleWriteRequest,
    category_enum=ArticleCategory,
)
_include_content_routes(
    "guides",
    get_service=get_guide_service,
    entity_model=GuideModel,
    write_model=GuideWriteRequest,
)
_include_content_routes(
    "videos",
    get_service=get_video_service,
    entity_model=VideoModel,
    write_model=VideoWriteRequest,
    category_enum=HelpCategory,
)
_include_content_routes(
    "faqs",
    get_service=get_faq_service,
    entity_model=FaqModel,
    write_model=FaqWriteRequest,
    category_enum=HelpCategory,
)
_include_content_routes(
    "resources",
    get_service=get_resource_service,
    entity_model=ResourceModel,
    write_model=ResourceWriteRequest,
    category_enum=ArticleCategory,
    type_filter=("resource_type", ResourceType),
)


@router.get("/views/{content_type}/{content_id}", response_model=ViewCountModel, summary="Recorded view count")
async def count_views(
    content_type: str,
    content_id: str,
    service: ContentViewServiceDep,
    user: AdminUser,
) -> ViewCountModel:
    views = await service.count_views(content_type, content_id)
    return ViewCountModel(content_type=content_type.upper(), content_id=content_id, views=views)
