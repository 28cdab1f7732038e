from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Request, status

from apps.api.api.schemas import (
    ArticleModel,
    ContentViewModel,
    ContentViewRequest,
    FaqModel,
    GuideModel,
    PageModel,
    ResourceModel,
    VideoModel,
)
from apps.api.dependencies.auth import CurrentUser
from apps.api.dependencies.services import (
    ArticleServiceDep,
    ContentViewServiceDep,
    FaqServiceDep,
    GuideServiceDep,
    PageDep,
    ResourceServiceDep,
    VideoServiceDep,
)
from apps.api.services.content import (
    ArticleCategory,
    HelpCategory,
    ResourceType,
    audiences_for_role,
    narrow_audiences,
)
from apps.api.services.sanitize import coerce_choice, to_bool

router = APIRouter(prefix="/help", tags=["help"])


@router.get("/articles", response_model=PageModel[ArticleModel], summary="Published knowledge base articles")
async def list_articles(
    service: ArticleServiceDep,
    user: CurrentUser,
    page: PageDep,
    category: str | None = None,
    q: str | None = None,
) -> PageModel:
    result = await service.list_published(
        audiences=audiences_for_role(user.account_role),
        page=page,
        category=coerce_choice(ArticleCategory, category, None),
        query=q,
    )
    return PageModel.from_page(result, ArticleModel)


@router.get("/articles/{slug}", response_model=ArticleModel)
async def get_article(slug: str, service: ArticleServiceDep, user: CurrentUser) -> ArticleModel:
    article = await service.get_published_by_slug(slug, audiences=audiences_for_role(user.account_role))
    return ArticleModel.model_validate(article)


@router.get("/guides", response_model=PageModel[GuideModel], summary="Published onboarding guides")
async def list_guides(
    service: GuideServiceDep,
    user: CurrentUser,
    page: PageDep,
    q: str | None = None,
) -> PageModel:
    result = await service.list_published(
        audiences=audiences_for_role(user.account_role),
        page=page,
        query=q,
    )
    return PageModel.from_page(result, GuideModel)


@router.get("/guides/{slug}", response_model=GuideModel)
async def get_guide(slug: str, service: GuideServiceDep, user: CurrentUser) -> GuideModel:
    guide = await service.get_published_by_slug(slug, audiences=audiences_for_role(user.account_role))
    return GuideModel.model_validate(guide)


@router.get("/videos", response_model=PageModel[VideoModel], summary="Published video tutorials")
async def list_videos(
    service: VideoServiceDep,
    user: CurrentUser,
    page: PageDep,
    category: str | None = None,
    q: str | None = None,
) -> PageModel:
    result = await service.list_published(
        audiences=audiences_for_role(user.account_role),
        page=page,
        category=coerce_choice(HelpCategory, category, None),
        query=q,
    )
    return PageModel.from_page(result, VideoModel)


@router.get("/videos/{slug}", response_model=VideoModel)
async def get_video(slug: str, service: VideoServiceDep, user: CurrentUser) -> VideoModel:
    video = await service.get_published_by_slug(slug, audiences=audiences_for_role(user.account_role))
    return VideoModel.model_validate(video)


@router.get("/faqs", response_model=PageModel[FaqModel], summary="Published frequently asked questions")
async def list_faqs(
    service: FaqServiceDep,
    user: CurrentUser,
    page: PageDep,
    category: str | None = None,
    audience: str | None = None,
    q: str | None = None,
) -> PageModel:
    result = await service.list_published(
        audiences=narrow_audiences(audiences_for_role(user.account_role), audience),
        page=page,
        category=coerce_choice(HelpCategory, category, None),
        query=q,
    )
    return PageModel.from_page(result, FaqModel)


@router.get("/resources", response_model=PageModel[ResourceModel], summary="Published knowledge base resources")
async def list_resources(
    service: ResourceServiceDep,
    user: CurrentUser,
    page: PageDep,
    category: str | None = None,
    resource_type: Annotated[str | None, Query(alias="type")] = None,
    featured: str | None = None,
    q: str | None = None,
) -> PageModel:
    result = await service.list_published(
        audiences=audiences_for_role(user.account_role),
        page=page,
        category=coerce_choice(ArticleCategory, category, None),
        filters={
            "resource_type": coerce_choice(ResourceType, resource_type, None),
            "featured": None if featured is None else to_bool(featured),
        },
        query=q,
    )
    return PageModel.from_page(result, ResourceModel)


@router.get("/resources/{slug}", response_model=ResourceModel)
async def get_resource(slug: str, service: ResourceServiceDep, user: CurrentUser) -> ResourceModel:
    resource = await service.get_published_by_slug(slug, audiences=audiences_for_role(user.account_role))
    return ResourceModel.model_validate(resource)


@router.post("/views", response_model=ContentViewModel, status_code=status.HTTP_201_CREATED)
async def track_view(
    payload: ContentViewRequest,
    request: Request,
    service: ContentViewServiceDep,
    user: CurrentUser,
) -> ContentViewModel:
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    view = await service.track(
        payload.content_type,
        payload.content_id,
        viewer_id=user.user_id,
        account_role=user.account_role,
        session_id=payload.session_id,
        ip_address=forwarded or (request.client.host if request.client else None),
        user_agent=request.headers.get("user-agent"),
    )
    return ContentViewModel.model_validate(view)
