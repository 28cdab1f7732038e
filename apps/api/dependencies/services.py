from typing import Annotated, Any

from fastapi import Depends, HTTPException, Query, Request

from apps.api.core.config import get_settings
from apps.api.services.addresses import AddressBookService
from apps.api.services.content import ArticleService, FaqService, GuideService, ResourceService, VideoService
from apps.api.services.onboarding import OnboardingService
from apps.api.services.pagination import PageRequest
from apps.api.services.tickets import TicketService
from apps.api.services.views import ContentViewService


def _service_from_state(request: Request, attribute: str, label: str) -> Any:
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} service is not available")
    return service


async def get_article_service(request: Request) -> ArticleService:
    return _service_from_state(request, "article_service", "Article")


async def get_guide_service(request: Request) -> GuideService:
    return _service_from_state(request, "guide_service", "Guide")


async def get_video_service(request: Request) -> VideoService:
    return _service_from_state(request, "video_service", "Video")


async def get_faq_service(request: Request) -> FaqService:
    return _service_from_state(request, "faq_service", "FAQ")


async def get_resource_service(request: Request) -> ResourceService:
    return _service_from_state(request, "resource_service", "Resource")


async def get_content_view_service(request: Request) -> ContentViewService:
    return _service_from_state(request, "content_view_service", "Content view")


async def get_ticket_service(request: Request) -> TicketService:
    return _service_from_state(request, "ticket_service", "Ticket")


async def get_address_book_service(request: Request) -> AddressBookService:
    return _service_from_state(request, "address_book_service", "Address book")


async def get_onboarding_service(request: Request) -> OnboardingService:
    return _service_from_state(request, "onboarding_service", "Onboarding")


async def page_request(
    page: Annotated[int | None, Query(ge=1)] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> PageRequest:
    settings = get_settings()
    return PageRequest.parse(
        page,
        limit,
        default_limit=settings.page_size_default,
        max_limit=settings.page_size_max,
    )


ArticleServiceDep = Annotated[ArticleService, Depends(get_article_service)]
GuideServiceDep = Annotated[GuideService, Depends(get_guide_service)]
VideoServiceDep = Annotated[VideoService, Depends(get_video_service)]
FaqServiceDep = Annotated[FaqService, Depends(get_faq_service)]
ResourceServiceDep = Annotated[ResourceService, Depends(get_resource_service)]
ContentViewServiceDep = Annotated[ContentViewService, Depends(get_content_view_service)]
TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
AddressBookServiceDep = Annotated[AddressBookService, Depends(get_address_book_service)]
OnboardingServiceDep = Annotated[OnboardingService, Depends(get_onboarding_service)]
PageDep = Annotated[PageRequest, Depends(page_request)]
