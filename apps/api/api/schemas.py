from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from apps.api.services.addresses import AddressBook
from apps.api.services.content import ArticleCategory, Audience, HelpCategory, ResourceType, VideoType
from apps.api.services.onboarding import OnboardingProgress
from apps.api.services.pagination import Page
from apps.api.services.publication import PublicationStatus
from apps.api.services.views import ViewedContentType, ViewerRole
from apps.api.services.tickets import (
    SenderRole,
    TicketAggregate,
    TicketCategory,
    TicketOwnerRole,
    TicketPriority,
    TicketStatus,
)

ItemT = TypeVar("ItemT")


class EntityModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PageModel(BaseModel, Generic[ItemT]):
    items: list[ItemT]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def from_page(cls, page: Page[Any], item_model: type[BaseModel]) -> "PageModel[Any]":
        return cls(
            items=[item_model.model_validate(item) for item in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            pages=page.pages,
        )


class ArticleModel(EntityModel):
    id: str
    title: str
    slug: str
    summary: str
    content: str
    category: ArticleCategory
    tags: list[str]
    audience: Audience
    status: PublicationStatus
    featured: bool
    cover_image_url: str
    created_by: str
    updated_by: str
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime


class GuideStepModel(EntityModel):
    title: str
    content: str
    checklist_key: str = ""


class GuideModel(EntityModel):
    id: str
    title: str
    slug: str
    description: str
    steps: list[GuideStepModel]
    audience: Audience
    status: PublicationStatus
    display_order: int
    created_by: str
    updated_by: str
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime


class VideoModel(EntityModel):
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
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ArticleWriteRequest(BaseModel):
    title: str | None = None
    slug: str | None = None
    summary: str | None = None
    content: str | None = None
    category: str | None = None
    tags: list[str] | str | None = None
    audience: str | None = None
    status: str | None = None
    featured: bool | None = None
    cover_image_url: str | None = None


class GuideWriteRequest(BaseModel):
    title: str | None = None
    slug: str | None = None
    description: str | None = None
    steps: list[dict[str, Any]] | None = None
    audience: str | None = None
    status: str | None = None
    display_order: int | None = None


class VideoWriteRequest(BaseModel):
    title: str | None = None
    slug: str | None = None
    description: str | None = None
    video_type: str | None = None
    video_url: str | None = None
    thumbnail_url: str | None = None
    category: str | None = None
    audience: str | None = None
    status: str | None = None


class FaqModel(EntityModel):
    id: str
    question: str
    answer: str
    category: HelpCategory
    audience: Audience
    status: PublicationStatus
    featured: bool
    created_by: str
    updated_by: str
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime


class FaqWriteRequest(BaseModel):
    question: str | None = None
    answer: str | None = None
    category: str | None = None
    audience: str | None = None
    status: str | None = None
    featured: bool | None = None


class ResourceModel(EntityModel):
    id: str
    title: str
    slug: str
    description: str
    resource_type: ResourceType
    category: ArticleCategory
    audience: Audience
    status: PublicationStatus
    featured: bool
    file_url: str
    file_name: str
    file_size: int | None
    mime_type: str
    storage_key: str
    external_url: str
    thumbnail_url: str
    created_by: str
    updated_by: str
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ResourceWriteRequest(BaseModel):
    title: str | None = None
    slug: str | None = None
    description: str | None = None
    resource_type: str | None = None
    category: str | None = None
    audience: str | None = None
    status: str | None = None
    featured: bool | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    storage_key: str | None = None
    external_url: str | None = None
    thumbnail_url: str | None = None


class ContentViewRequest(BaseModel):
    content_type: str
    content_id: str
    session_id: str | None = None


class ContentViewModel(EntityModel):
    id: str
    content_type: ViewedContentType
    content_id: str
    viewer_role: ViewerRole
    created_at: datetime


class ViewCountModel(BaseModel):
    content_type: ViewedContentType
    content_id: str
    views: int


class UnpublishRequest(BaseModel):
    status: str | None = Field(default=None, description="DRAFT (default) or ARCHIVED")


class AttachmentModel(EntityModel):
    url: str
    file_name: str = ""
    mime_type: str = ""
    size: int = 0


class TicketMessageModel(EntityModel):
    id: str
    sender_role: SenderRole
    sender_id: str | None
    body: str
    attachments: list[AttachmentModel]
    created_at: datetime


class TicketTransitionModel(EntityModel):
    ticket_number: str
    from_status: TicketStatus | None
    to_status: TicketStatus
    actor: str | None
    reason: str


class TicketModel(EntityModel):
    id: str
    ticket_number: str
    owner_id: str | None
    owner_role: TicketOwnerRole
    name: str
    email: str
    phone: str
    subject: str
    message: str
    category: TicketCategory
    status: TicketStatus
    priority: TicketPriority
    attachments: list[AttachmentModel]
    created_at: datetime
    updated_at: datetime


class TicketDetailModel(TicketModel):
    messages: list[TicketMessageModel]
    transitions: list[TicketTransitionModel] = Field(default_factory=list)

    @classmethod
    def from_aggregate(cls, aggregate: TicketAggregate) -> "TicketDetailModel":
        base = TicketModel.model_validate(aggregate.ticket)
        return cls(
            **base.model_dump(),
            messages=[TicketMessageModel.model_validate(message) for message in aggregate.messages],
            transitions=[TicketTransitionModel.model_validate(item) for item in aggregate.transitions],
        )


class TicketCreateRequest(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    subject: str = ""
    message: str = ""
    category: str | None = None
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class TicketReplyRequest(BaseModel):
    message: str = ""
    attachments: list[dict[str, Any]] = Field(default_factory=list)


class TicketStatusChangeRequest(BaseModel):
    status: str


class TicketPriorityChangeRequest(BaseModel):
    priority: str


class AddressEntryModel(EntityModel):
    id: str
    label: str
    name: str
    phone: str
    address_line1: str
    address_line2: str
    city: str
    province: str
    postal_code: str
    is_default: bool


class AddressBookModel(BaseModel):
    owner_id: str
    addresses: list[AddressEntryModel]
    default_address_id: str | None = None

    @classmethod
    def from_entity(cls, book: AddressBook) -> "AddressBookModel":
        default = book.default_address
        return cls(
            owner_id=book.owner_id,
            addresses=[AddressEntryModel.model_validate(entry) for entry in book.addresses],
            default_address_id=None if default is None else default.id,
        )


class AddressWriteRequest(BaseModel):
    label: str | None = None
    name: str | None = None
    phone: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    is_default: bool | None = None


class ProgressModel(EntityModel):
    guide_slug: str
    completed_steps: list[int]
    completed: bool
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, progress: OnboardingProgress) -> "ProgressModel":
        return cls.model_validate(progress)


class ProgressUpdateRequest(BaseModel):
    completed_steps: list[Any] = Field(default_factory=list)
