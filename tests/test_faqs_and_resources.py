from __future__ import annotations

import pytest

from apps.api.services.content import (
    ArticleCategory,
    ArticleRepository,
    ArticleService,
    Audience,
    FaqRepository,
    FaqService,
    HelpCategory,
    ResourceRepository,
    ResourceService,
    ResourceType,
    audiences_for_role,
    narrow_audiences,
)
from apps.api.services.errors import ForbiddenError, NotFoundError, ValidationFailedError
from apps.api.services.pagination import PageRequest
from apps.api.services.publication import PublicationLifecycle, PublicationStatus
from apps.api.services.views import (
    ContentViewRepository,
    ContentViewService,
    ViewedContentType,
    ViewerRole,
    fingerprint,
)


@pytest.fixture
def faqs(session_factory, engine, clock) -> FaqService:
    return FaqService(FaqRepository(session_factory, engine=engine), clock=clock)


@pytest.fixture
def resources(session_factory, engine, clock) -> ResourceService:
    return ResourceService(ResourceRepository(session_factory, engine=engine), clock=clock)


@pytest.fixture
def articles(session_factory, engine, clock) -> ArticleService:
    return ArticleService(ArticleRepository(session_factory, engine=engine), clock=clock)


@pytest.fixture
def views(session_factory, engine, clock, articles, resources) -> ContentViewService:
    return ContentViewService(
        ContentViewRepository(session_factory, engine=engine),
        articles=articles,
        resources=resources,
        clock=clock,
    )


def test_narrow_audiences_only_within_visible_set():
    vendor = audiences_for_role("vendor")

    assert narrow_audiences(vendor, "vendor") == (Audience.VENDOR,)
    assert narrow_audiences(vendor, "CUSTOMER") == vendor
    assert narrow_audiences(vendor, None) == vendor


@pytest.mark.asyncio
async def test_faq_defaults_and_required_fields(faqs: FaqService):
    faq = await faqs.create(
        {"question": "  How do refunds work? ", "answer": "<script>x()</script>Within 7 days", "category": "nope"},
        actor="admin",
    )

    assert faq.question == "How do refunds work?"
    assert faq.answer == "Within 7 days"
    assert faq.category is HelpCategory.GENERAL
    assert faq.audience is Audience.ALL
    assert faq.status is PublicationStatus.DRAFT
    assert faq.published_at is None
    assert faq.featured is False

    with pytest.raises(ValidationFailedError):
        await faqs.create({"question": "Only a question"}, actor="admin")
    with pytest.raises(ValidationFailedError):
        await faqs.update(faq.id, {"answer": "   "}, actor="admin")


@pytest.mark.asyncio
async def test_faq_lifecycle_keeps_publish_timestamp_in_step(faqs: FaqService):
    faq = await faqs.create({"question": "Q", "answer": "A"}, actor="admin")

    published = await faqs.publish(faq.id, actor="editor")
    edited = await faqs.update(faq.id, {"featured": True}, actor="editor")
    archived = await faqs.unpublish(faq.id, actor="editor", target="ARCHIVED")
    stored = await faqs.get(faq.id)

    assert published.status is PublicationStatus.PUBLISHED
    assert published.published_at is not None
    assert edited.published_at == published.published_at
    assert edited.featured is True
    assert archived.status is PublicationStatus.ARCHIVED
    assert stored.published_at is None
    assert PublicationLifecycle.is_consistent(stored)


@pytest.mark.asyncio
async def test_faqs_have_no_slug_lookup(faqs: FaqService):
    await faqs.create({"question": "Q", "answer": "A", "status": "PUBLISHED"}, actor="admin")

    with pytest.raises(NotFoundError):
        await faqs.get_published_by_slug("q", audiences=(Audience.ALL,))


@pytest.mark.asyncio
async def test_public_faq_listing_filters_and_orders_featured_first(faqs: FaqService):
    await faqs.create({"question": "Payout timing", "answer": "Weekly", "status": "PUBLISHED"}, actor="admin")
    await faqs.create(
        {"question": "Vendor fees", "answer": "5%", "audience": "VENDOR", "featured": True, "status": "PUBLISHED"},
        actor="admin",
    )
    await faqs.create({"question": "Draft", "answer": "Hidden"}, actor="admin")
    await faqs.create(
        {"question": "Security keys", "answer": "Rotate", "category": "SECURITY", "status": "PUBLISHED"},
        actor="admin",
    )

    guest = await faqs.list_published(audiences=audiences_for_role(None), page=PageRequest(1, 12))
    vendor = await faqs.list_published(audiences=audiences_for_role("vendor"), page=PageRequest(1, 12))
    security = await faqs.list_published(
        audiences=audiences_for_role("vendor"), page=PageRequest(1, 12), category=HelpCategory.SECURITY
    )
    searched = await faqs.list_published(audiences=audiences_for_role("vendor"), page=PageRequest(1, 12), query="weekly")

    assert {faq.question for faq in guest.items} == {"Payout timing", "Security keys"}
    assert vendor.items[0].question == "Vendor fees"
    assert vendor.total == 3
    assert [faq.question for faq in security.items] == ["Security keys"]
    assert [faq.question for faq in searched.items] == ["Payout timing"]


@pytest.mark.asyncio
async def test_resource_requires_valid_type_and_defaults(resources: ResourceService):
    with pytest.raises(ValidationFailedError):
        await resources.create({"title": "Brand kit"}, actor="admin")
    with pytest.raises(ValidationFailedError):
        await resources.create({"title": "Brand kit", "resource_type": "ZIP"}, actor="admin")

    resource = await resources.create(
        {"title": "Brand kit", "resource_type": "pdf", "file_url": " https://cdn/kit.pdf ", "file_size": "2048"},
        actor="admin",
    )

    assert resource.slug == "brand-kit"
    assert resource.resource_type is ResourceType.PDF
    assert resource.category is ArticleCategory.OTHER
    assert resource.audience is Audience.VENDOR
    assert resource.file_url == "https://cdn/kit.pdf"
    assert resource.file_size == 2048
    assert resource.status is PublicationStatus.DRAFT


@pytest.mark.asyncio
async def test_resource_slugs_and_public_filters(resources: ResourceService):
    pdf = await resources.create(
        {"title": "Pricing guide", "resource_type": "PDF", "status": "PUBLISHED", "featured": True}, actor="admin"
    )
    link = await resources.create(
        {"title": "Pricing guide", "resource_type": "LINK", "external_url": "https://x", "status": "PUBLISHED"},
        actor="admin",
    )

    assert [pdf.slug, link.slug] == ["pricing-guide", "pricing-guide-1"]

    links = await resources.list_published(
        audiences=audiences_for_role("vendor"),
        page=PageRequest(1, 12),
        filters={"resource_type": ResourceType.LINK, "featured": None},
    )
    featured = await resources.list_published(
        audiences=audiences_for_role("vendor"),
        page=PageRequest(1, 12),
        filters={"featured": True},
    )

    assert [item.id for item in links.items] == [link.id]
    assert [item.id for item in featured.items] == [pdf.id]
    with pytest.raises(NotFoundError):
        await resources.get_published_by_slug("pricing-guide", audiences=audiences_for_role("customer"))
    found = await resources.get_published_by_slug("PRICING-GUIDE-1", audiences=audiences_for_role("vendor"))
    assert found.id == link.id


@pytest.mark.asyncio
async def test_resource_update_reslugs_and_archives(resources: ResourceService):
    await resources.create({"title": "Tax forms", "resource_type": "FILE"}, actor="admin")
    other = await resources.create({"title": "Invoices", "resource_type": "FILE"}, actor="admin")

    renamed = await resources.update(other.id, {"title": "Tax forms", "resource_type": "PDF"}, actor="editor")
    archived = await resources.delete(other.id, actor="editor")

    assert renamed.slug == "tax-forms-1"
    assert renamed.resource_type is ResourceType.PDF
    assert archived.status is PublicationStatus.ARCHIVED
    assert archived.updated_by == "editor"


@pytest.mark.asyncio
async def test_views_are_recorded_for_published_content(views: ContentViewService, articles: ArticleService):
    article = await articles.create({"title": "Getting paid", "content": "Body", "status": "PUBLISHED"}, actor="admin")

    view = await views.track(
        "article",
        article.id,
        viewer_id="vendor-1",
        account_role="vendor",
        session_id="  session-9 ",
        ip_address="10.0.0.1",
        user_agent="pytest",
    )
    await views.track("ARTICLE", article.id)

    assert view.content_type is ViewedContentType.ARTICLE
    assert view.viewer_role is ViewerRole.VENDOR
    assert view.session_id == "session-9"
    assert view.ip_hash == fingerprint("10.0.0.1", "pytest")
    assert view.ip_hash != "10.0.0.1"
    assert await views.count_views("article", article.id) == 2


@pytest.mark.asyncio
async def test_unpublished_content_is_tracked_for_admins_only(
    views: ContentViewService, resources: ResourceService
):
    draft = await resources.create({"title": "Draft kit", "resource_type": "LINK"}, actor="admin")

    with pytest.raises(ForbiddenError):
        await views.track("RESOURCE", draft.id, account_role="customer")

    view = await views.track("RESOURCE", draft.id, viewer_id="admin-1", account_role="admin")
    assert view.viewer_role is ViewerRole.ADMIN


@pytest.mark.asyncio
async def test_view_tracking_validates_input(views: ContentViewService):
    with pytest.raises(ValidationFailedError):
        await views.track("VIDEO", "x")
    with pytest.raises(ValidationFailedError):
        await views.track("ARTICLE", "  ")
    with pytest.raises(NotFoundError):
        await views.track("ARTICLE", "missing")
