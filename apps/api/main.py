from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from apps.api.api.errors import register_error_handlers
from apps.api.api.routes import addresses, admin_help, admin_support, help, onboarding, ping, support
from apps.api.core.config import Settings, get_settings
from apps.api.core.logging import configure_logging, init_tracer, shutdown_tracer
from apps.api.services.addresses import AddressBookRepository, AddressBookService
from apps.api.services.content import (
    ArticleRepository,
    ArticleService,
    FaqRepository,
    FaqService,
    GuideRepository,
    GuideService,
    ResourceRepository,
    ResourceService,
    VideoRepository,
    VideoService,
)
from apps.api.services.onboarding import OnboardingService, ProgressRepository
from apps.api.services.sequence import SequentialCodeGenerator, SqlCounterStore
from apps.api.services.slugs import UniqueSlugAllocator
from apps.api.services.tickets import TicketRepository, TicketService
from apps.api.services.views import ContentViewRepository, ContentViewService


def _to_asyncpg_dsn(dsn: str) -> str:
    """Ensure the SQLAlchemy DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    return dsn


def build_services(app: FastAPI, session_factory: async_sessionmaker, settings: Settings, engine=None) -> None:
    """Attach every help center service to ``app.state``."""

    def allocator(repository) -> UniqueSlugAllocator:
        return UniqueSlugAllocator(
            repository,
            max_length=settings.slug_max_length,
            max_attempts=settings.slug_max_attempts,
        )

    article_repository = ArticleRepository(session_factory, engine=engine)
    guide_repository = GuideRepository(session_factory, engine=engine)
    video_repository = VideoRepository(session_factory, engine=engine)
    app.state.article_service = ArticleService(article_repository, allocator=allocator(article_repository))
    app.state.guide_service = GuideService(guide_repository, allocator=allocator(guide_repository))
    app.state.video_service = VideoService(video_repository, allocator=allocator(video_repository))
    resource_repository = ResourceRepository(session_factory, engine=engine)
    app.state.resource_service = ResourceService(resource_repository, allocator=allocator(resource_repository))
    app.state.faq_service = FaqService(FaqRepository(session_factory, engine=engine))
    app.state.content_view_service = ContentViewService(
        ContentViewRepository(session_factory, engine=engine),
        articles=app.state.article_service,
        resources=app.state.resource_service,
    )

    code_generator = SequentialCodeGenerator(
        SqlCounterStore(session_factory, engine=engine),
        prefix=settings.ticket_number_prefix,
    )
    app.state.ticket_service = TicketService(
        TicketRepository(session_factory, engine=engine),
        code_generator=code_generator,
        counter_name=settings.ticket_counter_name,
        max_attachments=settings.max_ticket_attachments,
    )
    app.state.address_book_service = AddressBookService(AddressBookRepository(session_factory, engine=engine))
    app.state.onboarding_service = OnboardingService(
        ProgressRepository(session_factory, engine=engine),
        app.state.guide_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    db_engine = None
    app.state.db_engine = None
    app.state.db_session_factory = None
    try:
        db_engine = create_async_engine(_to_asyncpg_dsn(settings.postgres_dsn), future=True)
        session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
        build_services(app, session_factory, settings, engine=db_engine)
        if settings.create_schema:
            await app.state.article_service.ensure_schema()
        app.state.db_engine = db_engine
        app.state.db_session_factory = session_factory
    except Exception:  # pragma: no cover - service initialisation best effort
        logger.exception("Database initialisation failed; help center services are unavailable")
        for name in (
            "article_service",
            "guide_service",
            "video_service",
            "faq_service",
            "resource_service",
            "content_view_service",
            "ticket_service",
            "address_book_service",
            "onboarding_service",
        ):
            setattr(app.state, name, None)
        if db_engine is not None:
            await db_engine.dispose()
            db_engine = None
    try:
        yield
    finally:
        if db_engine is not None:
            await db_engine.dispose()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(ping.router)
    app.include_router(help.router)
    app.include_router(admin_help.router)
    app.include_router(support.router)
    app.include_router(admin_support.router)
    app.include_router(addresses.router)
    app.include_router(onboarding.router)
    return app


app = create_app()
