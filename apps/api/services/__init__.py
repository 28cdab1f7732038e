"""Service layer exports."""

from .addresses import AddressBook, AddressBookRepository, AddressBookService, AddressEntry
from .content import (
    ArticleRepository,
    ArticleService,
    Audience,
    FaqRepository,
    FaqService,
    GuideRepository,
    GuideService,
    ResourceRepository,
    ResourceService,
    VideoRepository,
    VideoService,
    audiences_for_role,
)
from .errors import (
    ConcurrencyConflictError,
    ForbiddenError,
    HelpCenterError,
    InvalidTransitionError,
    NotFoundError,
    UniquenessExhaustedError,
    ValidationFailedError,
)
from .onboarding import OnboardingService, ProgressRepository, normalize_completed_steps
from .publication import PublicationLifecycle, PublicationStatus
from .sequence import SequentialCodeGenerator, SqlCounterStore
from .slugs import UniqueSlugAllocator, slugify
from .tickets import TicketRepository, TicketService, TicketStateMachine, TicketStatus
from .views import ContentViewRepository, ContentViewService

__all__ = [
    "AddressBook",
    "AddressBookRepository",
    "AddressBookService",
    "AddressEntry",
    "ArticleRepository",
    "ArticleService",
    "Audience",
    "ConcurrencyConflictError",
    "ContentViewRepository",
    "ContentViewService",
    "FaqRepository",
    "FaqService",
    "ForbiddenError",
    "GuideRepository",
    "GuideService",
    "HelpCenterError",
    "InvalidTransitionError",
    "NotFoundError",
    "OnboardingService",
    "ProgressRepository",
    "PublicationLifecycle",
    "PublicationStatus",
    "ResourceRepository",
    "ResourceService",
    "SequentialCodeGenerator",
    "SqlCounterStore",
    "TicketRepository",
    "TicketService",
    "TicketStateMachine",
    "TicketStatus",
    "UniqueSlugAllocator",
    "UniquenessExhaustedError",
    "ValidationFailedError",
    "audiences_for_role",
    "normalize_completed_steps",
    "slugify",
]
