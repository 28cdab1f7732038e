"""Database models and utilities."""

from .dialects import ensure_aware, is_unique_violation, upsert_insert
from .models import (
    AddressBookTable,
    ContentViewTable,
    FaqTable,
    KnowledgeArticleTable,
    KnowledgeResourceTable,
    OnboardingGuideTable,
    OnboardingProgressTable,
    SequenceCounterTable,
    SupportMessageTable,
    SupportTicketTable,
    VideoTutorialTable,
)

__all__ = [
    "AddressBookTable",
    "ContentViewTable",
    "FaqTable",
    "KnowledgeArticleTable",
    "KnowledgeResourceTable",
    "OnboardingGuideTable",
    "OnboardingProgressTable",
    "SequenceCounterTable",
    "SupportMessageTable",
    "SupportTicketTable",
    "VideoTutorialTable",
    "ensure_aware",
    "is_unique_violation",
    "upsert_insert",
]
