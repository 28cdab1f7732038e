"""SQLModel table definitions for the help center data layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    """Generate a random UUID string."""

    return str(uuid.uuid4())


class KnowledgeArticleTable(SQLModel, table=True):
    """Knowledge base articles addressed to vendors and customers."""

    __tablename__ = "knowledge_articles"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(200), nullable=False))
    slug: str = Field(sa_column=Column(String(160), nullable=False, unique=True, index=True))
    summary: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    content: str = Field(sa_column=Column(Text, nullable=False))
    category: str = Field(sa_column=Column(String(50), nullable=False))
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    audience: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    featured: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    cover_image_url: str = Field(default="", sa_column=Column(String(500), nullable=False, default=""))
    created_by: str = Field(sa_column=Column(String(255), nullable=False))
    updated_by: str = Field(sa_column=Column(String(255), nullable=False))
    published_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class OnboardingGuideTable(SQLModel, table=True):
    """Step-by-step onboarding guides; steps are stored as a JSON document."""

    __tablename__ = "onboarding_guides"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(220), nullable=False))
    slug: str = Field(sa_column=Column(String(160), nullable=False, unique=True, index=True))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    steps: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    audience: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    display_order: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_by: str = Field(sa_column=Column(String(255), nullable=False))
    updated_by: str = Field(sa_column=Column(String(255), nullable=False))
    published_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class VideoTutorialTable(SQLModel, table=True):
    """Video tutorials hosted externally or uploaded to blob storage."""

    __tablename__ = "video_tutorials"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(220), nullable=False))
    slug: str = Field(sa_column=Column(String(160), nullable=False, unique=True, index=True))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    video_type: str = Field(sa_column=Column(String(20), nullable=False))
    video_url: str = Field(sa_column=Column(String(1000), nullable=False))
    thumbnail_url: str = Field(default="", sa_column=Column(String(1000), nullable=False, default=""))
    category: str = Field(sa_column=Column(String(50), nullable=False))
    audience: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    created_by: str = Field(sa_column=Column(String(255), nullable=False))
    updated_by: str = Field(sa_column=Column(String(255), nullable=False))
    published_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class SequenceCounterTable(SQLModel, table=True):
    """Named monotonically increasing counters backing human readable codes."""

    __tablename__ = "sequence_counters"

    name: str = Field(sa_column=Column(String(100), primary_key=True))
    seq: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class SupportTicketTable(SQLModel, table=True):
    """Support tickets submitted by guests, customers and vendors."""

    __tablename__ = "support_tickets"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    ticket_number: str = Field(sa_column=Column(String(40), nullable=False, unique=True, index=True))
    owner_id: str | None = Field(default=None, sa_column=Column(String(255), nullable=True, index=True))
    owner_role: str = Field(sa_column=Column(String(20), nullable=False))
    name: str = Field(sa_column=Column(String(120), nullable=False))
    email: str = Field(sa_column=Column(String(160), nullable=False))
    phone: str = Field(default="", sa_column=Column(String(40), nullable=False, default=""))
    subject: str = Field(sa_column=Column(String(200), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    category: str = Field(sa_column=Column(String(50), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    priority: str = Field(sa_column=Column(String(20), nullable=False))
    attachments: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class SupportMessageTable(SQLModel, table=True):
    """Messages of a support ticket thread, ordered by creation time."""

    __tablename__ = "support_messages"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("support_tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    sender_role: str = Field(sa_column=Column(String(20), nullable=False))
    sender_id: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    body: str = Field(sa_column=Column(Text, nullable=False))
    attachments: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class AddressBookTable(SQLModel, table=True):
    """One address book document per owner; entries live in a JSON column."""

    __tablename__ = "address_books"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    owner_id: str = Field(sa_column=Column(String(255), nullable=False, unique=True, index=True))
    addresses: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    version: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class OnboardingProgressTable(SQLModel, table=True):
    """Checklist progress of one owner through one onboarding guide."""

    __tablename__ = "onboarding_progress"
    __table_args__ = (UniqueConstraint("owner_id", "guide_slug", name="uq_onboarding_progress_owner_guide"),)

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    owner_id: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    guide_slug: str = Field(sa_column=Column(String(160), nullable=False))
    completed_steps: list[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    completed: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class FaqTable(SQLModel, table=True):
    """Frequently asked questions; addressed by id, not by slug."""

    __tablename__ = "faqs"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    question: str = Field(sa_column=Column(String(300), nullable=False))
    answer: str = Field(sa_column=Column(Text, nullable=False))
    category: str = Field(sa_column=Column(String(50), nullable=False))
    audience: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    featured: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_by: str = Field(sa_column=Column(String(255), nullable=False))
    updated_by: str = Field(sa_column=Column(String(255), nullable=False))
    published_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class KnowledgeResourceTable(SQLModel, table=True):
    """Downloadable or linked resources (PDFs, files, external links) for the knowledge base."""

    __tablename__ = "knowledge_resources"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(200), nullable=False))
    slug: str = Field(sa_column=Column(String(160), nullable=False, unique=True, index=True))
    description: str = Field(default="", sa_column=Column(String(1000), nullable=False, default=""))
    resource_type: str = Field(sa_column=Column(String(20), nullable=False))
    category: str = Field(sa_column=Column(String(50), nullable=False))
    audience: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    featured: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    file_url: str = Field(default="", sa_column=Column(String(1000), nullable=False, default=""))
    file_name: str = Field(default="", sa_column=Column(String(255), nullable=False, default=""))
    file_size: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    mime_type: str = Field(default="", sa_column=Column(String(120), nullable=False, default=""))
    storage_key: str = Field(default="", sa_column=Column(String(500), nullable=False, default=""))
    external_url: str = Field(default="", sa_column=Column(String(1000), nullable=False, default=""))
    thumbnail_url: str = Field(default="", sa_column=Column(String(1000), nullable=False, default=""))
    created_by: str = Field(sa_column=Column(String(255), nullable=False))
    updated_by: str = Field(sa_column=Column(String(255), nullable=False))
    published_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class ContentViewTable(SQLModel, table=True):
    """One recorded view of an article or resource."""

    __tablename__ = "content_views"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    content_type: str = Field(sa_column=Column(String(20), nullable=False))
    content_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    viewer_id: str | None = Field(default=None, sa_column=Column(String(255), nullable=True, index=True))
    viewer_role: str = Field(sa_column=Column(String(20), nullable=False))
    session_id: str | None = Field(default=None, sa_column=Column(String(120), nullable=True))
    ip_hash: str | None = Field(default=None, sa_column=Column(String(64), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
