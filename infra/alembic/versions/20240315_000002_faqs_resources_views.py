"""FAQs, knowledge resources and content view tracking."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20240315_000002"
down_revision = "20240301_000001"
branch_labels = None
depends_on = None


def _publication_columns() -> list[sa.Column]:
    return [
        sa.Column("audience", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, index=True),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=False),
        sa.Column("published_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "faqs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("question", sa.String(length=300), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        *_publication_columns(),
    )

    op.create_table(
        "knowledge_resources",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=160), nullable=False, unique=True, index=True),
        sa.Column("description", sa.String(length=1000), nullable=False, server_default=sa.text("''")),
        sa.Column("resource_type", sa.String(length=20), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("file_url", sa.String(length=1000), nullable=False, server_default=sa.text("''")),
        sa.Column("file_name", sa.String(length=255), nullable=False, server_default=sa.text("''")),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.String(length=120), nullable=False, server_default=sa.text("''")),
        sa.Column("storage_key", sa.String(length=500), nullable=False, server_default=sa.text("''")),
        sa.Column("external_url", sa.String(length=1000), nullable=False, server_default=sa.text("''")),
        sa.Column("thumbnail_url", sa.String(length=1000), nullable=False, server_default=sa.text("''")),
        *_publication_columns(),
    )

    op.create_table(
        "content_views",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("content_type", sa.String(length=20), nullable=False),
        sa.Column("content_id", sa.String(length=36), nullable=False, index=True),
        sa.Column("viewer_id", sa.String(length=255), nullable=True, index=True),
        sa.Column("viewer_role", sa.String(length=20), nullable=False),
        sa.Column("session_id", sa.String(length=120), nullable=True),
        sa.Column("ip_hash", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("content_views")
    op.drop_table("knowledge_resources")
    op.drop_table("faqs")
