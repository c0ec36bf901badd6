"""Initial schema: users, admins, companies, reviews, company requests.

Revision ID: 001
Revises: None
Create Date: 2026-09-14
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

DIMENSIONS = (
    "compensation",
    "management",
    "culture",
    "career",
    "recognition",
    "environment",
    "worklife",
    "cooperation",
    "business_health",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), default=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "admin_users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "company_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("requester_hash", sa.String(64), nullable=False),
        sa.Column("requester_email", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(100), nullable=False),
        sa.Column("company_website", sa.String(500), nullable=False),
        sa.Column("email_domains", JSONB(), server_default="[]"),
        sa.Column("industry", sa.String(100), nullable=False),
        sa.Column("company_size", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), default=""),
        sa.Column("justification", sa.Text(), default=""),
        sa.Column(
            "status",
            sa.Enum("pending", "approved", "rejected", name="requeststatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
    )
    op.create_index("ix_company_requests_requester_hash", "company_requests", ["requester_hash"])
    op.create_index("idx_company_requests_status_created", "company_requests", ["status", "created_at"])

    op.create_table(
        "companies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("industry", sa.String(100), default=""),
        sa.Column("size", sa.String(50), default=""),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("email_domains", JSONB(), server_default="[]"),
        sa.Column("source", sa.String(50), nullable=True),
        sa.Column(
            "request_id",
            UUID(as_uuid=True),
            sa.ForeignKey("company_requests.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_companies_name", "companies", ["name"])

    op.create_table(
        "reviews",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "company_id",
            UUID(as_uuid=True),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column(
            "recommendation",
            sa.Enum("highly-recommend", "maybe", "not-recommended", name="recommendation"),
            nullable=False,
        ),
        sa.Column("role", sa.String(255), default=""),
        sa.Column("pros", JSONB(), server_default="[]"),
        sa.Column("cons", JSONB(), server_default="[]"),
        sa.Column("advice", sa.Text(), nullable=True),
        *[sa.Column(d, sa.Integer(), nullable=False) for d in DIMENSIONS],
        sa.Column("helpful_count", sa.Integer(), server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("overall_rating BETWEEN 1 AND 5", name="ck_reviews_overall_rating"),
    )
    op.create_index("idx_reviews_company", "reviews", ["company_id"])
    op.create_index("idx_reviews_created", "reviews", ["created_at"])


def downgrade() -> None:
    op.drop_table("reviews")
    op.drop_table("companies")
    op.drop_table("company_requests")
    op.drop_table("admin_users")
    op.drop_table("users")
    sa.Enum(name="recommendation").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="requeststatus").drop(op.get_bind(), checkfirst=True)
