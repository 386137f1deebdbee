"""create scholarship application schema

Revision ID: a7c1e9d2b4f0
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration:
1. Creates the enum types used by users, organizations, scholarships,
   applications and notification events
2. Creates the tables in foreign-key order
3. Adds the integrity constraints the application lifecycle relies on:
   - uq_applications_scholarship_applicant (one application per pair)
   - ck_scholarships_application_count / ck_scholarships_capacity
   - uq_notification_events_dedupe_key (idempotent outbox)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a7c1e9d2b4f0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS = {
    "user_role": ("student", "admin"),
    "organization_type": (
        "government",
        "private",
        "non_profit",
        "educational",
        "foundation",
        "corporate",
    ),
    "amount_type": ("one_time", "annual", "monthly", "semester"),
    "scholarship_status": ("draft", "active", "closed", "expired", "cancelled"),
    "application_status": (
        "draft",
        "submitted",
        "under_review",
        "approved",
        "rejected",
        "waitlisted",
    ),
    "notification_kind": ("application_submitted", "status_changed"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """id, created_at and updated_at shared by every table."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the full schema."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "organizations",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", _enum("organization_type"), nullable=False),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_organizations_name"), "organizations", ["name"], unique=False)

    op.create_table(
        "scholarships",
        *_base_columns(),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("amount_value", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("amount_currency", sa.String(length=3), nullable=False),
        sa.Column("amount_type", _enum("amount_type"), nullable=False),
        sa.Column("application_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notification_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", _enum("scholarship_status"), nullable=False),
        sa.Column("max_applications", sa.Integer(), nullable=True),
        sa.Column("application_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("approved_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("rejected_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("waitlisted_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reviewed_count", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["organization_id"],
            ["organizations.id"],
            name="fk_scholarships_organization_id",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint("application_count >= 0", name="ck_scholarships_application_count"),
        sa.CheckConstraint(
            "max_applications IS NULL OR application_count <= max_applications",
            name="ck_scholarships_capacity",
        ),
    )
    op.create_index(
        "ix_scholarships_status_deadline",
        "scholarships",
        ["status", "application_deadline"],
        unique=False,
    )

    op.create_table(
        "applications",
        *_base_columns(),
        sa.Column("scholarship_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", _enum("application_status"), nullable=False),
        sa.Column("personal_info", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("academic_info", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "family_financial_info", postgresql.JSONB(astext_type=sa.Text()), nullable=False
        ),
        sa.Column("essays", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("documents", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("completion_percentage", sa.Integer(), server_default="0", nullable=False),
        sa.Column("submission_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "last_modified",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("award_amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("status_history", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["scholarship_id"],
            ["scholarships.id"],
            name="fk_applications_scholarship_id",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["applicant_id"],
            ["users.id"],
            name="fk_applications_applicant_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["reviewed_by"],
            ["users.id"],
            name="fk_applications_reviewed_by",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint(
            "scholarship_id",
            "applicant_id",
            name="uq_applications_scholarship_applicant",
        ),
        sa.CheckConstraint(
            "completion_percentage BETWEEN 0 AND 100",
            name="ck_applications_completion_range",
        ),
    )
    op.create_index("ix_applications_status", "applications", ["status"], unique=False)
    op.create_index("ix_applications_applicant_id", "applications", ["applicant_id"], unique=False)
    op.create_index(
        "ix_applications_scholarship_status",
        "applications",
        ["scholarship_id", "status"],
        unique=False,
    )
    op.create_index(
        "ix_applications_submission_date", "applications", ["submission_date"], unique=False
    )

    op.create_table(
        "notification_events",
        *_base_columns(),
        sa.Column("kind", _enum("notification_kind"), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("dedupe_key", sa.String(length=200), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["application_id"],
            ["applications.id"],
            name="fk_notification_events_application_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("dedupe_key", name="uq_notification_events_dedupe_key"),
    )
    op.create_index(
        "ix_notification_events_pending",
        "notification_events",
        ["dispatched_at", "failed_at"],
        unique=False,
    )
    op.create_index(
        "ix_notification_events_application_id",
        "notification_events",
        ["application_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop the full schema."""
    op.drop_index("ix_notification_events_application_id", table_name="notification_events")
    op.drop_index("ix_notification_events_pending", table_name="notification_events")
    op.drop_table("notification_events")

    op.drop_index("ix_applications_submission_date", table_name="applications")
    op.drop_index("ix_applications_scholarship_status", table_name="applications")
    op.drop_index("ix_applications_applicant_id", table_name="applications")
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_table("applications")

    op.drop_index("ix_scholarships_status_deadline", table_name="scholarships")
    op.drop_table("scholarships")

    op.drop_index(op.f("ix_organizations_name"), table_name="organizations")
    op.drop_table("organizations")

    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
