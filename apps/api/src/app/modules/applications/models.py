"""
Application Models

A student's application to one scholarship. The five content sections are
stored as JSONB documents validated by the section schemas in sections.py;
completion_percentage is always derived from them by scoring.py.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.scholarships.models import Scholarship
    from app.modules.users.models import User


class ApplicationStatus(str, enum.Enum):
    """Lifecycle status of an application."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"


class Application(BaseModel):
    """
    Scholarship application.

    At most one row per (scholarship, applicant), enforced by
    uq_applications_scholarship_applicant.
    """

    __tablename__ = "applications"

    # Ownership (immutable after creation)
    scholarship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("scholarships.id", ondelete="RESTRICT"),
        nullable=False,
    )
    applicant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(
            ApplicationStatus,
            name="application_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ApplicationStatus.DRAFT,
    )

    # Content sections
    personal_info: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    academic_info: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    family_financial_info: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    essays: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    documents: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    completion_percentage: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    submission_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Review fields (admin side)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    award_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Append-only: [{status, changed_by, reason, changed_at}, ...]
    status_history: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    # Relationships
    applicant: Mapped["User"] = relationship(
        "User",
        back_populates="applications",
        foreign_keys=[applicant_id],
        lazy="selectin",
    )
    scholarship: Mapped["Scholarship"] = relationship(
        "Scholarship",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint(
            "scholarship_id",
            "applicant_id",
            name="uq_applications_scholarship_applicant",
        ),
        CheckConstraint(
            "completion_percentage BETWEEN 0 AND 100",
            name="ck_applications_completion_range",
        ),
        Index("ix_applications_status", "status"),
        Index("ix_applications_applicant_id", "applicant_id"),
        Index("ix_applications_scholarship_status", "scholarship_id", "status"),
        Index("ix_applications_submission_date", "submission_date"),
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status.value})>"
