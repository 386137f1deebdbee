"""
Scholarship Models

A scholarship is the target of applications. Besides descriptive fields it
carries the running counters the application lifecycle maintains:

- application_count: incremented once per created application
- <status>_count / reviewed_count: incremented once per review decision

Counters are only ever changed with single-statement atomic updates
(see repository.py); the CHECK constraints keep the capacity invariant
enforced by the database itself.
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
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.organizations.models import Organization


class ScholarshipStatus(str, enum.Enum):
    """Publication status of a scholarship."""

    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class AmountType(str, enum.Enum):
    """How the award is paid out."""

    ONE_TIME = "one_time"
    ANNUAL = "annual"
    MONTHLY = "monthly"
    SEMESTER = "semester"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Scholarship(BaseModel):
    """A published funding opportunity."""

    __tablename__ = "scholarships"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Award
    amount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    amount_type: Mapped[AmountType] = mapped_column(
        Enum(AmountType, name="amount_type", values_callable=_enum_values),
        nullable=False,
        default=AmountType.ONE_TIME,
    )

    # Deadlines
    application_deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    notification_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    status: Mapped[ScholarshipStatus] = mapped_column(
        Enum(ScholarshipStatus, name="scholarship_status", values_callable=_enum_values),
        nullable=False,
        default=ScholarshipStatus.DRAFT,
    )

    # Capacity (NULL means unlimited)
    max_applications: Mapped[int | None] = mapped_column(Integer, nullable=True)
    application_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    # Review statistics
    approved_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    rejected_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    waitlisted_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    reviewed_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    organization: Mapped["Organization | None"] = relationship(
        "Organization",
        back_populates="scholarships",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("application_count >= 0", name="ck_scholarships_application_count"),
        CheckConstraint(
            "max_applications IS NULL OR application_count <= max_applications",
            name="ck_scholarships_capacity",
        ),
        Index("ix_scholarships_status_deadline", "status", "application_deadline"),
    )

    @property
    def organization_name(self) -> str | None:
        return self.organization.name if self.organization else None

    def __repr__(self) -> str:
        return f"<Scholarship(id={self.id}, title={self.title}, status={self.status.value})>"
