"""
Organization Models

Bodies that fund scholarships (trusts, ministries, companies).
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String, Text
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.scholarships.models import Scholarship


class OrganizationType(str, Enum):
    """Kinds of funding organizations."""

    GOVERNMENT = "government"
    PRIVATE = "private"
    NON_PROFIT = "non_profit"
    EDUCATIONAL = "educational"
    FOUNDATION = "foundation"
    CORPORATE = "corporate"


class Organization(BaseModel):
    """A scholarship provider."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    type: Mapped[OrganizationType] = mapped_column(
        ENUM(
            OrganizationType,
            name="organization_type",
            create_type=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    website: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    contact_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    scholarships: Mapped[list["Scholarship"]] = relationship(
        "Scholarship",
        back_populates="organization",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name}, type={self.type.value})>"
