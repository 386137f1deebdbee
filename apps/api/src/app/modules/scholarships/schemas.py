"""
Scholarship Schemas

Read models for the public catalogue and the admin scholarship views.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.modules.scholarships.models import AmountType, ScholarshipStatus
from app.modules.shared import PageMeta


class ScholarshipSummary(BaseModel):
    """Compact scholarship view embedded in application responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    status: ScholarshipStatus
    application_deadline: datetime


class ScholarshipResponse(BaseModel):
    """Full public view of a scholarship."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    organization_id: UUID | None = None
    organization_name: str | None = None
    amount_value: Decimal
    amount_currency: str
    amount_type: AmountType
    application_deadline: datetime
    notification_deadline: datetime | None = None
    status: ScholarshipStatus
    max_applications: int | None = Field(None, description="NULL means unlimited")
    application_count: int


class ScholarshipListResponse(BaseModel):
    scholarships: list[ScholarshipResponse]
    pagination: PageMeta


class AdminScholarshipResponse(ScholarshipResponse):
    """Admin view: every status, with the review counters."""

    approved_count: int
    rejected_count: int
    waitlisted_count: int
    reviewed_count: int
    created_at: datetime
    updated_at: datetime


class AdminScholarshipListResponse(BaseModel):
    scholarships: list[AdminScholarshipResponse]
    pagination: PageMeta
