"""
Applications Schemas

Pydantic schemas for request validation and response serialization.
Section payloads reuse the section models from sections.py.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.modules.applications.models import ApplicationStatus
from app.modules.applications.sections import (
    SECTION_REGISTRY,
    AcademicInfo,
    Documents,
    Essays,
    FamilyFinancialInfo,
    PersonalInfo,
)
from app.modules.scholarships.schemas import ScholarshipSummary
from app.modules.shared import PageMeta


class SectionsPayload(BaseModel):
    """Any subset of the five sections. Each section may be partial."""

    model_config = ConfigDict(extra="forbid")

    personal_info: PersonalInfo | None = None
    academic_info: AcademicInfo | None = None
    family_financial_info: FamilyFinancialInfo | None = None
    essays: Essays | None = None
    documents: Documents | None = None

    def section_patches(self) -> dict[str, dict[str, Any]]:
        """
        Only the fields the client actually sent, per section.

        Explicit nulls are kept so they clear the stored value.
        """
        patches: dict[str, dict[str, Any]] = {}
        for name in SECTION_REGISTRY:
            section = getattr(self, name)
            if section is not None:
                patches[name] = section.model_dump(mode="json", exclude_unset=True)
        return patches


class ApplicationCreate(SectionsPayload):
    """Request body for POST /applications."""

    scholarship_id: UUID


class ApplicationUpdate(SectionsPayload):
    """
    Request body for PUT /applications/{id}.

    Setting status to "submitted" submits the draft in the same request,
    under the same guard as POST /applications/{id}/submit.
    """

    status: ApplicationStatus | None = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: ApplicationStatus | None) -> ApplicationStatus | None:
        if value not in (None, ApplicationStatus.DRAFT, ApplicationStatus.SUBMITTED):
            raise ValueError("Applicants can only set status to 'submitted'")
        return value


class ReviewDecisionStatus(str, Enum):
    """Outcomes an admin can record."""

    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"


class ReviewDecision(BaseModel):
    """Request body for POST /admin/applications/{id}/review."""

    status: ReviewDecisionStatus
    review_notes: str | None = Field(None, max_length=5000)
    award_amount: Decimal | None = Field(
        None,
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="Recorded only when the decision is 'approved'",
    )

    @model_validator(mode="after")
    def drop_award_unless_approved(self) -> "ReviewDecision":
        if self.status != ReviewDecisionStatus.APPROVED:
            self.award_amount = None
        return self


class StartReviewRequest(BaseModel):
    note: str | None = Field(None, max_length=1000)


# ============================================
# Responses
# ============================================


class StatusHistoryEntry(BaseModel):
    status: ApplicationStatus
    changed_by: UUID | None = None
    reason: str | None = None
    changed_at: datetime


class ApplicationResponse(BaseModel):
    """Full application as seen by its owner or an admin."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    scholarship_id: UUID
    applicant_id: UUID
    status: ApplicationStatus
    personal_info: PersonalInfo
    academic_info: AcademicInfo
    family_financial_info: FamilyFinancialInfo
    essays: Essays
    documents: Documents
    completion_percentage: int = Field(..., ge=0, le=100)
    submission_date: datetime | None = None
    last_modified: datetime
    reviewed_by: UUID | None = None
    review_date: datetime | None = None
    review_notes: str | None = None
    award_amount: Decimal | None = None
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ApplicationListItem(BaseModel):
    """Compact row for application lists."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    scholarship_id: UUID
    scholarship: ScholarshipSummary | None = None
    applicant_id: UUID
    applicant_name: str | None = None
    applicant_email: str | None = None
    status: ApplicationStatus
    completion_percentage: int
    submission_date: datetime | None = None
    last_modified: datetime
    review_date: datetime | None = None


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationListItem]
    pagination: PageMeta


class CompletionResponse(BaseModel):
    """Result of an explicit completion recompute."""

    id: UUID
    completion_percentage: int
    section_scores: dict[str, float]
    missing_fields: dict[str, list[str]]
