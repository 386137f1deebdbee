"""
Statistics Schemas

Read models for the admin dashboard. Counts reflect a recent snapshot and
are not transactionally consistent with each other.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.modules.applications.models import ApplicationStatus
from app.modules.applications.schemas import ApplicationListItem


class RecentUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: str
    created_at: datetime


class DashboardStats(BaseModel):
    """Headline numbers for the admin landing page."""

    total_users: int
    total_scholarships: int
    total_applications: int
    active_scholarships: int
    pending_applications: int = Field(..., description="Applications in 'submitted'")
    approved_applications: int
    rejected_applications: int
    recent_applications: list[ApplicationListItem]
    recent_users: list[RecentUser]


class StatusBreakdown(BaseModel):
    status: ApplicationStatus
    count: int
    avg_completion: float | None = None


class ApplicationStats(BaseModel):
    scholarship_id: UUID | None = None
    total: int
    submitted_or_later: int
    completion_rate: float = Field(
        ..., description="Percentage of applications that reached 'submitted' or later"
    )
    by_status: list[StatusBreakdown]
    recent_submissions: list[ApplicationListItem]


class UserStats(BaseModel):
    total: int
    by_role: dict[str, int]
    new_last_30_days: int


class ScholarshipCounterTotals(BaseModel):
    """Sums of the per-scholarship counters kept by the review workflow."""

    applications: int
    approved: int
    rejected: int
    waitlisted: int
    reviewed: int


class ScholarshipStats(BaseModel):
    total: int
    by_status: dict[str, int]
    active: int = Field(..., description="Active with an open application deadline")
    counters: ScholarshipCounterTotals


class OrganizationStats(BaseModel):
    total: int
    by_type: dict[str, int]
