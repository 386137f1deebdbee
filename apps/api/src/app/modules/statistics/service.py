"""
Statistics Service

Read-only dashboard aggregates over users, organizations, scholarships and
applications. No writes, no locking: numbers reflect a recent snapshot.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.applications import repository as application_repository
from app.modules.applications.helpers import application_to_list_item
from app.modules.applications.models import ApplicationStatus
from app.modules.applications.repository import SUBMITTED_OR_LATER
from app.modules.organizations.repository import OrganizationRepository
from app.modules.scholarships import repository as scholarship_repository
from app.modules.statistics.schemas import (
    ApplicationStats,
    DashboardStats,
    OrganizationStats,
    RecentUser,
    ScholarshipCounterTotals,
    ScholarshipStats,
    StatusBreakdown,
    UserStats,
)
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
NEW_USER_WINDOW = timedelta(days=30)


def completion_rate(submitted_or_later: int, total: int) -> float:
    """Share of applications that reached 'submitted' or later, in percent."""
    if total <= 0:
        return 0.0
    return round(submitted_or_later / total * 100, 2)


async def get_dashboard_stats(db: AsyncSession) -> DashboardStats:
    logger.info("Getting dashboard stats")
    now = datetime.now(UTC)

    by_status = {
        status: count
        for status, count, _ in await application_repository.get_status_breakdown(db)
    }
    scholarships_by_status = await scholarship_repository.count_by_status(db)

    return DashboardStats(
        total_users=await UserRepository.count_all(db),
        total_scholarships=sum(scholarships_by_status.values()),
        total_applications=sum(by_status.values()),
        active_scholarships=await scholarship_repository.count_open(db, now),
        pending_applications=by_status.get(ApplicationStatus.SUBMITTED, 0),
        approved_applications=by_status.get(ApplicationStatus.APPROVED, 0),
        rejected_applications=by_status.get(ApplicationStatus.REJECTED, 0),
        recent_applications=[
            application_to_list_item(a)
            for a in await application_repository.get_recent(db, RECENT_LIMIT)
        ],
        recent_users=[
            RecentUser(
                id=u.id,
                name=u.name,
                email=u.email,
                role=u.role.value,
                created_at=u.created_at,
            )
            for u in await UserRepository.get_recent(db, RECENT_LIMIT)
        ],
    )


async def get_application_stats(
    db: AsyncSession,
    scholarship_id: UUID | None = None,
) -> ApplicationStats:
    """Per-status counts and completion rate, optionally for one scholarship."""
    rows = await application_repository.get_status_breakdown(db, scholarship_id)

    total = sum(count for _, count, _ in rows)
    submitted_or_later = sum(count for status, count, _ in rows if status in SUBMITTED_OR_LATER)

    recent = await application_repository.get_recent_submitted(
        db, scholarship_id=scholarship_id, limit=RECENT_LIMIT
    )

    return ApplicationStats(
        scholarship_id=scholarship_id,
        total=total,
        submitted_or_later=submitted_or_later,
        completion_rate=completion_rate(submitted_or_later, total),
        by_status=[
            StatusBreakdown(
                status=status,
                count=count,
                avg_completion=round(avg, 2) if avg is not None else None,
            )
            for status, count, avg in sorted(rows, key=lambda row: row[0].value)
        ],
        recent_submissions=[application_to_list_item(a) for a in recent],
    )


async def get_user_stats(db: AsyncSession) -> UserStats:
    since = datetime.now(UTC) - NEW_USER_WINDOW
    return UserStats(
        total=await UserRepository.count_all(db),
        by_role=await UserRepository.count_by_role(db),
        new_last_30_days=await UserRepository.count_created_since(db, since),
    )


async def get_scholarship_stats(db: AsyncSession) -> ScholarshipStats:
    by_status = await scholarship_repository.count_by_status(db)
    return ScholarshipStats(
        total=sum(by_status.values()),
        by_status=by_status,
        active=await scholarship_repository.count_open(db, datetime.now(UTC)),
        counters=ScholarshipCounterTotals(**await scholarship_repository.sum_counters(db)),
    )


async def get_organization_stats(db: AsyncSession) -> OrganizationStats:
    return OrganizationStats(
        total=await OrganizationRepository.count_all(db),
        by_type=await OrganizationRepository.count_by_type(db),
    )
