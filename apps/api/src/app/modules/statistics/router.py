"""
Statistics Admin Router

Dashboard reads for administrators.

Endpoints:
- GET /admin/stats/dashboard - Headline counts and recent activity
- GET /admin/stats/applications - Per-status breakdown and completion rate
- GET /admin/stats/users - Users per role, new registrations
- GET /admin/stats/scholarships - Scholarships per status
- GET /admin/stats/organizations - Organizations per type
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_current_admin_user
from app.core.database import get_db
from app.modules.shared import Envelope
from app.modules.shared.schemas import error_detail
from app.modules.statistics import service
from app.modules.statistics.schemas import (
    ApplicationStats,
    DashboardStats,
    OrganizationStats,
    ScholarshipStats,
    UserStats,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _stats_error(name: str, e: Exception) -> HTTPException:
    logger.exception(f"Error getting {name} stats: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error_detail("INTERNAL_ERROR", "An unexpected error occurred."),
    )


@router.get(
    "/dashboard",
    response_model=Envelope[DashboardStats],
    summary="Dashboard Statistics",
)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[DashboardStats]:
    try:
        stats = await service.get_dashboard_stats(db)
    except Exception as e:
        raise _stats_error("dashboard", e) from e

    logger.info(f"Admin {admin.id} fetched dashboard stats")
    return Envelope(data=stats)


@router.get(
    "/applications",
    response_model=Envelope[ApplicationStats],
    summary="Application Statistics",
    description="""
Counts and average completion per status, plus the completion rate
(`submitted_or_later / total * 100`, 0 when there are no applications).

Pass `scholarship_id` to restrict to one scholarship.
""",
)
async def get_application_stats(
    scholarship_id: UUID | None = Query(None, description="Restrict to one scholarship"),
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[ApplicationStats]:
    try:
        stats = await service.get_application_stats(db, scholarship_id)
    except Exception as e:
        raise _stats_error("application", e) from e

    return Envelope(data=stats)


@router.get("/users", response_model=Envelope[UserStats], summary="User Statistics")
async def get_user_stats(
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[UserStats]:
    try:
        stats = await service.get_user_stats(db)
    except Exception as e:
        raise _stats_error("user", e) from e

    return Envelope(data=stats)


@router.get(
    "/scholarships",
    response_model=Envelope[ScholarshipStats],
    summary="Scholarship Statistics",
)
async def get_scholarship_stats(
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[ScholarshipStats]:
    try:
        stats = await service.get_scholarship_stats(db)
    except Exception as e:
        raise _stats_error("scholarship", e) from e

    return Envelope(data=stats)


@router.get(
    "/organizations",
    response_model=Envelope[OrganizationStats],
    summary="Organization Statistics",
)
async def get_organization_stats(
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[OrganizationStats]:
    try:
        stats = await service.get_organization_stats(db)
    except Exception as e:
        raise _stats_error("organization", e) from e

    return Envelope(data=stats)
