"""
Scholarships Admin Router

Administrator views of the scholarship catalogue. Unlike the public
endpoints these include every status (drafts, closed, expired, cancelled)
and expose the application and review counters.

Endpoints:
- GET /admin/scholarships - All scholarships with search, status filter and pagination
- GET /admin/scholarships/{id} - Scholarship details with counters
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_current_admin_user
from app.core.database import get_db
from app.modules.applications.errors import ApplicationServiceError
from app.modules.scholarships import service
from app.modules.scholarships.models import ScholarshipStatus
from app.modules.scholarships.schemas import (
    AdminScholarshipListResponse,
    AdminScholarshipResponse,
)
from app.modules.shared import Envelope
from app.modules.shared.schemas import error_detail

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=Envelope[AdminScholarshipListResponse],
    summary="List All Scholarships",
    description="""
List scholarships in every status, newest first.

**Filters:**
- `search`: case-insensitive match on title or description
- `status`: draft, active, closed, expired or cancelled

Each entry carries `application_count` and the review counters
(`approved_count`, `rejected_count`, `waitlisted_count`, `reviewed_count`).
""",
)
async def list_scholarships(
    search: str | None = Query(None, max_length=100, description="Search title or description"),
    status_filter: ScholarshipStatus | None = Query(
        None, alias="status", description="Filter by status"
    ),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[AdminScholarshipListResponse]:
    logger.info(f"Admin {admin.id} listing scholarships (status={status_filter}, page={page})")

    try:
        data = await service.admin_list_scholarships(
            db, search=search, status=status_filter, page=page, limit=limit
        )
    except Exception as e:
        logger.exception(f"Error listing scholarships for admin: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("INTERNAL_ERROR", "An unexpected error occurred."),
        ) from e

    return Envelope(data=data)


@router.get(
    "/{scholarship_id}",
    response_model=Envelope[AdminScholarshipResponse],
    summary="Get Scholarship (Admin)",
    responses={404: {"description": "Scholarship not found"}},
)
async def get_scholarship(
    scholarship_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[AdminScholarshipResponse]:
    try:
        scholarship = await service.admin_get_scholarship(db, scholarship_id)
    except ApplicationServiceError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=error_detail(e.error_code, e.message),
        ) from e

    return Envelope(data=AdminScholarshipResponse.model_validate(scholarship))
