"""
Scholarships Router

Public catalogue endpoints. Authentication is not required to browse.

Endpoints:
- GET /scholarships - Active scholarships with an open deadline
- GET /scholarships/{id} - Scholarship details
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.modules.applications.errors import ApplicationServiceError
from app.modules.scholarships import service
from app.modules.scholarships.schemas import ScholarshipListResponse, ScholarshipResponse
from app.modules.shared import Envelope
from app.modules.shared.schemas import error_detail

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=Envelope[ScholarshipListResponse],
    summary="List Open Scholarships",
)
async def list_scholarships(
    search: str | None = Query(None, max_length=100, description="Search in title"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ScholarshipListResponse]:
    """Scholarships that are active and still accepting applications."""
    data = await service.list_open_scholarships(db, search=search, page=page, limit=limit)
    return Envelope(data=data)


@router.get(
    "/{scholarship_id}",
    response_model=Envelope[ScholarshipResponse],
    summary="Get Scholarship",
    responses={404: {"description": "Scholarship not found"}},
)
async def get_scholarship(
    scholarship_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Envelope[ScholarshipResponse]:
    try:
        scholarship = await service.get_scholarship(db, scholarship_id)
    except ApplicationServiceError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=error_detail(e.error_code, e.message),
        ) from e

    return Envelope(data=ScholarshipResponse.model_validate(scholarship))
