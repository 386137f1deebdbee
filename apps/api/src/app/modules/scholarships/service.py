"""
Scholarships Service Layer

Read operations for the public catalogue and the admin views, plus the
deadline expiry used by the background job. Capacity and counter updates are driven by the
applications service through the repository.
"""

import logging
import math
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.applications.errors import ScholarshipNotFoundError
from app.modules.scholarships import repository
from app.modules.scholarships.models import Scholarship, ScholarshipStatus
from app.modules.scholarships.schemas import (
    AdminScholarshipListResponse,
    AdminScholarshipResponse,
    ScholarshipListResponse,
    ScholarshipResponse,
)
from app.modules.shared import PageMeta

logger = logging.getLogger(__name__)


def _page_meta(page: int, limit: int, total: int) -> PageMeta:
    return PageMeta(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if total else 0,
    )


async def list_open_scholarships(
    db: AsyncSession,
    *,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> ScholarshipListResponse:
    """List scholarships currently accepting applications."""
    limit = min(max(1, limit), 100)
    page = max(1, page)

    scholarships, total = await repository.list_open(
        db,
        now=datetime.now(UTC),
        search=search,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return ScholarshipListResponse(
        scholarships=[ScholarshipResponse.model_validate(s) for s in scholarships],
        pagination=_page_meta(page, limit, total),
    )


async def get_scholarship(db: AsyncSession, scholarship_id: UUID) -> Scholarship:
    """
    Get a scholarship that is visible to applicants.

    Drafts are not public and behave as missing.
    """
    scholarship = await repository.get_by_id(db, scholarship_id)
    if not scholarship or scholarship.status == ScholarshipStatus.DRAFT:
        raise ScholarshipNotFoundError(scholarship_id)
    return scholarship


async def expire_past_deadline_scholarships(db: AsyncSession) -> list[UUID]:
    """Expire active scholarships whose deadline has passed and commit."""
    expired = await repository.expire_past_deadline(db, datetime.now(UTC))
    await db.commit()

    if expired:
        logger.info(f"Expired {len(expired)} scholarships past their application deadline")
    return expired


# ============================================
# Admin views
# ============================================


async def admin_list_scholarships(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: ScholarshipStatus | None = None,
    page: int = 1,
    limit: int = 50,
) -> AdminScholarshipListResponse:
    """List scholarships in every status with their application and review counters."""
    limit = min(max(1, limit), 100)
    page = max(1, page)

    scholarships, total = await repository.list_all(
        db,
        search=search,
        status=status,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return AdminScholarshipListResponse(
        scholarships=[AdminScholarshipResponse.model_validate(s) for s in scholarships],
        pagination=_page_meta(page, limit, total),
    )


async def admin_get_scholarship(db: AsyncSession, scholarship_id: UUID) -> Scholarship:
    """Get a scholarship in any status, drafts included."""
    scholarship = await repository.get_by_id(db, scholarship_id)
    if not scholarship:
        raise ScholarshipNotFoundError(scholarship_id)
    return scholarship
