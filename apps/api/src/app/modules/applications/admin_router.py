"""
Applications Admin Router

API endpoints for administrators to review scholarship applications.
All endpoints require authentication and the admin role.

Endpoints:
- GET /admin/applications - List applications with filters and pagination
- GET /admin/applications/{id} - Get application details
- POST /admin/applications/{id}/start-review - submitted -> under_review
- POST /admin/applications/{id}/review - Approve, reject or waitlist

Security:
- All endpoints require a valid JWT with the admin role
- The reviewer recorded on a decision is always the authenticated admin
- Rate limiting on action endpoints to prevent abuse
- Audit logging for all admin actions
"""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_current_admin_user
from app.core.database import get_db
from app.core.rate_limit import RateLimitExceeded, check_rate_limit
from app.modules.applications import service
from app.modules.applications.errors import ApplicationServiceError
from app.modules.applications.helpers import application_to_list_item
from app.modules.applications.models import ApplicationStatus
from app.modules.applications.repository import ADMIN_SORT_COLUMNS
from app.modules.applications.schemas import (
    ApplicationListResponse,
    ApplicationResponse,
    ReviewDecision,
    StartReviewRequest,
)
from app.modules.notifications.service import dispatch_pending_for_application
from app.modules.shared import Envelope
from app.modules.shared.schemas import error_detail

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Rate Limiting Configuration
# ============================================

RATE_LIMIT_REVIEW = (30, 60)  # 30 decisions per minute
RATE_LIMIT_START_REVIEW = (60, 60)  # 60 review starts per minute


async def _check_admin_rate_limit(
    admin: Principal,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Check rate limit for an admin action.

    Raises:
        RateLimitExceeded: If rate limit is exceeded
    """
    key = f"admin:{action}:{admin.id}"
    allowed = await check_rate_limit(key, limit, window_seconds)

    if not allowed:
        logger.warning(
            f"Rate limit exceeded for admin {admin.id} on action '{action}': "
            f"{limit}/{window_seconds}s"
        )
        raise RateLimitExceeded(limit, window_seconds)


def _handle_service_error(e: ApplicationServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail=error_detail(e.error_code, e.message),
    ) from e


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error_detail("INTERNAL_ERROR", "An unexpected error occurred."),
    )


# ============================================
# List & Detail
# ============================================


@router.get(
    "",
    response_model=Envelope[ApplicationListResponse],
    summary="List Applications",
    description="""
Paginated list of applications for review.

**Filters:**
- `status`: Filter by application status. Without it, only submitted or
  later applications are listed (drafts are hidden)
- `scholarship_id`: Filter by scholarship
- `search`: Case-insensitive match on applicant name or email

**Sorting:**
- `sort_by`: submission_date, completion_percentage, created_at, last_modified.
  Default: submission_date
- `sort_order`: asc or desc. Default: desc

**Pagination:** `page` (from 1) and `limit` (1-100, default 20)

**Access:** Admin only
""",
    responses={
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
    },
)
async def list_applications(
    application_status: ApplicationStatus | None = Query(
        None,
        alias="status",
        description="Filter by application status",
    ),
    scholarship_id: UUID | None = Query(None, description="Filter by scholarship"),
    search: str | None = Query(
        None,
        min_length=1,
        max_length=100,
        description="Search applicant name or email",
    ),
    sort_by: str = Query("submission_date", description="Column to sort by"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$", description="Sort direction"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[ApplicationListResponse]:
    if sort_by not in ADMIN_SORT_COLUMNS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=error_detail(
                "VALIDATION_FAILED",
                f"sort_by must be one of: {', '.join(sorted(ADMIN_SORT_COLUMNS))}",
            ),
        )

    try:
        result = await service.admin_list_applications(
            db,
            status=application_status,
            scholarship_id=scholarship_id,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    except Exception as e:
        logger.exception(f"Error listing applications: {e}")
        raise _internal_error() from e

    logger.info(
        f"Admin {admin.id} listed applications: total={result['pagination']['total']}, "
        f"returned={len(result['applications'])}"
    )

    return Envelope(
        data=ApplicationListResponse(
            applications=[application_to_list_item(a) for a in result["applications"]],
            pagination=result["pagination"],
        )
    )


@router.get(
    "/{application_id}",
    response_model=Envelope[ApplicationResponse],
    summary="Get Application Details",
    responses={
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
        404: {"description": "Application not found"},
    },
)
async def get_application_detail(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[ApplicationResponse]:
    try:
        application = await service.admin_get_application(db, application_id)
    except ApplicationServiceError as e:
        _handle_service_error(e)

    logger.info(f"Admin {admin.id} viewed application {application_id}")
    return Envelope(data=ApplicationResponse.model_validate(application))


# ============================================
# Review Actions
# ============================================


@router.post(
    "/{application_id}/start-review",
    response_model=Envelope[ApplicationResponse],
    summary="Start Review",
    description="""
Move a submitted application to `under_review` and notify the applicant.

**Rate Limit:** 60 requests per minute per admin
""",
    responses={
        404: {"description": "Application not found"},
        409: {"description": "Application is not submitted"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def start_review(
    application_id: UUID,
    background_tasks: BackgroundTasks,
    data: StartReviewRequest | None = None,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[ApplicationResponse]:
    await _check_admin_rate_limit(admin, "start_review", *RATE_LIMIT_START_REVIEW)

    try:
        application = await service.admin_start_review(
            db, admin, application_id, note=data.note if data else None
        )
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error starting review of {application_id}: {e}")
        raise _internal_error() from e

    background_tasks.add_task(dispatch_pending_for_application, application.id)

    return Envelope(
        data=ApplicationResponse.model_validate(application),
        message="Review started",
    )


@router.post(
    "/{application_id}/review",
    response_model=Envelope[ApplicationResponse],
    summary="Review Application",
    description="""
Record a decision on a submitted or under-review application.

**Request Body:**
- `status`: approved, rejected or waitlisted
- `review_notes`: Optional notes, included in the applicant's email
- `award_amount`: Optional, stored only for approvals

The decision, the status history entry and the scholarship's counters are
committed together. The applicant is notified after commit; a failed email
does not undo the decision.

Decisions are final: reviewing an already decided application returns
`INVALID_STATE_TRANSITION`.

**Rate Limit:** 30 requests per minute per admin
""",
    responses={
        404: {"description": "Application not found"},
        409: {"description": "Application is not in a reviewable status"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def review_application(
    application_id: UUID,
    decision: ReviewDecision,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_admin_user),
) -> Envelope[ApplicationResponse]:
    await _check_admin_rate_limit(admin, "review", *RATE_LIMIT_REVIEW)

    try:
        application = await service.admin_review_application(
            db, admin, application_id, decision
        )
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error reviewing application {application_id}: {e}")
        raise _internal_error() from e

    background_tasks.add_task(dispatch_pending_for_application, application.id)

    logger.info(f"Admin {admin.id} recorded {decision.status.value} for {application_id}")
    return Envelope(
        data=ApplicationResponse.model_validate(application),
        message=f"Application {decision.status.value}",
    )
