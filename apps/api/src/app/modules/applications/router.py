"""
Applications Router

Applicant endpoints for the scholarship application lifecycle. Creating,
editing, submitting and listing require a student principal; reading and
recalculating admit the owner or an admin. Ownership is enforced in the service.

Endpoints:
- POST /applications - Create a draft application (eligibility & capacity gate)
- GET /applications/my - The caller's own applications
- GET /applications/{id} - Application details (owner or admin)
- PUT /applications/{id} - Update draft sections, optionally submit
- POST /applications/{id}/submit - Submit a draft
- POST /applications/{id}/completion - Recompute the completion percentage

Notifications queued by a submission are delivered in a background task
after the response is sent; the scheduled dispatcher retries failures.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_current_student_user, get_current_user
from app.core.database import get_db
from app.modules.applications import service
from app.modules.applications.errors import (
    ApplicationServiceError,
    SubmissionRequirementsError,
)
from app.modules.applications.helpers import application_to_list_item
from app.modules.applications.models import ApplicationStatus
from app.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationUpdate,
    CompletionResponse,
)
from app.modules.notifications.service import dispatch_pending_for_application
from app.modules.shared import Envelope
from app.modules.shared.schemas import error_detail

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Helper Functions
# ============================================


def _handle_service_error(e: ApplicationServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    detail = error_detail(e.error_code, e.message)
    if isinstance(e, SubmissionRequirementsError):
        detail["missing_fields"] = e.missing
        detail["completion_percentage"] = e.completion
        detail["required_percentage"] = e.threshold

    raise HTTPException(status_code=e.status_code, detail=detail) from e


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error_detail(
            "INTERNAL_ERROR", "An unexpected error occurred. Please try again later."
        ),
    )


# ============================================
# Endpoints
# ============================================


@router.post(
    "",
    response_model=Envelope[ApplicationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create Application",
    description="""
Start a draft application for a scholarship.

**Gate (checked in this order):**
1. Scholarship exists and is active - `SCHOLARSHIP_UNAVAILABLE`
2. Application deadline has not passed - `DEADLINE_PASSED`
3. `max_applications` not reached - `CAPACITY_EXCEEDED`
4. No existing application by the caller - `DUPLICATE_APPLICATION`

Section content is optional. Empty personal name/email default to the
account's values.
""",
    responses={
        400: {"description": "Scholarship unavailable or deadline passed"},
        409: {"description": "Capacity exceeded or duplicate application"},
    },
)
async def create_application(
    data: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(get_current_student_user),
) -> Envelope[ApplicationResponse]:
    try:
        application = await service.create_application(db, user, data)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error creating application: {e}")
        raise _internal_error() from e

    return Envelope(
        data=ApplicationResponse.model_validate(application),
        message="Application created",
    )


@router.get(
    "/my",
    response_model=Envelope[ApplicationListResponse],
    summary="My Applications",
)
async def list_my_applications(
    status: ApplicationStatus | None = Query(None, description="Filter by status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(get_current_student_user),
) -> Envelope[ApplicationListResponse]:
    """The caller's applications, newest first."""
    result = await service.list_my_applications(db, user, status=status, page=page, limit=limit)

    return Envelope(
        data=ApplicationListResponse(
            applications=[application_to_list_item(a) for a in result["applications"]],
            pagination=result["pagination"],
        )
    )


@router.get(
    "/{application_id}",
    response_model=Envelope[ApplicationResponse],
    summary="Get Application",
    responses={
        403: {"description": "Not the owner"},
        404: {"description": "Application not found"},
    },
)
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(get_current_user),
) -> Envelope[ApplicationResponse]:
    try:
        application = await service.get_application(db, user, application_id)
    except ApplicationServiceError as e:
        _handle_service_error(e)

    return Envelope(data=ApplicationResponse.model_validate(application))


@router.put(
    "/{application_id}",
    response_model=Envelope[ApplicationResponse],
    summary="Update Application",
    description="""
Update section content of a draft. Only the fields sent are changed; an
explicit `null` clears a field. The completion percentage is recomputed.

Sending `"status": "submitted"` submits the draft in the same request,
with the same requirements as `POST /applications/{id}/submit`.

Returns `INVALID_STATE_TRANSITION` once the application has left draft.
""",
    responses={
        400: {"description": "Submission requirements not met"},
        403: {"description": "Not the owner"},
        404: {"description": "Application not found"},
        409: {"description": "Application is no longer editable"},
        422: {"description": "Section data invalid"},
    },
)
async def update_application(
    application_id: UUID,
    data: ApplicationUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(get_current_student_user),
) -> Envelope[ApplicationResponse]:
    try:
        application = await service.update_application(db, user, application_id, data)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error updating application {application_id}: {e}")
        raise _internal_error() from e

    if application.status == ApplicationStatus.SUBMITTED:
        background_tasks.add_task(dispatch_pending_for_application, application.id)

    return Envelope(
        data=ApplicationResponse.model_validate(application),
        message="Application updated",
    )


@router.post(
    "/{application_id}/submit",
    response_model=Envelope[ApplicationResponse],
    summary="Submit Application",
    description="""
Submit a draft for review.

**Requirements:**
- `personal_info.full_name`, `personal_info.email`, `personal_info.phone`
  and `academic_info.institution_name` are filled in
- Completion percentage is at least the configured threshold (default 60)

On failure the error lists `missing_fields` and the current
`completion_percentage`. After submission the application can no longer be
edited and a confirmation email is sent.
""",
    responses={
        400: {"description": "Submission requirements not met"},
        403: {"description": "Not the owner"},
        404: {"description": "Application not found"},
        409: {"description": "Application is not a draft"},
    },
)
async def submit_application(
    application_id: UUID,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(get_current_student_user),
) -> Envelope[ApplicationResponse]:
    try:
        application = await service.submit_application(db, user, application_id)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error submitting application {application_id}: {e}")
        raise _internal_error() from e

    background_tasks.add_task(dispatch_pending_for_application, application.id)

    return Envelope(
        data=ApplicationResponse.model_validate(application),
        message="Application submitted",
    )


@router.post(
    "/{application_id}/completion",
    response_model=Envelope[CompletionResponse],
    summary="Recalculate Completion",
)
async def recalculate_completion(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(get_current_user),
) -> Envelope[CompletionResponse]:
    """Recompute the completion percentage with a per-section breakdown."""
    try:
        result = await service.recalculate_completion(db, user, application_id)
    except ApplicationServiceError as e:
        _handle_service_error(e)

    return Envelope(data=result)
