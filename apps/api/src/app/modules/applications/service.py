"""
Applications Service Layer

Business logic for the scholarship application lifecycle. Orchestrates the
repositories, the completion scorer and the notification outbox.

This module implements:
1. Eligibility & Capacity Gate (create_application):
   - Scholarship must exist and be active
   - Application deadline must not have passed
   - Capacity must not be exhausted
   - One application per (scholarship, applicant)
   The slot reservation is a conditional UPDATE and the insert is guarded by
   a unique constraint, so concurrent requests cannot oversubscribe a
   scholarship or create duplicates.

2. Draft editing (update_application):
   - Only while status is draft; sections are frozen afterwards
   - Completion percentage recomputed on every write

3. Submission (submit_application):
   - Identity/academic fields present and completion >= threshold
   - The same guard applies to update_application(status="submitted")

4. Review Workflow (admin_start_review, admin_review_application):
   - Status change, review fields, one status_history entry and the
     scholarship's counters land in one transaction
   - Notification queued in the outbox in that same transaction and
     delivered after commit; delivery failures never affect the decision

Every mutating operation commits exactly once and rolls back on any error.
"""

import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import ROLE_STUDENT, Principal
from app.core.config import settings
from app.modules.applications import repository
from app.modules.applications.errors import (
    ApplicantNotFoundError,
    ApplicationAccessDeniedError,
    ApplicationNotFoundError,
    CapacityExceededError,
    DeadlinePassedError,
    DuplicateApplicationError,
    InvalidStateTransitionError,
    ScholarshipNotFoundError,
    ScholarshipUnavailableError,
    SubmissionRequirementsError,
)
from app.modules.applications.helpers import (
    apply_personal_defaults,
    merge_section_patches,
    missing_submission_fields,
    sections_from_model,
)
from app.modules.applications.models import Application, ApplicationStatus
from app.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationUpdate,
    CompletionResponse,
    ReviewDecision,
)
from app.modules.applications.scoring import (
    calculate_completion,
    missing_fields,
    section_breakdown,
)
from app.modules.applications.sections import ApplicationSections
from app.modules.notifications import service as notifications
from app.modules.notifications.models import NotificationKind
from app.modules.scholarships import repository as scholarship_repository
from app.modules.scholarships.models import Scholarship, ScholarshipStatus
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Statuses in which the applicant may still edit section content
EDITABLE_STATUSES = {
    ApplicationStatus.DRAFT,
}

# Statuses from which an admin may record a decision
REVIEWABLE_STATUSES = {
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
}


@asynccontextmanager
async def _unit_of_work(db: AsyncSession) -> AsyncIterator[None]:
    """Commit once on success, roll back on any exception."""
    try:
        yield
        await db.commit()
    except Exception:
        await db.rollback()
        raise


def _ensure_owner(application: Application, principal: Principal) -> None:
    if application.applicant_id != principal.id:
        logger.warning(f"{principal} denied access to application {application.id}")
        raise ApplicationAccessDeniedError()


def _ensure_owner_or_admin(application: Application, principal: Principal) -> None:
    if not principal.is_admin:
        _ensure_owner(application, principal)


async def _load_for_update(db: AsyncSession, application_id: UUID) -> Application:
    application = await repository.get_by_id_for_update(db, application_id)
    if not application:
        logger.warning(f"Application not found: {application_id}")
        raise ApplicationNotFoundError(application_id)
    return application


def _transition(
    application: Application,
    status: ApplicationStatus,
    *,
    changed_by: UUID,
    reason: str | None,
    **kwargs,
) -> None:
    """Apply a state-machine transition, mapping table violations to client errors."""
    try:
        repository.update_status(
            application, status, changed_by=changed_by, reason=reason, **kwargs
        )
    except repository.InvalidStatusTransitionError as e:
        logger.warning(f"Rejected transition for application {application.id}: {e}")
        raise InvalidStateTransitionError(str(e)) from e


# ============================================
# Eligibility & Capacity Gate
# ============================================


def check_gate(scholarship: Scholarship | None, now: datetime) -> None:
    """
    Evaluate the creation gate against a scholarship snapshot, in order:
    availability, deadline, capacity.

    Raises:
        ScholarshipUnavailableError, DeadlinePassedError, CapacityExceededError
    """
    if scholarship is None or scholarship.status != ScholarshipStatus.ACTIVE:
        raise ScholarshipUnavailableError()

    if now > scholarship.application_deadline:
        raise DeadlinePassedError()

    if (
        scholarship.max_applications is not None
        and scholarship.application_count >= scholarship.max_applications
    ):
        raise CapacityExceededError()


async def create_application(
    db: AsyncSession,
    principal: Principal,
    data: ApplicationCreate,
) -> Application:
    """
    Create a draft application after passing the gate.

    In one transaction:
    1. Reserve a slot on the scholarship (atomic conditional increment)
    2. Insert the application (unique on scholarship + applicant)

    The applicant's application list is the users.applications relationship,
    so the insert is also the list append.

    Raises:
        ScholarshipUnavailableError: Scholarship missing or not active
        DeadlinePassedError: Application deadline passed
        CapacityExceededError: max_applications reached
        DuplicateApplicationError: Applicant already applied
        ApplicationAccessDeniedError: Principal is not a student
        ApplicantNotFoundError: Principal has no user record
        ValidationFailedError: Section data invalid
    """
    scholarship_id = data.scholarship_id
    logger.info(f"{principal} creating application for scholarship {scholarship_id}")

    if principal.role != ROLE_STUDENT:
        logger.warning(f"{principal} denied: only students can apply")
        raise ApplicationAccessDeniedError("Only students can apply for scholarships")

    now = datetime.now(UTC)
    scholarship = await scholarship_repository.get_by_id(db, scholarship_id)

    # Fast path: fail early with the precise reason from the current snapshot
    check_gate(scholarship, now)

    existing = await repository.get_by_scholarship_and_applicant(db, scholarship_id, principal.id)
    if existing:
        logger.warning(f"Duplicate application by {principal.id} for {scholarship_id}")
        raise DuplicateApplicationError()

    applicant = await UserRepository.get_by_id(db, principal.id)
    if not applicant:
        raise ApplicantNotFoundError()

    sections = merge_section_patches(ApplicationSections(), data.section_patches())
    sections = apply_personal_defaults(sections, name=applicant.name, email=applicant.email)
    completion = calculate_completion(sections)

    try:
        async with _unit_of_work(db):
            new_count = await scholarship_repository.reserve_application_slot(
                db, scholarship_id, now
            )
            if new_count is None:
                # Lost a race: re-read to report the precise reason
                await db.refresh(scholarship)
                check_gate(scholarship, now)
                raise CapacityExceededError()

            application = await repository.create(
                db,
                scholarship_id=scholarship_id,
                applicant_id=principal.id,
                sections=sections.to_columns(),
                completion_percentage=completion,
            )
    except IntegrityError as e:
        logger.warning(f"Concurrent duplicate application by {principal.id} for {scholarship_id}")
        raise DuplicateApplicationError() from e

    logger.info(
        f"Created application {application.id} for scholarship {scholarship_id} "
        f"(application_count={new_count}, completion={completion}%)"
    )
    return application


# ============================================
# Applicant operations
# ============================================


def _check_submission_guard(sections: ApplicationSections, completion: int) -> None:
    threshold = settings.submission_threshold
    missing = missing_submission_fields(sections)

    if missing or completion < threshold:
        raise SubmissionRequirementsError(missing, completion, threshold)


def _submit(application: Application, sections: ApplicationSections, principal: Principal) -> None:
    """
    draft -> submitted on a locked application.

    The completion score is recomputed from the current contents before the
    guard is evaluated.
    """
    if application.status != ApplicationStatus.DRAFT:
        raise InvalidStateTransitionError(
            f"Only draft applications can be submitted (current: {application.status.value})"
        )

    completion = calculate_completion(sections)
    application.completion_percentage = completion
    _check_submission_guard(sections, completion)

    _transition(
        application,
        ApplicationStatus.SUBMITTED,
        changed_by=principal.id,
        reason="Submitted by applicant",
        submission_date=datetime.now(UTC),
    )


async def update_application(
    db: AsyncSession,
    principal: Principal,
    application_id: UUID,
    data: ApplicationUpdate,
) -> Application:
    """
    Update section content of a draft, optionally submitting it.

    Raises:
        ApplicationNotFoundError, ApplicationAccessDeniedError
        InvalidStateTransitionError: Application is no longer a draft
        SubmissionRequirementsError: status="submitted" and the guard fails
        ValidationFailedError: Merged section data is invalid
    """
    async with _unit_of_work(db):
        application = await _load_for_update(db, application_id)
        _ensure_owner(application, principal)

        if application.status not in EDITABLE_STATUSES:
            logger.warning(
                f"Edit rejected for application {application_id}: status={application.status.value}"
            )
            raise InvalidStateTransitionError(
                f"Application cannot be edited once {application.status.value}"
            )

        sections = merge_section_patches(sections_from_model(application), data.section_patches())
        applicant = application.applicant
        sections = apply_personal_defaults(
            sections,
            name=applicant.name if applicant else principal.name,
            email=applicant.email if applicant else principal.email,
        )
        completion = calculate_completion(sections)
        repository.update_sections(application, sections.to_columns(), completion)

        submitted = data.status == ApplicationStatus.SUBMITTED
        if submitted:
            _submit(application, sections, principal)
            await notifications.enqueue_for_application(
                db, application, NotificationKind.APPLICATION_SUBMITTED
            )

    logger.info(
        f"Updated application {application_id} (completion={application.completion_percentage}%"
        f"{', submitted' if submitted else ''})"
    )
    return application


async def submit_application(
    db: AsyncSession,
    principal: Principal,
    application_id: UUID,
) -> Application:
    """
    Submit a draft application.

    Raises:
        ApplicationNotFoundError, ApplicationAccessDeniedError
        InvalidStateTransitionError: Application is not a draft
        SubmissionRequirementsError: Required fields missing or completion
            below the threshold
    """
    async with _unit_of_work(db):
        application = await _load_for_update(db, application_id)
        _ensure_owner(application, principal)

        _submit(application, sections_from_model(application), principal)
        await notifications.enqueue_for_application(
            db, application, NotificationKind.APPLICATION_SUBMITTED
        )

    logger.info(f"Application {application_id} submitted by {principal.id}")
    return application


async def recalculate_completion(
    db: AsyncSession,
    principal: Principal,
    application_id: UUID,
) -> CompletionResponse:
    """
    Recompute and persist the completion percentage from current contents.

    Allowed in any status: the score is derived data, not applicant content.
    """
    async with _unit_of_work(db):
        application = await _load_for_update(db, application_id)
        _ensure_owner_or_admin(application, principal)

        sections = sections_from_model(application)
        completion = calculate_completion(sections)

        if completion != application.completion_percentage:
            logger.info(
                f"Completion for {application_id} corrected: "
                f"{application.completion_percentage}% -> {completion}%"
            )
            application.completion_percentage = completion
            application.last_modified = datetime.now(UTC)

    return CompletionResponse(
        id=application.id,
        completion_percentage=completion,
        section_scores={
            name: round(score, 2) for name, score in section_breakdown(sections).items()
        },
        missing_fields={
            name: missing_fields(section) for name, section in sections.iter_sections()
        },
    )


async def get_application(
    db: AsyncSession,
    principal: Principal,
    application_id: UUID,
) -> Application:
    """Get an application visible to its owner or any admin."""
    application = await repository.get_by_id(db, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)

    _ensure_owner_or_admin(application, principal)
    return application


def _page(page: int, limit: int, max_limit: int = 100) -> tuple[int, int, int]:
    limit = min(max(1, limit), max_limit)
    page = max(1, page)
    return page, limit, (page - 1) * limit


def _page_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


async def list_my_applications(
    db: AsyncSession,
    principal: Principal,
    *,
    status: ApplicationStatus | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """
    List the principal's own applications, newest first.

    Returns:
        Dict with applications and pagination
    """
    page, limit, skip = _page(page, limit)
    applications, total = await repository.list_for_applicant(
        db, principal.id, status=status, skip=skip, limit=limit
    )
    return {"applications": applications, "pagination": _page_meta(page, limit, total)}


# ============================================
# Admin operations
# ============================================


async def admin_list_applications(
    db: AsyncSession,
    *,
    status: ApplicationStatus | None = None,
    scholarship_id: UUID | None = None,
    search: str | None = None,
    sort_by: str = "submission_date",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 20,
) -> dict:
    """
    Paginated application list for the admin dashboard.

    Returns:
        Dict with applications and pagination
    """
    logger.info(
        f"Admin listing applications: status={status}, scholarship={scholarship_id}, "
        f"sort={sort_by}:{sort_order}, page={page}, limit={limit}"
    )
    page, limit, skip = _page(page, limit)

    applications, total = await repository.get_applications_for_admin(
        db,
        status=status,
        scholarship_id=scholarship_id,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=skip,
        limit=limit,
    )

    logger.info(f"Found {total} applications, returning {len(applications)}")
    return {"applications": applications, "pagination": _page_meta(page, limit, total)}


async def admin_get_application(db: AsyncSession, application_id: UUID) -> Application:
    """Get any application for admin review."""
    application = await repository.get_by_id(db, application_id)
    if not application:
        logger.warning(f"Application not found: {application_id}")
        raise ApplicationNotFoundError(application_id)
    return application


async def admin_start_review(
    db: AsyncSession,
    admin: Principal,
    application_id: UUID,
    note: str | None = None,
) -> Application:
    """
    Open the review of a submitted application (submitted -> under_review).

    Raises:
        ApplicationNotFoundError
        InvalidStateTransitionError: Application is not submitted
    """
    logger.info(f"Admin {admin.id} starting review of application {application_id}")

    async with _unit_of_work(db):
        application = await _load_for_update(db, application_id)

        if application.status != ApplicationStatus.SUBMITTED:
            raise InvalidStateTransitionError(
                f"Cannot start review of application in status: {application.status.value}. "
                "Application must be 'submitted'."
            )

        _transition(
            application,
            ApplicationStatus.UNDER_REVIEW,
            changed_by=admin.id,
            reason=note or "Review started",
        )
        await notifications.enqueue_for_application(
            db, application, NotificationKind.STATUS_CHANGED
        )

    logger.info(f"Application {application_id} now under review by {admin.id}")
    return application


async def admin_review_application(
    db: AsyncSession,
    admin: Principal,
    application_id: UUID,
    decision: ReviewDecision,
) -> Application:
    """
    Record a review decision (approved, rejected or waitlisted).

    In one transaction:
    1. Lock the application and check it is submitted or under review
    2. Set status, reviewer, review date, notes and (approvals only) award
    3. Append one status_history entry
    4. Atomically increment the scholarship's <decision>_count and
       reviewed_count
    5. Queue a status-changed notification

    Raises:
        ApplicationNotFoundError
        InvalidStateTransitionError: Application not in a reviewable status
        ScholarshipNotFoundError: Scholarship row disappeared
    """
    new_status = ApplicationStatus(decision.status.value)
    logger.info(f"Admin {admin.id} reviewing application {application_id}: {new_status.value}")

    async with _unit_of_work(db):
        application = await _load_for_update(db, application_id)

        if application.status not in REVIEWABLE_STATUSES:
            logger.warning(
                f"Cannot review application {application_id}: "
                f"status={application.status.value} not in "
                f"{sorted(s.value for s in REVIEWABLE_STATUSES)}"
            )
            raise InvalidStateTransitionError(
                f"Cannot review application in status: {application.status.value}. "
                "Application must be 'submitted' or 'under_review'."
            )

        _transition(
            application,
            new_status,
            changed_by=admin.id,
            reason=decision.review_notes,
        )
        repository.record_review(
            application,
            reviewed_by=admin.id,
            review_notes=decision.review_notes,
            award_amount=decision.award_amount,
        )

        counters = await scholarship_repository.increment_review_counters(
            db, application.scholarship_id, new_status.value
        )
        if counters is None:
            raise ScholarshipNotFoundError(application.scholarship_id)

        await notifications.enqueue_for_application(
            db,
            application,
            NotificationKind.STATUS_CHANGED,
            review_notes=decision.review_notes,
        )

    logger.info(
        f"Application {application_id} {new_status.value} by {admin.id} "
        f"(scholarship {application.scholarship_id} {new_status.value}_count={counters[0]}, "
        f"reviewed_count={counters[1]})"
    )
    return application
