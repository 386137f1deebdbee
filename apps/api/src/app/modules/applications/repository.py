"""
Applications Repository

Database operations for scholarship applications.

Design Principles:
- All queries are parameterized (no SQL injection)
- Async operations for non-blocking I/O
- Only database operations and the transition table, no business rules
- No commits here; the service commits once per operation
- Timezone-aware datetime handling (UTC)
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Application, ApplicationStatus

# Statuses an application reaches once the applicant has submitted it
SUBMITTED_OR_LATER: frozenset[ApplicationStatus] = frozenset(
    {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
    }
)


async def create(
    db: AsyncSession,
    *,
    scholarship_id: UUID,
    applicant_id: UUID,
    sections: dict[str, dict],
    completion_percentage: int,
) -> Application:
    """
    Insert a new draft application and flush.

    Raises:
        sqlalchemy.exc.IntegrityError: If the (scholarship, applicant) pair
            already exists
    """
    now = datetime.now(UTC)
    application = Application(
        scholarship_id=scholarship_id,
        applicant_id=applicant_id,
        status=ApplicationStatus.DRAFT,
        completion_percentage=completion_percentage,
        last_modified=now,
        status_history=[
            {
                "status": ApplicationStatus.DRAFT.value,
                "changed_by": str(applicant_id),
                "reason": "Application created",
                "changed_at": now.isoformat(),
            }
        ],
        **sections,
    )

    db.add(application)
    await db.flush()

    return application


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    """Get application by ID."""
    return await db.get(Application, id)


async def get_by_id_for_update(db: AsyncSession, id: UUID) -> Application | None:
    """
    Get application by ID and lock the row until the transaction ends.

    Serializes concurrent submit/update/review requests on one application.
    """
    result = await db.execute(
        select(Application)
        .where(Application.id == id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_by_scholarship_and_applicant(
    db: AsyncSession,
    scholarship_id: UUID,
    applicant_id: UUID,
) -> Application | None:
    result = await db.execute(
        select(Application).where(
            Application.scholarship_id == scholarship_id,
            Application.applicant_id == applicant_id,
        )
    )
    return result.scalar_one_or_none()


# Valid status transitions
# draft -> submitted is applicant-driven; everything after is admin-driven
VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: {
        ApplicationStatus.SUBMITTED,
    },
    ApplicationStatus.SUBMITTED: {
        ApplicationStatus.UNDER_REVIEW,  # Admin opened the review
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
    },
    ApplicationStatus.UNDER_REVIEW: {
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
    },
    # Terminal decisions - no re-review
    ApplicationStatus.APPROVED: set(),
    ApplicationStatus.REJECTED: set(),
    ApplicationStatus.WAITLISTED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: ApplicationStatus,
        new_status: ApplicationStatus,
    ):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def update_status(
    application: Application,
    status: ApplicationStatus,
    *,
    changed_by: UUID,
    reason: str | None = None,
    **kwargs,
) -> Application:
    """
    Move a (locked) application to a new status.

    Validates the transition, appends exactly one status_history entry and
    sets any additional fields passed in kwargs.

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed
    """
    current_status = application.status
    if status not in VALID_STATUS_TRANSITIONS.get(current_status, set()):
        raise InvalidStatusTransitionError(current_status, status)

    now = datetime.now(UTC)
    application.status = status

    for key, value in kwargs.items():
        if hasattr(application, key):
            setattr(application, key, value)

    entry = {
        "status": status.value,
        "changed_by": str(changed_by),
        "reason": reason,
        "changed_at": now.isoformat(),
    }
    # New list so SQLAlchemy detects the change
    application.status_history = [*(application.status_history or []), entry]

    return application


def update_sections(
    application: Application,
    sections: dict[str, dict],
    completion_percentage: int,
) -> Application:
    """Store new section contents together with their completion score."""
    for name, content in sections.items():
        setattr(application, name, content)

    application.completion_percentage = completion_percentage
    application.last_modified = datetime.now(UTC)
    return application


def record_review(
    application: Application,
    *,
    reviewed_by: UUID,
    review_notes: str | None,
    award_amount: Decimal | None,
) -> Application:
    """Set the admin-side review fields."""
    application.reviewed_by = reviewed_by
    application.review_date = datetime.now(UTC)
    application.review_notes = review_notes
    application.award_amount = award_amount
    return application


async def list_for_applicant(
    db: AsyncSession,
    applicant_id: UUID,
    *,
    status: ApplicationStatus | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[Application], int]:
    """An applicant's own applications, newest first."""
    query = select(Application).where(Application.applicant_id == applicant_id)
    if status:
        query = query.where(Application.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    query = query.order_by(desc(Application.created_at)).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total


# ============================================
# Admin Repository Methods
# ============================================

ADMIN_SORT_COLUMNS = {"submission_date", "completion_percentage", "created_at", "last_modified"}


async def get_applications_for_admin(
    db: AsyncSession,
    *,
    status: ApplicationStatus | None = None,
    scholarship_id: UUID | None = None,
    search: str | None = None,
    sort_by: str = "submission_date",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Application], int]:
    """
    Get applications with filters, sorting, and pagination for the admin
    dashboard.

    Without a status filter only submitted-or-later applications are
    returned; drafts are visible only when asked for explicitly.

    Args:
        db: Database session
        status: Filter by application status (optional)
        scholarship_id: Filter by scholarship (optional)
        search: Case-insensitive match on applicant full name or email
        sort_by: submission_date, completion_percentage, created_at or
                 last_modified. Default: submission_date
        sort_order: asc or desc. Default: desc (newest first)
        skip: Number of records to skip
        limit: Maximum records to return

    Returns:
        Tuple of (applications, total count matching filters)
    """
    query = select(Application)

    if status:
        query = query.where(Application.status == status)
    else:
        query = query.where(Application.status.in_(SUBMITTED_OR_LATER))

    if scholarship_id:
        query = query.where(Application.scholarship_id == scholarship_id)

    if search:
        search_pattern = f"%{search}%"
        query = query.where(
            or_(
                Application.personal_info["full_name"].astext.ilike(search_pattern),
                Application.personal_info["email"].astext.ilike(search_pattern),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    if sort_by not in ADMIN_SORT_COLUMNS:
        sort_by = "submission_date"

    sort_column = getattr(Application, sort_by)
    if sort_order.lower() == "asc":
        query = query.order_by(asc(sort_column).nulls_last())
    else:
        query = query.order_by(desc(sort_column).nulls_last())

    query = query.offset(skip).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


# ============================================
# Aggregates for the statistics module
# ============================================


async def get_status_breakdown(
    db: AsyncSession,
    scholarship_id: UUID | None = None,
) -> list[tuple[ApplicationStatus, int, float | None]]:
    """
    Count and average completion per status.

    Returns:
        List of (status, count, avg_completion) rows
    """
    query = select(
        Application.status,
        func.count(Application.id),
        func.avg(Application.completion_percentage),
    ).group_by(Application.status)

    if scholarship_id:
        query = query.where(Application.scholarship_id == scholarship_id)

    result = await db.execute(query)
    return [
        (status, count, float(avg) if avg is not None else None)
        for status, count, avg in result.all()
    ]


async def get_recent_submitted(
    db: AsyncSession,
    *,
    scholarship_id: UUID | None = None,
    limit: int = 5,
) -> list[Application]:
    """Most recently submitted applications."""
    query = select(Application).where(Application.submission_date.is_not(None))
    if scholarship_id:
        query = query.where(Application.scholarship_id == scholarship_id)

    query = query.order_by(desc(Application.submission_date)).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_recent(db: AsyncSession, limit: int = 5) -> list[Application]:
    """Most recently created applications, drafts included."""
    result = await db.execute(select(Application).order_by(desc(Application.created_at)).limit(limit))
    return list(result.scalars().all())
