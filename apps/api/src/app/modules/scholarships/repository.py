"""
Scholarships Repository

Database operations for scholarships.

Design Principles:
- Counters are changed with single UPDATE statements evaluated by the
  database (``col = col + 1``), never read-increment-write in Python
- Conditional updates return the new row values so callers can tell
  "no row matched" apart from success without a second query
- No commits here; the calling service owns the transaction
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Scholarship, ScholarshipStatus

# Review decisions that have a dedicated counter column
REVIEW_COUNTER_COLUMNS: dict[str, str] = {
    "approved": "approved_count",
    "rejected": "rejected_count",
    "waitlisted": "waitlisted_count",
}


async def get_by_id(db: AsyncSession, id: UUID) -> Scholarship | None:
    """Get scholarship by ID."""
    return await db.get(Scholarship, id)


def _open_for_applications(now: datetime):
    return and_(
        Scholarship.status == ScholarshipStatus.ACTIVE,
        Scholarship.application_deadline >= now,
    )


async def list_open(
    db: AsyncSession,
    *,
    now: datetime,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Scholarship], int]:
    """
    Active scholarships whose application deadline has not passed,
    soonest deadline first.
    """
    query = select(Scholarship).where(_open_for_applications(now))

    if search:
        query = query.where(Scholarship.title.ilike(f"%{search}%"))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Scholarship.application_deadline.asc()).offset(skip).limit(limit)
    result = await db.execute(query)

    return list(result.scalars().all()), total


async def list_all(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: ScholarshipStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Scholarship], int]:
    """
    Every scholarship regardless of status, newest first.

    Args:
        search: Case-insensitive match on title or description
        status: Only scholarships in this status
    """
    query = select(Scholarship)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(Scholarship.title.ilike(pattern), Scholarship.description.ilike(pattern))
        )

    if status:
        query = query.where(Scholarship.status == status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Scholarship.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)

    return list(result.scalars().all()), total


async def reserve_application_slot(
    db: AsyncSession,
    id: UUID,
    now: datetime,
) -> int | None:
    """
    Atomically increment application_count if the scholarship can still
    accept an application.

    The WHERE clause repeats every gate condition so that a concurrent
    status change, deadline or the last free slot is honoured by the
    database row lock rather than by an earlier read.

    Returns:
        The new application_count, or None when no row qualified
    """
    stmt = (
        update(Scholarship)
        .where(
            Scholarship.id == id,
            _open_for_applications(now),
            or_(
                Scholarship.max_applications.is_(None),
                Scholarship.application_count < Scholarship.max_applications,
            ),
        )
        .values(application_count=Scholarship.application_count + 1)
        .returning(Scholarship.application_count)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def increment_review_counters(
    db: AsyncSession,
    id: UUID,
    decision: str,
) -> tuple[int, int] | None:
    """
    Atomically bump the per-decision counter and reviewed_count by one each.

    Args:
        decision: "approved", "rejected" or "waitlisted"

    Returns:
        (decision_count, reviewed_count) after the update, or None if the
        scholarship row no longer exists

    Raises:
        KeyError: If the decision has no counter column
    """
    column = getattr(Scholarship, REVIEW_COUNTER_COLUMNS[decision])

    stmt = (
        update(Scholarship)
        .where(Scholarship.id == id)
        .values(
            {
                column: column + 1,
                Scholarship.reviewed_count: Scholarship.reviewed_count + 1,
            }
        )
        .returning(column, Scholarship.reviewed_count)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    row = result.one_or_none()
    return (row[0], row[1]) if row else None


async def expire_past_deadline(db: AsyncSession, now: datetime) -> list[UUID]:
    """
    Move active scholarships whose application deadline has passed to
    EXPIRED. Idempotent.

    Returns:
        IDs of scholarships that changed status
    """
    stmt = (
        update(Scholarship)
        .where(
            Scholarship.status == ScholarshipStatus.ACTIVE,
            Scholarship.application_deadline < now,
        )
        .values(status=ScholarshipStatus.EXPIRED)
        .returning(Scholarship.id)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ============================================
# Aggregates for the statistics module
# ============================================


async def count_by_status(db: AsyncSession) -> dict[str, int]:
    """Return ``{status: count}`` for every status present."""
    result = await db.execute(
        select(Scholarship.status, func.count(Scholarship.id)).group_by(Scholarship.status)
    )
    return {status.value: count for status, count in result.all()}


async def count_open(db: AsyncSession, now: datetime) -> int:
    """Scholarships currently accepting applications."""
    result = await db.execute(
        select(func.count(Scholarship.id)).where(_open_for_applications(now))
    )
    return result.scalar() or 0


async def sum_counters(db: AsyncSession) -> dict[str, int]:
    """Totals of application_count and the review counters across all scholarships."""
    result = await db.execute(
        select(
            func.coalesce(func.sum(Scholarship.application_count), 0),
            func.coalesce(func.sum(Scholarship.approved_count), 0),
            func.coalesce(func.sum(Scholarship.rejected_count), 0),
            func.coalesce(func.sum(Scholarship.waitlisted_count), 0),
            func.coalesce(func.sum(Scholarship.reviewed_count), 0),
        )
    )
    applications, approved, rejected, waitlisted, reviewed = result.one()
    return {
        "applications": int(applications),
        "approved": int(approved),
        "rejected": int(rejected),
        "waitlisted": int(waitlisted),
        "reviewed": int(reviewed),
    }
