"""
Notifications Repository

Outbox persistence. Inserts are idempotent on dedupe_key; pending rows are
claimed with FOR UPDATE SKIP LOCKED so concurrent dispatchers never pick
the same event.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import NotificationEvent, NotificationKind


def build_dedupe_key(kind: NotificationKind, application_id: UUID, status: str) -> str:
    return f"{kind.value}:{application_id}:{status}"


async def enqueue(
    db: AsyncSession,
    *,
    kind: NotificationKind,
    application_id: UUID,
    status: str,
    payload: dict,
) -> UUID | None:
    """
    Insert an outbox row unless one with the same dedupe key exists.

    Returns:
        The new event ID, or None if the event was already queued
    """
    stmt = (
        insert(NotificationEvent)
        .values(
            kind=kind,
            application_id=application_id,
            status=status,
            dedupe_key=build_dedupe_key(kind, application_id, status),
            payload=payload,
            attempts=0,
        )
        .on_conflict_do_nothing(index_elements=[NotificationEvent.dedupe_key])
        .returning(NotificationEvent.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def claim_pending(
    db: AsyncSession,
    *,
    limit: int,
    application_id: UUID | None = None,
) -> list[NotificationEvent]:
    """
    Lock up to ``limit`` undelivered, not permanently failed events,
    oldest first. Rows locked by another transaction are skipped.
    """
    query = select(NotificationEvent).where(
        NotificationEvent.dispatched_at.is_(None),
        NotificationEvent.failed_at.is_(None),
    )
    if application_id:
        query = query.where(NotificationEvent.application_id == application_id)

    query = (
        query.order_by(NotificationEvent.created_at.asc())
        .limit(limit)
        .with_for_update(skip_locked=True)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


def mark_dispatched(event: NotificationEvent, now: datetime) -> NotificationEvent:
    event.attempts += 1
    event.dispatched_at = now
    event.last_error = None
    return event


def mark_attempt_failed(
    event: NotificationEvent,
    error: str,
    now: datetime,
    max_attempts: int,
) -> NotificationEvent:
    """Record a failed attempt; give up after max_attempts."""
    event.attempts += 1
    event.last_error = error[:2000]
    if event.attempts >= max_attempts:
        event.failed_at = now
    return event
