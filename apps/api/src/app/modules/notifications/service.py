"""
Notifications Service Layer

Outbox producer and consumer.

Producer: ``enqueue_for_application`` is called by the applications service
inside the transaction that changes an application's status. It snapshots
applicant, scholarship and application into the event payload.

Consumer: ``dispatch_pending`` claims undelivered events and hands them to
the Notifier. Delivery failures are logged and recorded on the event and
never propagate: the status change that produced the event has already
committed. Delivery is at-least-once; dedupe_key keeps producers idempotent.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import async_session_maker
from app.modules.applications.models import Application
from app.modules.notifications import repository
from app.modules.notifications.models import NotificationEvent, NotificationKind
from app.modules.notifications.notifier import Notifier, notifier

logger = logging.getLogger(__name__)


def build_payload(
    application: Application,
    *,
    status: str,
    review_notes: str | None = None,
) -> dict[str, Any]:
    """Snapshot everything the notifier needs, as JSON-ready values."""
    applicant = application.applicant
    scholarship = application.scholarship
    personal = application.personal_info or {}

    return {
        "applicant": {
            "id": str(application.applicant_id),
            "name": personal.get("full_name") or (applicant.name if applicant else None),
            "email": (applicant.email if applicant else None) or personal.get("email"),
        },
        "scholarship": {
            "id": str(application.scholarship_id),
            "title": scholarship.title if scholarship else None,
        },
        "application": {
            "id": str(application.id),
            "status": application.status.value,
            "submission_date": (
                application.submission_date.isoformat() if application.submission_date else None
            ),
            "award_amount": (
                str(application.award_amount) if application.award_amount is not None else None
            ),
        },
        "status": status,
        "review_notes": review_notes,
    }


async def enqueue_for_application(
    db: AsyncSession,
    application: Application,
    kind: NotificationKind,
    *,
    review_notes: str | None = None,
) -> UUID | None:
    """
    Queue a notification for the application's current status.

    Must run inside the caller's transaction; does not commit.

    Returns:
        The event ID, or None if an identical event was already queued
    """
    status = application.status.value
    event_id = await repository.enqueue(
        db,
        kind=kind,
        application_id=application.id,
        status=status,
        payload=build_payload(application, status=status, review_notes=review_notes),
    )

    if event_id is None:
        logger.info(f"Notification {kind.value}:{status} for {application.id} already queued")
    else:
        logger.info(f"Queued {kind.value} notification {event_id} for application {application.id}")

    return event_id


async def _deliver(event: NotificationEvent, sender: Notifier) -> None:
    payload = event.payload or {}
    await sender.notify(
        event.kind,
        payload.get("applicant", {}),
        payload.get("scholarship", {}),
        payload.get("application", {}),
        {"status": payload.get("status"), "review_notes": payload.get("review_notes")},
    )


async def dispatch_pending(
    db: AsyncSession,
    *,
    application_id: UUID | None = None,
    limit: int | None = None,
    sender: Notifier | None = None,
) -> dict[str, int]:
    """
    Deliver pending events and commit their delivery state.

    Returns:
        Dict with claimed, dispatched and failed counts
    """
    sender = sender or notifier
    events = await repository.claim_pending(
        db,
        limit=limit or settings.notification_batch_size,
        application_id=application_id,
    )

    results = {"claimed": len(events), "dispatched": 0, "failed": 0}

    for event in events:
        now = datetime.now(UTC)
        try:
            await _deliver(event, sender)
            repository.mark_dispatched(event, now)
            results["dispatched"] += 1
        except Exception as e:
            logger.error(
                f"Notification {event.id} ({event.kind.value}) for application "
                f"{event.application_id} failed: {e}",
                exc_info=True,
            )
            repository.mark_attempt_failed(
                event, str(e), now, settings.notification_max_attempts
            )
            results["failed"] += 1

    await db.commit()
    return results


async def dispatch_pending_for_application(application_id: UUID) -> None:
    """
    Background task run after a status change commits.

    Uses its own session; any error is logged and dropped because the
    scheduled dispatcher will pick the event up again.
    """
    try:
        async with async_session_maker() as db:
            results = await dispatch_pending(db, application_id=application_id)
        logger.debug(f"Immediate dispatch for application {application_id}: {results}")
    except Exception as e:
        logger.error(
            f"Immediate notification dispatch for application {application_id} failed: {e}",
            exc_info=True,
        )
