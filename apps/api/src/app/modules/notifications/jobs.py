"""
Notification Background Jobs

- dispatch_pending_notifications: every minute, delivers outbox events that
  the post-commit background task did not (crash, SMTP outage, retries).
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from app.core.database import async_session_maker
from app.core.scheduler import register_job
from app.modules.notifications import service

logger = logging.getLogger(__name__)

JOB_ID_DISPATCH_NOTIFICATIONS = "notifications_dispatch_pending"


async def dispatch_pending_notifications() -> dict[str, Any]:
    """Drain one batch of pending notification events."""
    executed_at = datetime.now(UTC)

    async with async_session_maker() as db:
        results = await service.dispatch_pending(db)

    if results["claimed"]:
        logger.info(
            f"Notification dispatch job completed. "
            f"Dispatched: {results['dispatched']}, Failed: {results['failed']}"
        )

    return {"executed_at": executed_at.isoformat(), **results}


def register_notification_jobs() -> None:
    """Register notification jobs with the scheduler. Call before start_scheduler()."""
    register_job(
        job_id=JOB_ID_DISPATCH_NOTIFICATIONS,
        func=dispatch_pending_notifications,
        trigger=IntervalTrigger(minutes=1),
    )
    logger.info(f"Registered job: {JOB_ID_DISPATCH_NOTIFICATIONS} (interval: 1 minute)")
