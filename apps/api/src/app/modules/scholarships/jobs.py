"""
Scholarship Background Jobs

- expire_past_deadline_scholarships: hourly, marks active scholarships whose
  application deadline has passed as EXPIRED. Idempotent: expired rows no
  longer match the filter.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from app.core.database import async_session_maker
from app.core.scheduler import register_job
from app.modules.scholarships import service

logger = logging.getLogger(__name__)

JOB_ID_EXPIRE_SCHOLARSHIPS = "scholarships_expire_past_deadline"


async def expire_past_deadline_scholarships() -> dict[str, Any]:
    """
    Expire scholarships whose application deadline has passed.

    Returns:
        Dict with executed_at and the expired scholarship IDs
    """
    executed_at = datetime.now(UTC)
    logger.info("Starting scholarship expiry job")

    async with async_session_maker() as db:
        expired = await service.expire_past_deadline_scholarships(db)

    logger.info(f"Scholarship expiry job completed. Expired: {len(expired)}")

    return {
        "executed_at": executed_at.isoformat(),
        "expired": [str(scholarship_id) for scholarship_id in expired],
        "total_expired": len(expired),
    }


def register_scholarship_jobs() -> None:
    """Register scholarship jobs with the scheduler. Call before start_scheduler()."""
    register_job(
        job_id=JOB_ID_EXPIRE_SCHOLARSHIPS,
        func=expire_past_deadline_scholarships,
        trigger=IntervalTrigger(hours=1),
    )
    logger.info(f"Registered job: {JOB_ID_EXPIRE_SCHOLARSHIPS} (interval: 1 hour)")
