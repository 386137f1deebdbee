"""
Notifier

Delivers one notification. The interface is deliberately narrow:

    await notifier.notify(kind, applicant, scholarship, application, extra)

where the entity arguments are the plain-dict snapshots stored on the
outbox event. A failed delivery raises NotificationFailedError; callers
decide whether to retry.
"""

import logging
from typing import Any

from app.core.email import send_application_status_changed, send_application_submitted
from app.modules.applications.errors import NotificationFailedError
from app.modules.notifications.models import NotificationKind

logger = logging.getLogger(__name__)


class Notifier:
    """Email-backed notifier."""

    async def notify(
        self,
        kind: NotificationKind,
        applicant: dict[str, Any],
        scholarship: dict[str, Any],
        application: dict[str, Any],
        extra: dict[str, Any] | None = None,
    ) -> None:
        extra = extra or {}
        to_email = applicant.get("email")
        if not to_email:
            raise NotificationFailedError(
                f"Applicant for application {application.get('id')} has no email address"
            )

        name = applicant.get("name") or "Applicant"
        title = scholarship.get("title") or "your scholarship"

        if kind == NotificationKind.APPLICATION_SUBMITTED:
            sent = await send_application_submitted(
                to_email=to_email,
                applicant_name=name,
                scholarship_title=title,
                application_id=str(application.get("id")),
                submitted_on=str(application.get("submission_date") or ""),
            )
        elif kind == NotificationKind.STATUS_CHANGED:
            sent = await send_application_status_changed(
                to_email=to_email,
                applicant_name=name,
                scholarship_title=title,
                status=extra.get("status") or str(application.get("status")),
                review_notes=extra.get("review_notes"),
                award_amount=application.get("award_amount"),
            )
        else:
            raise NotificationFailedError(f"Unsupported notification kind: {kind}")

        if not sent:
            raise NotificationFailedError(
                f"Email delivery failed for {kind.value} on application {application.get('id')}"
            )

        logger.info(f"Delivered {kind.value} notification for application {application.get('id')}")


notifier = Notifier()
