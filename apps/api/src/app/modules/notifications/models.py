"""
Notification Models

Transactional outbox for applicant notifications. A row is inserted in the
same transaction as the status change that causes it, so a notification
exists if and only if the change committed. Delivery happens afterwards.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel


class NotificationKind(str, enum.Enum):
    """Messages the notifier knows how to send."""

    APPLICATION_SUBMITTED = "application_submitted"
    STATUS_CHANGED = "status_changed"


class NotificationEvent(BaseModel):
    """
    A pending or delivered notification.

    dedupe_key is unique: re-emitting the same event for the same
    application and status collapses into the existing row.
    """

    __tablename__ = "notification_events"

    kind: Mapped[NotificationKind] = mapped_column(
        Enum(
            NotificationKind,
            name="notification_kind",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    dedupe_key: Mapped[str] = mapped_column(String(200), nullable=False)

    # Snapshot: {applicant, scholarship, application, status, review_notes}
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False)

    # Delivery tracking
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("dedupe_key", name="uq_notification_events_dedupe_key"),
        Index("ix_notification_events_pending", "dispatched_at", "failed_at"),
        Index("ix_notification_events_application_id", "application_id"),
    )
