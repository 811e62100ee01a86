"""Outbox of notification events for the external dispatcher."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from cogscreen.db.base import Base, TimestampMixin, UUIDMixin


class NotificationType(str, Enum):
    """Kinds of notification emitted by the assessment lifecycle."""

    ASSESSMENT_SUBMITTED = "assessment_submitted"
    CLINICAL_REVIEW_REQUIRED = "clinical_review_required"
    ASSESSMENT_REVIEWED = "assessment_reviewed"


class NotificationEvent(Base, UUIDMixin, TimestampMixin):
    """Notification waiting to be delivered by an external dispatcher.

    Written in the same transaction as the state change that caused it.
    """

    __tablename__ = "notification_events"

    assessment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notification_type: Mapped[NotificationType] = mapped_column(
        String(50),
        nullable=False,
    )
    recipient: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_ar: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    dispatched: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    dispatched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<NotificationEvent {self.notification_type} to={self.recipient}>"
