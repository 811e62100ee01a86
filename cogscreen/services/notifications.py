"""Notification outbox.

Lifecycle changes add NotificationEvent rows in the same transaction as the
change itself. Delivery (email, SMS) is done by an external dispatcher that
reads undispatched rows; nothing here talks to a mail server.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.core.config import NotificationSettings
from cogscreen.db.base import utc_now
from cogscreen.models.assessment import (
    Assessment,
    AssessmentStatus,
    FormType,
    Language,
    Priority,
)
from cogscreen.models.notification import NotificationEvent, NotificationType


class NotificationService:
    """Queues notification events for an assessment."""

    def __init__(self, session: AsyncSession, config: NotificationSettings) -> None:
        self.session = session
        self.config = config

    def _queue(
        self,
        assessment: Assessment,
        notification_type: NotificationType,
        recipient: str | None,
        subject: str,
        subject_ar: str,
        content: str,
    ) -> NotificationEvent:
        event = NotificationEvent(
            assessment_id=assessment.id,
            notification_type=notification_type,
            recipient=recipient,
            subject=subject,
            subject_ar=subject_ar,
            content=content,
            payload={
                "assessment_number": assessment.assessment_number,
                "status": AssessmentStatus(assessment.status).value,
                "form_type": FormType(assessment.form_type).value,
                "priority": Priority(assessment.priority).value,
                "language": Language(assessment.language).value,
            },
        )
        self.session.add(event)
        return event

    def queue_submission(self, assessment: Assessment) -> list[NotificationEvent]:
        """Queue the admin confirmation and the clinical review alert."""
        number = assessment.assessment_number
        return [
            self._queue(
                assessment,
                NotificationType.ASSESSMENT_SUBMITTED,
                self.config.admin_email,
                f"New Assessment Submission {number}",
                f"تقييم جديد {number}",
                f"Assessment {number} was submitted ({FormType(assessment.form_type).value} form).",
            ),
            self._queue(
                assessment,
                NotificationType.CLINICAL_REVIEW_REQUIRED,
                self.config.clinical_email,
                f"Clinical Review Required {number}",
                f"مطلوب مراجعة سريرية {number}",
                f"Assessment {number} requires clinical review "
                f"(priority: {Priority(assessment.priority).value}).",
            ),
        ]

    def queue_review_completed(self, assessment: Assessment) -> NotificationEvent:
        """Queue the review-complete notice to the proxy, if one is on file."""
        number = assessment.assessment_number
        return self._queue(
            assessment,
            NotificationType.ASSESSMENT_REVIEWED,
            assessment.proxy_email,
            f"Assessment Review Complete {number}",
            f"اكتملت مراجعة التقييم {number}",
            f"The clinical review of assessment {number} is complete.",
        )

    async def pending(self, limit: int = 100) -> list[NotificationEvent]:
        """Undispatched events, oldest first."""
        result = await self.session.execute(
            select(NotificationEvent)
            .where(NotificationEvent.dispatched.is_(False))
            .order_by(NotificationEvent.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def mark_dispatched(self, event_id: str) -> NotificationEvent | None:
        """Record that the dispatcher delivered an event."""
        event = await self.session.get(NotificationEvent, event_id)
        if event is None:
            return None
        event.dispatched = True
        event.dispatched_at = utc_now()
        await self.session.commit()
        return event
