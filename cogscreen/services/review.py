"""Clinical review service.

All review writes go through ``ReviewStateMachine`` and bump the
assessment's ``version``. A save that carries the version the reviewer
loaded is applied as a compare-and-swap and rejected with ``ConflictError``
if someone else saved first. A save without a version is last-writer-wins,
stamped with a server-assigned ``last_review_saved_at``. Every write is
also conditional on the status it was validated against, so a save that
lost a race with completion, archive or reopen fails with
``InvalidTransitionError`` instead of moving the status backwards.
"""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.core.config import NotificationSettings, settings
from cogscreen.core.errors import (
    AssessmentNotFoundError,
    ConflictError,
    InvalidTransitionError,
    ValidationError,
)
from cogscreen.core.logging import get_logger
from cogscreen.db.base import utc_now
from cogscreen.models.assessment import Assessment, AssessmentStatus, Priority
from cogscreen.schemas.review import ReviewRequest
from cogscreen.services.audit import Actor, write_audit_event
from cogscreen.services.notifications import NotificationService
from cogscreen.services.review_state import (
    ReviewStateMachine,
    is_review_writable,
    review_state_machine,
)

logger = get_logger(__name__)


class ReviewService:
    """Service for clinical review of submitted assessments.

    Handles:
    - Partial review saves and completion (notes required)
    - Archiving completed reviews
    - Explicit, audited reopen of completed reviews
    - Priority changes
    """

    def __init__(
        self,
        session: AsyncSession,
        notification_settings: NotificationSettings | None = None,
        state_machine: ReviewStateMachine = review_state_machine,
    ) -> None:
        self.session = session
        self.state_machine = state_machine
        self.notifications = NotificationService(
            session, notification_settings or settings.notification_settings
        )

    async def _get(self, assessment_id: str) -> Assessment:
        assessment = await self.session.get(Assessment, assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        return assessment

    async def _write(
        self,
        assessment: Assessment,
        expected_status: AssessmentStatus,
        values: dict[str, Any],
        expected_version: int | None = None,
    ) -> None:
        """Apply an UPDATE that bumps the version.

        The update only matches a row still in ``expected_status`` (and at
        ``expected_version`` when given), so a concurrent status change or
        save makes it match nothing and nothing is written.
        """
        assessment_id = assessment.id
        stmt = (
            update(Assessment)
            .where(Assessment.id == assessment_id)
            .where(Assessment.status == expected_status.value)
            .values(version=Assessment.version + 1, updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(Assessment.version == expected_version)

        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            row = (
                await self.session.execute(
                    select(Assessment.status, Assessment.version).where(
                        Assessment.id == assessment_id
                    )
                )
            ).one_or_none()
            await self.session.rollback()
            if row is None:
                raise AssessmentNotFoundError(assessment_id)
            actual_status, actual_version = row
            if expected_version is not None and actual_version != expected_version:
                raise ConflictError(expected_version, actual_version)
            raise InvalidTransitionError(
                AssessmentStatus(actual_status).value,
                AssessmentStatus(values.get("status", actual_status)).value,
            )

        await self.session.refresh(assessment)

    async def _finish(self, assessment: Assessment) -> Assessment:
        await self.session.commit()
        return assessment

    async def save_review(
        self,
        assessment_id: str,
        payload: ReviewRequest,
        reviewer: Actor,
        expected_version: int | None = None,
        request_id: str | None = None,
    ) -> Assessment:
        """Save review findings, optionally completing the review.

        Args:
            assessment_id: Assessment under review
            payload: Review fields and requested status
            reviewer: Staff member saving the review
            expected_version: Version the reviewer loaded (falls back to
                ``payload.version``); None for last-writer-wins
            request_id: Request correlation ID

        Returns:
            Updated assessment

        Raises:
            AssessmentNotFoundError: If the assessment does not exist
            InvalidTransitionError: If the requested status is not reachable
            IncompleteReviewError: If completing without review notes
            ConflictError: If ``expected_version`` is stale
        """
        if expected_version is None:
            expected_version = payload.version

        assessment = await self._get(assessment_id)
        current = AssessmentStatus(assessment.status)
        if not is_review_writable(current):
            # Completed reviews change only through reopen
            raise InvalidTransitionError(current.value, AssessmentStatus(payload.status).value)

        notes = payload.review_notes if payload.review_notes is not None else assessment.review_notes
        transition = self.state_machine.validate(
            current, payload.status, review_notes=notes
        )

        if expected_version is not None and assessment.version != expected_version:
            raise ConflictError(expected_version, assessment.version)

        now = utc_now()
        values: dict[str, Any] = {
            "status": transition.requested.value,
            "last_review_saved_at": now,
            "last_review_saved_by": reviewer.display_name,
        }
        for field in ("review_notes", "clinical_score", "recommendations"):
            value = getattr(payload, field)
            if value is not None:
                values[field] = value
        if transition.completes_review:
            values.update(
                reviewed_by=reviewer.display_name,
                reviewed_at=now,
                is_reviewed=True,
            )

        await self._write(assessment, current, values, expected_version)

        action = "review_completed" if transition.completes_review else "review_saved"
        await write_audit_event(
            session=self.session,
            actor=reviewer,
            action=action,
            action_category="review",
            entity_type="assessment",
            entity_id=assessment.id,
            metadata={
                "from_status": current.value,
                "to_status": transition.requested.value,
                "expected_version": expected_version,
            },
            request_id=request_id,
            commit=False,
        )

        if transition.completes_review:
            self.notifications.queue_review_completed(assessment)
        assessment = await self._finish(assessment)

        logger.info(
            f"{action} by {reviewer.display_name}",
            extra={"assessment_id": assessment.id, "action": action},
        )
        return assessment

    async def archive(
        self,
        assessment_id: str,
        actor: Actor,
        request_id: str | None = None,
    ) -> Assessment:
        """Archive a completed assessment.

        Raises:
            InvalidTransitionError: If the assessment is not completed
        """
        assessment = await self._get(assessment_id)
        current = AssessmentStatus(assessment.status)
        self.state_machine.validate(current, AssessmentStatus.ARCHIVED)

        await self._write(assessment, current, {"status": AssessmentStatus.ARCHIVED.value})
        await write_audit_event(
            session=self.session,
            actor=actor,
            action="assessment_archived",
            action_category="admin",
            entity_type="assessment",
            entity_id=assessment.id,
            metadata={"from_status": current.value},
            request_id=request_id,
            commit=False,
        )
        return await self._finish(assessment)

    async def reopen(
        self,
        assessment_id: str,
        actor: Actor,
        reason: str,
        request_id: str | None = None,
    ) -> Assessment:
        """Return a completed review to under_review.

        Clears ``is_reviewed``; the review must be completed again.

        Raises:
            ValidationError: If no reason is given
            InvalidTransitionError: If the assessment is not completed
        """
        if not reason or not reason.strip():
            raise ValidationError(
                "A reason is required to reopen a review",
                fields={"reason": "required"},
                message_ar="يجب ذكر سبب إعادة فتح المراجعة",
            )

        assessment = await self._get(assessment_id)
        current = AssessmentStatus(assessment.status)
        self.state_machine.validate(current, AssessmentStatus.UNDER_REVIEW, reopen=True)

        await self._write(
            assessment,
            current,
            {"status": AssessmentStatus.UNDER_REVIEW.value, "is_reviewed": False},
        )
        await write_audit_event(
            session=self.session,
            actor=actor,
            action="review_reopened",
            action_category="review",
            entity_type="assessment",
            entity_id=assessment.id,
            metadata={"from_status": current.value, "reason": reason.strip()},
            description=reason.strip(),
            request_id=request_id,
            commit=False,
        )
        logger.warning(
            f"Review reopened by {actor.display_name}",
            extra={"assessment_id": assessment.id, "action": "review_reopened"},
        )
        return await self._finish(assessment)

    async def set_priority(
        self,
        assessment_id: str,
        priority: Priority,
        actor: Actor,
        request_id: str | None = None,
    ) -> Assessment:
        """Change review priority (not allowed once archived)."""
        assessment = await self._get(assessment_id)
        current = AssessmentStatus(assessment.status)
        if current == AssessmentStatus.ARCHIVED:
            raise InvalidTransitionError(current.value, current.value)

        previous = Priority(assessment.priority)
        await self._write(assessment, current, {"priority": Priority(priority).value})
        await write_audit_event(
            session=self.session,
            actor=actor,
            action="priority_changed",
            action_category="admin",
            entity_type="assessment",
            entity_id=assessment.id,
            metadata={"from": previous.value, "to": Priority(priority).value},
            request_id=request_id,
            commit=False,
        )
        return await self._finish(assessment)
