"""Tests for clinical review.

Verifies:
1. Completion requires review notes and stamps the reviewer
2. Version tokens reject stale saves; saves without one are last-writer-wins
3. Completed reviews change only through archive or an explicit reopen
"""

import pytest
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.catalog.models import Catalog
from cogscreen.core.config import NotificationSettings
from cogscreen.core.errors import (
    AssessmentNotFoundError,
    ConflictError,
    IncompleteReviewError,
    InvalidTransitionError,
    ValidationError,
)
from cogscreen.models.assessment import Assessment, AssessmentStatus, Priority
from cogscreen.models.notification import NotificationEvent, NotificationType
from cogscreen.schemas.review import ReviewRequest
from cogscreen.services.audit import Actor, AuditService
from cogscreen.services.review import ReviewService
from cogscreen.services.submission import SubmissionService
from tests.factories import make_payload

UNDER_REVIEW = AssessmentStatus.UNDER_REVIEW
COMPLETED = AssessmentStatus.COMPLETED


@pytest.fixture
async def submitted(
    async_session: AsyncSession,
    catalog: Catalog,
    notification_settings: NotificationSettings,
) -> Assessment:
    """A submitted proxy assessment awaiting review."""
    service = SubmissionService(async_session, catalog, notification_settings)
    return await service.submit_payload(make_payload())


@pytest.fixture
def service(
    async_session: AsyncSession, notification_settings: NotificationSettings
) -> ReviewService:
    return ReviewService(async_session, notification_settings)


async def complete(service: ReviewService, assessment: Assessment, reviewer: Actor) -> Assessment:
    return await service.save_review(
        assessment.id,
        ReviewRequest(status=COMPLETED, review_notes="Mild functional decline."),
        reviewer,
    )


class TestSaveReview:
    """Tests for partial saves and completion."""

    async def test_partial_save(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test a partial save starts the review and bumps the version."""
        assessment = await service.save_review(
            submitted.id,
            ReviewRequest(review_notes="Called the daughter.", clinical_score="ADL 0"),
            reviewer,
        )

        assert assessment.status == UNDER_REVIEW
        assert assessment.version == 2
        assert assessment.review_notes == "Called the daughter."
        assert assessment.clinical_score == "ADL 0"
        assert assessment.last_review_saved_by == "Dr. Reviewer"
        assert assessment.last_review_saved_at is not None
        assert assessment.is_reviewed is False

    async def test_partial_save_keeps_other_fields(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test fields left out of a save are not cleared."""
        await service.save_review(
            submitted.id, ReviewRequest(recommendations="Refer to memory clinic"), reviewer
        )
        assessment = await service.save_review(
            submitted.id, ReviewRequest(review_notes="Reviewed history"), reviewer
        )

        assert assessment.recommendations == "Refer to memory clinic"
        assert assessment.review_notes == "Reviewed history"
        assert assessment.version == 3

    async def test_complete_requires_notes(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test completing without review notes is rejected."""
        await service.save_review(submitted.id, ReviewRequest(), reviewer)

        with pytest.raises(IncompleteReviewError):
            await service.save_review(
                submitted.id, ReviewRequest(status=COMPLETED, review_notes="   "), reviewer
            )

    async def test_complete_uses_saved_notes(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test notes saved earlier satisfy completion."""
        await service.save_review(
            submitted.id, ReviewRequest(review_notes="Earlier notes"), reviewer
        )
        assessment = await service.save_review(
            submitted.id, ReviewRequest(status=COMPLETED), reviewer
        )
        assert assessment.status == COMPLETED

    async def test_cannot_complete_from_submitted(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test a review must be started before it is completed."""
        with pytest.raises(InvalidTransitionError):
            await complete(service, submitted, reviewer)

    async def test_completion(
        self,
        async_session: AsyncSession,
        service: ReviewService,
        submitted: Assessment,
        reviewer: Actor,
    ) -> None:
        """Test completion stamps the reviewer and notifies the proxy."""
        await service.save_review(submitted.id, ReviewRequest(), reviewer)
        assessment = await complete(service, submitted, reviewer)

        assert assessment.status == COMPLETED
        assert assessment.is_reviewed is True
        assert assessment.reviewed_by == "Dr. Reviewer"
        assert assessment.reviewed_at is not None

        result = await async_session.execute(
            select(NotificationEvent).where(
                NotificationEvent.notification_type == NotificationType.ASSESSMENT_REVIEWED
            )
        )
        events = result.scalars().all()
        assert len(events) == 1
        assert events[0].recipient == "layla@example.com"

        history = await AuditService(async_session).get_entity_history(
            "assessment", submitted.id
        )
        assert "review_completed" in [e.action for e in history]

    async def test_completed_is_read_only(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test saves on a completed review are rejected."""
        await service.save_review(submitted.id, ReviewRequest(), reviewer)
        await complete(service, submitted, reviewer)

        with pytest.raises(InvalidTransitionError):
            await service.save_review(
                submitted.id, ReviewRequest(review_notes="Edit after the fact"), reviewer
            )

    async def test_missing_assessment(self, service: ReviewService, reviewer: Actor) -> None:
        """Test reviewing an unknown assessment."""
        with pytest.raises(AssessmentNotFoundError):
            await service.save_review(
                "00000000-0000-0000-0000-000000000000", ReviewRequest(), reviewer
            )


class TestVersionTokens:
    """Tests for optimistic concurrency on review saves."""

    async def test_matching_version(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test a save with the current version succeeds."""
        assessment = await service.save_review(
            submitted.id, ReviewRequest(review_notes="v1"), reviewer, expected_version=1
        )
        assert assessment.version == 2

    async def test_stale_version(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test a save with an old version is rejected."""
        await service.save_review(submitted.id, ReviewRequest(review_notes="first"), reviewer)

        with pytest.raises(ConflictError) as exc_info:
            await service.save_review(
                submitted.id, ReviewRequest(review_notes="second", version=1), reviewer
            )

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    async def test_concurrent_write_detected(
        self,
        async_session: AsyncSession,
        service: ReviewService,
        submitted: Assessment,
        reviewer: Actor,
    ) -> None:
        """Test a save racing another writer is rejected at update time."""
        assessment_id = submitted.id
        # Another reviewer's save, not visible to this session's loaded object
        await async_session.execute(
            update(Assessment)
            .where(Assessment.id == assessment_id)
            .values(version=Assessment.version + 1, review_notes="theirs")
            .execution_options(synchronize_session=False)
        )
        await async_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            await service.save_review(
                assessment_id, ReviewRequest(review_notes="mine"), reviewer, expected_version=1
            )
        assert exc_info.value.actual_version == 2

        notes = (
            await async_session.execute(
                select(Assessment.review_notes).where(Assessment.id == assessment_id)
            )
        ).scalar_one()
        assert notes == "theirs"

    async def test_save_cannot_undo_concurrent_completion(
        self,
        async_session: AsyncSession,
        service: ReviewService,
        submitted: Assessment,
        reviewer: Actor,
    ) -> None:
        """Test an untokened save loses to a completion it raced with."""
        assessment_id = submitted.id
        await service.save_review(assessment_id, ReviewRequest(), reviewer)

        # Completed elsewhere while this session still holds under_review
        await async_session.execute(
            update(Assessment)
            .where(Assessment.id == assessment_id)
            .values(
                status=COMPLETED.value,
                is_reviewed=True,
                review_notes="Completed by colleague",
                version=Assessment.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await async_session.commit()

        with pytest.raises(InvalidTransitionError):
            await service.save_review(assessment_id, ReviewRequest(review_notes="late"), reviewer)

        row = (
            await async_session.execute(
                select(
                    Assessment.status, Assessment.is_reviewed, Assessment.review_notes
                ).where(Assessment.id == assessment_id)
            )
        ).one()
        assert row.status == COMPLETED.value
        assert row.is_reviewed is True
        assert row.review_notes == "Completed by colleague"

    async def test_save_on_deleted_assessment(
        self,
        async_session: AsyncSession,
        service: ReviewService,
        submitted: Assessment,
        reviewer: Actor,
    ) -> None:
        """Test a row removed under a loaded object reports not found."""
        assessment_id = submitted.id
        await async_session.execute(
            delete(Assessment)
            .where(Assessment.id == assessment_id)
            .execution_options(synchronize_session=False)
        )
        await async_session.commit()

        with pytest.raises(AssessmentNotFoundError):
            await service.save_review(assessment_id, ReviewRequest(review_notes="x"), reviewer)

    async def test_last_writer_wins(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor, admin: Actor
    ) -> None:
        """Test saves without a version overwrite each other in order."""
        await service.save_review(submitted.id, ReviewRequest(review_notes="first"), reviewer)
        assessment = await service.save_review(
            submitted.id, ReviewRequest(review_notes="second"), admin
        )

        assert assessment.review_notes == "second"
        assert assessment.last_review_saved_by == "Admin User"
        assert assessment.version == 3


class TestArchiveAndReopen:
    """Tests for archive, reopen and priority changes."""

    async def test_archive_completed(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor, admin: Actor
    ) -> None:
        """Test completed reviews can be archived."""
        await service.save_review(submitted.id, ReviewRequest(), reviewer)
        await complete(service, submitted, reviewer)

        assessment = await service.archive(submitted.id, admin)
        assert assessment.status == AssessmentStatus.ARCHIVED

    async def test_archive_requires_completion(
        self, service: ReviewService, submitted: Assessment, admin: Actor
    ) -> None:
        """Test unreviewed assessments cannot be archived."""
        with pytest.raises(InvalidTransitionError):
            await service.archive(submitted.id, admin)

    async def test_reopen(
        self,
        async_session: AsyncSession,
        service: ReviewService,
        submitted: Assessment,
        reviewer: Actor,
    ) -> None:
        """Test reopen returns a completed review to under_review."""
        await service.save_review(submitted.id, ReviewRequest(), reviewer)
        await complete(service, submitted, reviewer)

        assessment = await service.reopen(submitted.id, reviewer, "Family reported new symptoms")

        assert assessment.status == UNDER_REVIEW
        assert assessment.is_reviewed is False
        history = await AuditService(async_session).get_entity_history(
            "assessment", submitted.id
        )
        reopened = [e for e in history if e.action == "review_reopened"]
        assert len(reopened) == 1
        assert reopened[0].description == "Family reported new symptoms"

    async def test_reopen_requires_reason(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test reopen without a reason."""
        with pytest.raises(ValidationError) as exc_info:
            await service.reopen(submitted.id, reviewer, "  ")
        assert exc_info.value.fields == {"reason": "required"}

    async def test_reopen_requires_completed(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor
    ) -> None:
        """Test only completed reviews can be reopened."""
        with pytest.raises(InvalidTransitionError):
            await service.reopen(submitted.id, reviewer, "Second look")

    async def test_set_priority(
        self, service: ReviewService, submitted: Assessment, admin: Actor
    ) -> None:
        """Test priority changes bump the version."""
        assessment = await service.set_priority(submitted.id, Priority.URGENT, admin)

        assert assessment.priority == Priority.URGENT
        assert assessment.version == 2

    async def test_priority_frozen_when_archived(
        self, service: ReviewService, submitted: Assessment, reviewer: Actor, admin: Actor
    ) -> None:
        """Test archived assessments keep their priority."""
        await service.save_review(submitted.id, ReviewRequest(), reviewer)
        await complete(service, submitted, reviewer)
        await service.archive(submitted.id, admin)

        with pytest.raises(InvalidTransitionError):
            await service.set_priority(submitted.id, Priority.LOW, admin)

    async def test_reopen_cannot_undo_concurrent_archive(
        self,
        async_session: AsyncSession,
        service: ReviewService,
        submitted: Assessment,
        reviewer: Actor,
    ) -> None:
        """Test a reopen that raced an archive leaves the archive in place."""
        assessment_id = submitted.id
        await service.save_review(assessment_id, ReviewRequest(), reviewer)
        await complete(service, submitted, reviewer)

        await async_session.execute(
            update(Assessment)
            .where(Assessment.id == assessment_id)
            .values(status=AssessmentStatus.ARCHIVED.value, version=Assessment.version + 1)
            .execution_options(synchronize_session=False)
        )
        await async_session.commit()

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.reopen(assessment_id, reviewer, "Second look")
        assert exc_info.value.current == AssessmentStatus.ARCHIVED.value

        status = (
            await async_session.execute(
                select(Assessment.status).where(Assessment.id == assessment_id)
            )
        ).scalar_one()
        assert status == AssessmentStatus.ARCHIVED.value
        history = await AuditService(async_session).get_entity_history(
            "assessment", assessment_id
        )
        assert "review_reopened" not in [e.action for e in history]
