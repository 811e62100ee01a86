"""Tests for assessment submission.

Verifies:
1. A submission is numbered, scored, audited and notified in one commit
2. Invalid payloads persist nothing and consume no number
3. Sequence conflicts are retried, then surfaced
4. Concurrent submitters get distinct, contiguous numbers
"""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from cogscreen.catalog.models import Catalog
from cogscreen.core.config import NotificationSettings
from cogscreen.core.errors import (
    InvalidTransitionError,
    SequenceConflict,
    ValidationError,
)
from cogscreen.db.base import Base, utc_now
from cogscreen.models.assessment import (
    Assessment,
    AssessmentResponse,
    AssessmentStatus,
    FormType,
    Language,
    Priority,
)
from cogscreen.models.notification import NotificationEvent, NotificationType
from cogscreen.models.score import InstrumentId
from cogscreen.services.audit import AuditService
from cogscreen.services.ingest import ResponseIngestService
from cogscreen.services.scoring import ScoringService
from cogscreen.services.sequence import SequenceAllocator
from cogscreen.services.submission import SubmissionService
from tests.factories import make_payload


async def count_rows(session: AsyncSession, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.fixture
def service(
    async_session: AsyncSession,
    catalog: Catalog,
    notification_settings: NotificationSettings,
) -> SubmissionService:
    return SubmissionService(async_session, catalog, notification_settings)


class TestSubmitPayload:
    """Tests for one-shot submissions."""

    async def test_numbered_and_submitted(self, service: SubmissionService) -> None:
        """Test a valid payload is submitted with the first number of the year."""
        assessment = await service.submit_payload(make_payload())
        year = utc_now().year

        assert assessment.assessment_number == f"ASM-{year}-00001"
        assert assessment.sequence_year == year
        assert assessment.sequence_number == 1
        assert assessment.status == AssessmentStatus.SUBMITTED
        assert assessment.submitted_at is not None
        assert assessment.is_reviewed is False
        assert assessment.proxy_name == "Layla Haddad"
        assert assessment.catalog_version == "1.0.0"

    async def test_responses_stored(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test every answer is stored as a response row."""
        payload = make_payload()
        assessment = await service.submit_payload(payload)

        stored = await ScoringService(async_session, service.catalog).load_responses(
            assessment.id
        )
        assert set(stored) == set(payload.responses)
        assert stored["adl_01"] == "A) answer"

    async def test_score_snapshots(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test one snapshot is stored per instrument."""
        assessment = await service.submit_payload(make_payload())

        snapshots = await ScoringService(async_session, service.catalog).get_snapshots(
            assessment.id
        )
        by_instrument = {InstrumentId(s.instrument): s for s in snapshots}
        assert set(by_instrument) == set(InstrumentId)

        adl = by_instrument[InstrumentId.BRISTOL_ADL]
        assert adl.total_score == 0
        assert adl.matched_count == 20
        assert adl.missing == []
        assert by_instrument[InstrumentId.FUNCTIONAL_STAGE].total_score == 2
        assert by_instrument[InstrumentId.WORD_RECOGNITION].total_score == 3

    async def test_audited(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test the submission writes an audit event with its number."""
        assessment = await service.submit_payload(make_payload(), request_id="req-1")

        events = await AuditService(async_session).get_entity_history(
            "assessment", assessment.id
        )
        submitted = [e for e in events if e.action == "assessment_submitted"]
        assert len(submitted) == 1
        assert submitted[0].event_metadata["assessment_number"] == assessment.assessment_number
        assert submitted[0].request_id == "req-1"

    async def test_notifications_queued(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test the admin and clinical notifications are queued."""
        assessment = await service.submit_payload(make_payload(priority=Priority.HIGH))

        result = await async_session.execute(
            select(NotificationEvent).where(NotificationEvent.assessment_id == assessment.id)
        )
        events = {NotificationType(e.notification_type): e for e in result.scalars().all()}

        assert set(events) == {
            NotificationType.ASSESSMENT_SUBMITTED,
            NotificationType.CLINICAL_REVIEW_REQUIRED,
        }
        assert events[NotificationType.ASSESSMENT_SUBMITTED].recipient == "admin@clinic.test"
        clinical = events[NotificationType.CLINICAL_REVIEW_REQUIRED]
        assert clinical.recipient == "clinical@clinic.test"
        assert clinical.payload["priority"] == "high"
        assert assessment.assessment_number in clinical.subject
        assert all(not e.dispatched for e in events.values())

    async def test_contiguous_numbers(self, service: SubmissionService) -> None:
        """Test consecutive submissions get consecutive numbers."""
        numbers = []
        for i in range(3):
            assessment = await service.submit_payload(make_payload(patient_id=f"PT-{i}"))
            numbers.append(assessment.sequence_number)

        assert numbers == [1, 2, 3]

    async def test_arabic_submission(self, service: SubmissionService) -> None:
        """Test Arabic answers score the same way."""
        responses = {f"adl_{i:02d}": "ب) يمكنه" for i in range(1, 21)}
        assessment = await service.submit_payload(
            make_payload(language=Language.ARABIC, responses=responses)
        )

        assert assessment.language == Language.ARABIC
        report = await ScoringService(service.session, service.catalog).aggregate(
            assessment.id
        )
        assert report[InstrumentId.BRISTOL_ADL].total == 20


class TestSubmitPayloadValidation:
    """Tests for rejected payloads."""

    async def test_invalid_answers_rejected(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test every invalid answer is reported and nothing is stored."""
        payload = make_payload(
            responses={"adl_01": ["A", "B"], "demo_age": "old", "adl_99": "A"}
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.submit_payload(payload)

        assert set(exc_info.value.fields) == {"adl_01", "demo_age", "adl_99"}
        assert await count_rows(async_session, Assessment) == 0
        assert await SequenceAllocator(async_session).current_value(utc_now().year) == 0

    async def test_empty_payload_rejected(self, service: SubmissionService) -> None:
        """Test a payload with no answers."""
        with pytest.raises(ValidationError) as exc_info:
            await service.submit_payload(make_payload(responses={}))
        assert exc_info.value.fields == {"responses": "required"}

    async def test_proxy_requires_details(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test proxy forms need the proxy's details."""
        with pytest.raises(ValidationError) as exc_info:
            await service.submit_payload(make_payload(proxy_info=None))

        assert "proxy_info" in exc_info.value.fields
        assert exc_info.value.message_ar
        assert await count_rows(async_session, Assessment) == 0

    async def test_self_form_without_proxy(self, service: SubmissionService) -> None:
        """Test self-administered forms need no proxy."""
        assessment = await service.submit_payload(
            make_payload(form_type=FormType.SELF, proxy_info=None)
        )
        assert assessment.proxy_name is None

    async def test_failure_mid_transaction_rolls_back(
        self,
        async_session: AsyncSession,
        service: SubmissionService,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a failure after numbering leaves no rows and no gap."""

        def broken_snapshot(self, assessment, report):
            raise RuntimeError("snapshot store unavailable")

        monkeypatch.setattr(ScoringService, "snapshot", broken_snapshot)
        with pytest.raises(RuntimeError):
            await service.submit_payload(make_payload())

        assert await count_rows(async_session, Assessment) == 0
        assert await count_rows(async_session, AssessmentResponse) == 0
        assert await count_rows(async_session, NotificationEvent) == 0

        monkeypatch.undo()
        assessment = await service.submit_payload(make_payload())
        assert assessment.sequence_number == 1


class TestSequenceRetries:
    """Tests for retrying on sequence conflicts."""

    async def test_conflict_retried(
        self,
        async_session: AsyncSession,
        service: SubmissionService,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a transient conflict is retried transparently."""
        original = SequenceAllocator.next_assessment_number
        calls = []

        async def flaky(self, year=None):
            calls.append(year)
            if len(calls) == 1:
                raise SequenceConflict(utc_now().year)
            return await original(self, year)

        monkeypatch.setattr(SequenceAllocator, "next_assessment_number", flaky)
        assessment = await service.submit_payload(make_payload())

        assert len(calls) == 2
        assert assessment.sequence_number == 1
        assert await count_rows(async_session, Assessment) == 1

    async def test_retries_exhausted(
        self,
        async_session: AsyncSession,
        catalog: Catalog,
        notification_settings: NotificationSettings,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test the conflict escapes after the configured attempts."""
        calls = []

        async def always_conflict(self, year=None):
            calls.append(year)
            raise SequenceConflict(utc_now().year)

        monkeypatch.setattr(SequenceAllocator, "next_assessment_number", always_conflict)
        service = SubmissionService(
            async_session, catalog, notification_settings, max_retries=3
        )

        with pytest.raises(SequenceConflict):
            await service.submit_payload(make_payload())

        assert len(calls) == 3
        assert await count_rows(async_session, Assessment) == 0


class TestDraftSubmission:
    """Tests for drafts filled in one answer at a time."""

    async def test_create_draft(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test a draft has no number until it is submitted."""
        draft = await service.create_draft("PT-3001", FormType.SELF, Language.ENGLISH)

        assert draft.status == AssessmentStatus.DRAFT
        assert draft.assessment_number is None
        events = await AuditService(async_session).get_entity_history("assessment", draft.id)
        assert [e.action for e in events] == ["assessment_created"]

    async def test_submit_draft(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test recorded answers are scored on submit."""
        draft = await service.create_draft("PT-3002", FormType.SELF, Language.ENGLISH)
        ingest = ResponseIngestService(async_session, service.catalog)
        await ingest.record_response(draft.id, "adl_01", "D) cannot")
        await ingest.record_response(draft.id, "gds_02", "Yes")

        assessment = await service.submit(draft.id)

        assert assessment.status == AssessmentStatus.SUBMITTED
        assert assessment.sequence_number == 1
        snapshots = await ScoringService(async_session, service.catalog).get_snapshots(
            draft.id
        )
        totals = {InstrumentId(s.instrument): s.total_score for s in snapshots}
        assert totals[InstrumentId.BRISTOL_ADL] == 3
        assert totals[InstrumentId.GDS15] == 1

    async def test_submit_without_responses(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test an empty draft cannot be submitted."""
        draft = await service.create_draft("PT-3003", FormType.SELF, Language.ENGLISH)

        with pytest.raises(ValidationError):
            await service.submit(draft.id)
        assert await SequenceAllocator(async_session).current_value(utc_now().year) == 0

    async def test_submit_twice(
        self, async_session: AsyncSession, service: SubmissionService
    ) -> None:
        """Test a submitted assessment cannot be submitted again."""
        draft = await service.create_draft("PT-3004", FormType.SELF, Language.ENGLISH)
        await ResponseIngestService(async_session, service.catalog).record_response(
            draft.id, "adl_01", "A) yes"
        )
        await service.submit(draft.id)

        with pytest.raises(InvalidTransitionError):
            await service.submit(draft.id)
        assert await SequenceAllocator(async_session).current_value(utc_now().year) == 1


class TestConcurrentSubmissions:
    """Concurrent submitters against a shared database file."""

    async def test_hundred_concurrent_submissions(
        self,
        tmp_path,
        catalog: Catalog,
        notification_settings: NotificationSettings,
    ) -> None:
        """Test 100 concurrent submissions get 100 distinct, contiguous numbers."""
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'concurrent.db'}",
            poolclass=NullPool,
            connect_args={"timeout": 30},
        )
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        session_maker = async_sessionmaker(engine, expire_on_commit=False)

        async def submit_one(i: int) -> str:
            async with session_maker() as session:
                service = SubmissionService(session, catalog, notification_settings)
                assessment = await service.submit_payload(
                    make_payload(patient_id=f"PT-{i:03d}")
                )
                return assessment.assessment_number

        try:
            numbers = await asyncio.gather(*(submit_one(i) for i in range(100)))

            year = utc_now().year
            assert len(set(numbers)) == 100
            assert sorted(numbers) == [f"ASM-{year}-{n:05d}" for n in range(1, 101)]

            async with session_maker() as session:
                assert await SequenceAllocator(session).current_value(year) == 100
                assert await count_rows(session, Assessment) == 100
        finally:
            await engine.dispose()
