"""Assessment submission.

Submitting moves an assessment from draft to submitted. In one transaction
it allocates the assessment number, stamps ``submitted_at``, stores score
snapshots, writes the audit event and queues notifications. Any failure
rolls the whole unit back, so no responses are orphaned and no number is
consumed.

Sequence conflicts are transient: the unit of work is retried up to
``settings.sequence_max_retries`` times before ``SequenceConflict`` is
allowed to escape.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.catalog.models import Catalog
from cogscreen.core.config import NotificationSettings, settings
from cogscreen.core.errors import (
    AssessmentNotFoundError,
    SequenceConflict,
    ValidationError,
)
from cogscreen.core.logging import get_logger
from cogscreen.db.base import new_id, utc_now
from cogscreen.models.assessment import (
    Assessment,
    AssessmentResponse,
    AssessmentStatus,
    FormType,
    Language,
    Priority,
)
from cogscreen.scoring.aggregator import aggregate_responses
from cogscreen.services.audit import ANONYMOUS_ACTOR, Actor, write_audit_event
from cogscreen.services.ingest import (
    ResponseIngestService,
    is_empty_answer,
    validate_answer,
)
from cogscreen.services.notifications import NotificationService
from cogscreen.services.review_state import ReviewStateMachine, review_state_machine
from cogscreen.services.scoring import ScoringService, ensure_catalog
from cogscreen.services.sequence import SequenceAllocator

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class ProxyInfo:
    """Relative or caregiver answering on the patient's behalf."""

    name: str
    relationship: str
    email: str | None = None
    phone: str | None = None


@dataclass
class SubmissionPayload:
    """One-shot submission from the form collaborator."""

    patient_id: str
    form_type: FormType
    language: Language
    responses: dict[str, Any] = field(default_factory=dict)
    proxy_info: ProxyInfo | None = None
    priority: Priority = Priority.NORMAL


class SubmissionService:
    """Creates drafts and submits assessments."""

    def __init__(
        self,
        session: AsyncSession,
        catalog: Catalog,
        notification_settings: NotificationSettings | None = None,
        state_machine: ReviewStateMachine = review_state_machine,
        max_retries: int | None = None,
    ) -> None:
        self.session = session
        self.catalog = catalog
        self.state_machine = state_machine
        self.max_retries = max_retries or settings.sequence_max_retries
        self.ingest = ResponseIngestService(session, catalog)
        self.scoring = ScoringService(session, catalog)
        self.notifications = NotificationService(
            session, notification_settings or settings.notification_settings
        )

    def _new_assessment(
        self,
        patient_id: str,
        form_type: FormType,
        language: Language,
        proxy_info: ProxyInfo | None,
        priority: Priority,
    ) -> Assessment:
        if not patient_id or not patient_id.strip():
            raise ValidationError(
                "Patient id is required",
                fields={"patient_id": "required"},
            )
        if FormType(form_type) == FormType.PROXY and proxy_info is None:
            raise ValidationError(
                "Proxy details are required for proxy forms",
                fields={"proxy_info": "required for proxy forms"},
                message_ar="بيانات المرافق مطلوبة عند تعبئة الاستبيان نيابة عن شخص آخر",
            )

        return Assessment(
            id=new_id(),
            patient_id=patient_id.strip(),
            form_type=FormType(form_type),
            language=Language(language),
            proxy_name=proxy_info.name if proxy_info else None,
            proxy_email=proxy_info.email if proxy_info else None,
            proxy_phone=proxy_info.phone if proxy_info else None,
            proxy_relationship=proxy_info.relationship if proxy_info else None,
            status=AssessmentStatus.DRAFT,
            priority=Priority(priority),
            version=1,
            is_reviewed=False,
            catalog_id=self.catalog.catalog_id,
            catalog_version=self.catalog.version,
            catalog_hash=self.catalog.content_hash,
        )

    async def create_draft(
        self,
        patient_id: str,
        form_type: FormType,
        language: Language,
        proxy_info: ProxyInfo | None = None,
        priority: Priority = Priority.NORMAL,
        actor: Actor = ANONYMOUS_ACTOR,
        request_id: str | None = None,
    ) -> Assessment:
        """Start a draft assessment that responses are recorded against."""
        assessment = self._new_assessment(patient_id, form_type, language, proxy_info, priority)
        self.session.add(assessment)
        await write_audit_event(
            session=self.session,
            actor=actor,
            action="assessment_created",
            action_category="intake",
            entity_type="assessment",
            entity_id=assessment.id,
            metadata={"form_type": FormType(form_type).value, "language": Language(language).value},
            request_id=request_id,
        )
        return assessment

    async def _with_retries(self, unit: Callable[[], Awaitable[T]]) -> T:
        """Run a unit of work, retrying it on sequence conflicts."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return await unit()
            except SequenceConflict:
                await self.session.rollback()
                if attempt >= self.max_retries:
                    logger.error(f"Sequence allocation failed after {attempt} attempts")
                    raise
                logger.warning(f"Sequence conflict, retrying ({attempt}/{self.max_retries})")
            except Exception:
                await self.session.rollback()
                raise

    async def _finalize(
        self,
        assessment: Assessment,
        responses: dict[str, Any],
        actor: Actor,
        request_id: str | None,
    ) -> Assessment:
        """Number, score, audit and notify a validated assessment, then commit."""
        allocated = await SequenceAllocator(self.session).next_assessment_number()

        transition = self.state_machine.validate(assessment.status, AssessmentStatus.SUBMITTED)
        assessment.status = transition.requested
        assessment.assessment_number = allocated.number
        assessment.sequence_year = allocated.year
        assessment.sequence_number = allocated.sequence
        assessment.submitted_at = utc_now()

        report = aggregate_responses(self.catalog, responses)
        self.scoring.snapshot(assessment, report)

        await write_audit_event(
            session=self.session,
            actor=actor,
            action="assessment_submitted",
            action_category="intake",
            entity_type="assessment",
            entity_id=assessment.id,
            metadata={
                "assessment_number": allocated.number,
                "response_count": len(responses),
                "anomalies": report.anomaly_count,
                "coverage_complete": report.coverage_complete,
            },
            request_id=request_id,
            commit=False,
        )
        self.notifications.queue_submission(assessment)

        await self.session.commit()
        logger.info(
            f"Assessment submitted as {allocated.number}",
            extra={"assessment_id": assessment.id, "action": "assessment_submitted"},
        )
        return assessment

    async def submit(
        self,
        assessment_id: str,
        actor: Actor = ANONYMOUS_ACTOR,
        request_id: str | None = None,
    ) -> Assessment:
        """Submit a draft whose responses were recorded one by one.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist
            InvalidTransitionError: If the assessment is not a draft
            ValidationError: If no responses were recorded
            CatalogMismatchError: If the draft was created under another catalog
            SequenceConflict: If number allocation kept conflicting
        """

        async def unit() -> Assessment:
            assessment = await self.session.get(
                Assessment, assessment_id, with_for_update=True
            )
            if assessment is None:
                raise AssessmentNotFoundError(assessment_id)
            self.state_machine.validate(assessment.status, AssessmentStatus.SUBMITTED)
            ensure_catalog(self.catalog, assessment)

            count = (
                await self.session.execute(
                    select(func.count())
                    .select_from(AssessmentResponse)
                    .where(AssessmentResponse.assessment_id == assessment_id)
                )
            ).scalar_one()
            if count == 0:
                raise ValidationError(
                    "At least one response is required to submit",
                    fields={"responses": "required"},
                    message_ar="يجب الإجابة على سؤال واحد على الأقل",
                )

            responses = await self.scoring.load_responses(assessment_id)
            return await self._finalize(assessment, responses, actor, request_id)

        return await self._with_retries(unit)

    def validate_payload(self, payload: SubmissionPayload) -> dict[str, Any]:
        """Validate every answer of a payload before anything is written.

        Returns:
            Non-empty answers keyed by question id

        Raises:
            ValidationError: With field errors for every invalid answer
        """
        errors: dict[str, str] = {}
        answers: dict[str, Any] = {}

        for question_id, raw_value in payload.responses.items():
            question = self.catalog.question(question_id)
            if question is None:
                errors[question_id] = "unknown question"
                continue
            if is_empty_answer(raw_value) and not question.required:
                continue
            try:
                validate_answer(question, raw_value)
            except ValidationError as e:
                errors.update(e.fields)
                continue
            answers[question_id] = raw_value

        if not answers and not errors:
            errors["responses"] = "required"
        if errors:
            raise ValidationError("Invalid input", fields=errors)
        return answers

    async def submit_payload(
        self,
        payload: SubmissionPayload,
        actor: Actor = ANONYMOUS_ACTOR,
        request_id: str | None = None,
    ) -> Assessment:
        """Create and submit an assessment from a complete payload.

        Validation happens before the transaction starts. The assessment,
        its responses, number, snapshots, audit event and notifications are
        committed together.

        Raises:
            ValidationError: If any answer is invalid
            SequenceConflict: If number allocation kept conflicting
        """
        answers = self.validate_payload(payload)

        async def unit() -> Assessment:
            assessment = self._new_assessment(
                payload.patient_id,
                payload.form_type,
                payload.language,
                payload.proxy_info,
                payload.priority,
            )
            self.session.add(assessment)
            await self.session.flush()

            stored: dict[str, str] = {}
            for question_id, raw_value in answers.items():
                response = self.ingest.build_response(
                    assessment, self.catalog.question(question_id), raw_value
                )
                self.session.add(response)
                stored[question_id] = response.answer_value

            return await self._finalize(assessment, stored, actor, request_id)

        return await self._with_retries(unit)
