"""Response ingest: validate and persist one answer per question.

Responses are append-only. A question answered twice within one assessment
is rejected with ``DuplicateResponseError``; a correction needs a new
assessment.
"""

import json
import re
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.catalog.models import Catalog, Question, QuestionType
from cogscreen.core.errors import (
    AssessmentNotFoundError,
    DuplicateResponseError,
    ValidationError,
)
from cogscreen.core.logging import get_logger
from cogscreen.models.assessment import (
    AnswerShape,
    Assessment,
    AssessmentResponse,
    AssessmentStatus,
)
from cogscreen.scoring.normalizer import parse_yes_no
from cogscreen.services.audit import ANONYMOUS_ACTOR, Actor, write_audit_event
from cogscreen.services.scoring import ensure_catalog

logger = get_logger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_DECLARED_SHAPES = {
    QuestionType.MULTI_SELECT: AnswerShape.MULTI_SELECT,
    QuestionType.NUMBER: AnswerShape.NUMBER,
    QuestionType.BOOLEAN: AnswerShape.BOOLEAN,
    QuestionType.DATE: AnswerShape.DATE,
}


def is_empty_answer(raw_value: Any) -> bool:
    """True for None, blank strings and empty lists."""
    if raw_value is None:
        return True
    if isinstance(raw_value, str):
        return not raw_value.strip() or raw_value.strip() == "[]"
    if isinstance(raw_value, (list, tuple)):
        return len(raw_value) == 0
    return False


def infer_answer_shape(question: Question, raw_value: Any) -> AnswerShape:
    """Infer the stored shape tag from the declared type and the value."""
    declared = _DECLARED_SHAPES.get(question.type)
    if declared is not None:
        return declared
    if isinstance(raw_value, (list, tuple)):
        return AnswerShape.MULTI_SELECT
    if isinstance(raw_value, bool):
        return AnswerShape.BOOLEAN
    if isinstance(raw_value, (int, float)):
        return AnswerShape.NUMBER
    return AnswerShape.TEXT


def _field_error(question: Question, message: str, message_ar: str | None = None) -> ValidationError:
    return ValidationError(
        f"Invalid answer for '{question.id}': {message}",
        fields={question.id: message},
        message_ar=message_ar,
    )


def _decode_selection(question: Question, raw_value: Any) -> list[str]:
    if isinstance(raw_value, str):
        try:
            raw_value = json.loads(raw_value)
        except ValueError:
            raise _field_error(question, "expected a list of selected options") from None
    if not isinstance(raw_value, (list, tuple)):
        raise _field_error(question, "expected a list of selected options")
    if not all(isinstance(item, str) for item in raw_value):
        raise _field_error(question, "selected options must be strings")
    return list(raw_value)


def validate_answer(question: Question, raw_value: Any) -> str:
    """Validate a raw answer against the question's declared type.

    Args:
        question: Catalog question
        raw_value: Answer as submitted

    Returns:
        The value as it is stored (JSON text for multi-select answers)

    Raises:
        ValidationError: If the answer is missing or has the wrong shape
    """
    if is_empty_answer(raw_value):
        if question.required:
            raise ValidationError(
                f"An answer is required for '{question.id}'",
                fields={question.id: "required"},
                message_ar="هذا السؤال مطلوب",
            )
        return "[]" if question.type == QuestionType.MULTI_SELECT else ""

    qtype = question.type

    if qtype == QuestionType.MULTI_SELECT:
        selected = _decode_selection(question, raw_value)
        if question.max_selections is not None and len(selected) > question.max_selections:
            raise _field_error(
                question,
                f"at most {question.max_selections} options may be selected",
                f"يمكن اختيار {question.max_selections} خيارات كحد أقصى",
            )
        return json.dumps(selected, ensure_ascii=False)

    if isinstance(raw_value, (list, tuple, dict)):
        raise _field_error(question, "expected a single value")

    if qtype == QuestionType.NUMBER:
        if isinstance(raw_value, bool):
            raise _field_error(question, "expected a number")
        try:
            float(raw_value)
        except (TypeError, ValueError):
            raise _field_error(question, "expected a number", "يجب إدخال رقم") from None
        return str(raw_value).strip()

    if qtype == QuestionType.BOOLEAN:
        answer = parse_yes_no(raw_value)
        if answer is None:
            raise _field_error(question, "expected yes or no")
        return "true" if answer else "false"

    if qtype == QuestionType.DATE:
        text = str(raw_value).strip()
        try:
            if not _ISO_DATE.match(text):
                raise ValueError(text)
            date.fromisoformat(text)
        except ValueError:
            raise _field_error(question, "expected a date as YYYY-MM-DD") from None
        return text

    return str(raw_value)


class ResponseIngestService:
    """Records individual answers against a draft assessment."""

    def __init__(self, session: AsyncSession, catalog: Catalog) -> None:
        self.session = session
        self.catalog = catalog

    def resolve_question(self, question_id: str) -> Question:
        """Look up a question or fail with a field-level ValidationError."""
        question = self.catalog.question(question_id)
        if question is None:
            raise ValidationError(
                f"Unknown question '{question_id}'",
                fields={"question_id": f"unknown question '{question_id}'"},
                message_ar="السؤال غير موجود",
            )
        return question

    def build_response(
        self,
        assessment: Assessment,
        question: Question,
        raw_value: Any,
    ) -> AssessmentResponse:
        """Validate an answer and build (but not add) its response row."""
        stored = validate_answer(question, raw_value)
        return AssessmentResponse(
            assessment_id=assessment.id,
            question_id=question.id,
            question_text=question.text.for_language(assessment.language),
            answer_value=stored,
            answer_shape=infer_answer_shape(question, raw_value),
        )

    async def record_response(
        self,
        assessment_id: str,
        question_id: str,
        raw_value: Any,
        actor: Actor = ANONYMOUS_ACTOR,
        request_id: str | None = None,
    ) -> AssessmentResponse:
        """Validate and persist one answer.

        Args:
            assessment_id: Draft assessment being filled in
            question_id: Catalog question id
            raw_value: Answer as submitted
            actor: Who is answering
            request_id: Request correlation ID

        Returns:
            The stored, immutable response

        Raises:
            AssessmentNotFoundError: If the assessment does not exist
            ValidationError: Unknown question, missing or malformed answer,
                or the assessment is no longer a draft
            CatalogMismatchError: If the draft was created under another catalog
            DuplicateResponseError: If the question was already answered
        """
        assessment = await self.session.get(Assessment, assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)

        question = self.resolve_question(question_id)

        if AssessmentStatus(assessment.status) != AssessmentStatus.DRAFT:
            raise ValidationError(
                "Responses can only be recorded while the assessment is a draft",
                fields={"status": assessment.status},
                message_ar="لا يمكن إضافة إجابات بعد إرسال التقييم",
            )
        ensure_catalog(self.catalog, assessment)

        existing = await self.session.execute(
            select(AssessmentResponse.id)
            .where(AssessmentResponse.assessment_id == assessment_id)
            .where(AssessmentResponse.question_id == question_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateResponseError(assessment_id, question_id)

        response = self.build_response(assessment, question, raw_value)
        self.session.add(response)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Unique (assessment_id, question_id) caught a concurrent insert
            await self.session.rollback()
            raise DuplicateResponseError(assessment_id, question_id) from e

        await write_audit_event(
            session=self.session,
            actor=actor,
            action="response_recorded",
            action_category="intake",
            entity_type="assessment",
            entity_id=assessment_id,
            metadata={"question_id": question_id, "answer_shape": response.answer_shape.value},
            request_id=request_id,
        )

        logger.info(
            f"Recorded response {question_id}",
            extra={"assessment_id": assessment_id},
        )
        return response
