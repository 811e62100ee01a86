"""Domain errors raised by the assessment services.

Every error carries an English and an Arabic message so API handlers can
return both, mirroring the two languages the questionnaire is offered in.
"""

from typing import Any


class AssessmentError(Exception):
    """Base exception for assessment errors."""

    message_ar: str = "حدث خطأ في التقييم"

    def __init__(
        self,
        message: str,
        message_ar: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if message_ar is not None:
            self.message_ar = message_ar
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error bodies."""
        return {
            "error": self.message,
            "errorAr": self.message_ar,
            "details": self.details,
        }


class ValidationError(AssessmentError):
    """Raised when submitted input is malformed or missing.

    ``details["fields"]`` maps field names to error messages.
    """

    message_ar = "بيانات غير صحيحة"

    def __init__(
        self,
        message: str,
        fields: dict[str, str] | None = None,
        message_ar: str | None = None,
    ) -> None:
        super().__init__(message, message_ar, {"fields": fields or {}})
        self.fields = fields or {}


class DuplicateResponseError(AssessmentError):
    """Raised when a question is answered twice within one assessment."""

    def __init__(self, assessment_id: str, question_id: str) -> None:
        super().__init__(
            f"Question '{question_id}' has already been answered for this assessment",
            "تمت الإجابة على هذا السؤال مسبقاً في هذا التقييم",
            {"assessment_id": assessment_id, "question_id": question_id},
        )
        self.assessment_id = assessment_id
        self.question_id = question_id


class InvalidTransitionError(AssessmentError):
    """Raised when an illegal status change is requested."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot move assessment from '{current}' to '{requested}'",
            f"لا يمكن نقل التقييم من الحالة '{current}' إلى '{requested}'",
            {"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


class IncompleteReviewError(AssessmentError):
    """Raised when a review is completed without clinical notes."""

    def __init__(self) -> None:
        super().__init__(
            "Review notes are required to complete a review",
            "ملاحظات المراجعة مطلوبة لإكمال المراجعة",
            {"fields": {"review_notes": "required"}},
        )


class ConflictError(AssessmentError):
    """Raised when a review save carries a stale version token."""

    def __init__(self, expected_version: int, actual_version: int | None) -> None:
        super().__init__(
            "The assessment was modified by another reviewer; reload and try again",
            "تم تعديل التقييم من قبل مراجع آخر؛ يرجى إعادة التحميل والمحاولة مرة أخرى",
            {"expected_version": expected_version, "actual_version": actual_version},
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class SequenceConflict(AssessmentError):
    """Raised when two writers race to create a year's sequence counter.

    Transient: the submission service retries the whole unit of work and
    only lets this escape once its retries are exhausted.
    """

    def __init__(self, year: int) -> None:
        super().__init__(
            f"Could not allocate an assessment number for {year}",
            f"تعذر تخصيص رقم تقييم لسنة {year}",
            {"year": year},
        )
        self.year = year


class AssessmentNotFoundError(AssessmentError):
    """Raised when an assessment does not exist."""

    def __init__(self, assessment_id: str) -> None:
        super().__init__(
            f"Assessment {assessment_id} not found",
            "التقييم غير موجود",
            {"assessment_id": assessment_id},
        )
        self.assessment_id = assessment_id


class CatalogLoadError(AssessmentError):
    """Raised when the question catalog cannot be loaded or is malformed."""

    message_ar = "تعذر تحميل قائمة الأسئلة"


class CatalogMismatchError(ValidationError):
    """Raised when an assessment was answered against a different catalog.

    Answers only resolve against the catalog version the assessment was
    created with, so recording or re-scoring under another one is refused.
    """

    def __init__(self, assessment_version: str, active_version: str) -> None:
        super().__init__(
            f"Assessment uses catalog v{assessment_version}; "
            f"the active catalog is v{active_version}",
            fields={"catalog_version": assessment_version},
            message_ar="تم إنشاء هذا التقييم بنسخة مختلفة من قائمة الأسئلة",
        )
        self.assessment_version = assessment_version
        self.active_version = active_version
