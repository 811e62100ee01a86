"""Translation of domain errors into HTTP responses."""

from fastapi import HTTPException, status

from cogscreen.core.errors import (
    AssessmentError,
    AssessmentNotFoundError,
    ConflictError,
    DuplicateResponseError,
    IncompleteReviewError,
    InvalidTransitionError,
    SequenceConflict,
    ValidationError,
)

ERROR_STATUS: dict[type[AssessmentError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    IncompleteReviewError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    DuplicateResponseError: status.HTTP_409_CONFLICT,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    AssessmentNotFoundError: status.HTTP_404_NOT_FOUND,
    SequenceConflict: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(exc: AssessmentError) -> HTTPException:
    """Build an HTTPException with a bilingual error body.

    Args:
        exc: Domain error

    Returns:
        HTTPException whose detail is ``{"error", "errorAr", "details"}``
    """
    code = status.HTTP_400_BAD_REQUEST
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            code = ERROR_STATUS[error_type]
            break
    return HTTPException(status_code=code, detail=exc.to_dict())
