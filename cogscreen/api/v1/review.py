"""Clinical review endpoints (staff only)."""

from fastapi import APIRouter, Header, status

from cogscreen.api.deps import AdminStaff, CurrentStaff, DbSession, RequestId
from cogscreen.api.errors import to_http_exception
from cogscreen.core.errors import AssessmentError
from cogscreen.schemas.assessment import AssessmentRead
from cogscreen.schemas.review import PriorityRequest, ReopenRequest, ReviewRequest
from cogscreen.services.review import ReviewService

router = APIRouter()


@router.post(
    "/{assessment_id}/review",
    response_model=AssessmentRead,
    status_code=status.HTTP_200_OK,
    summary="Save or complete a review",
    description=(
        "Send the version you loaded (body or If-Match header) to have a stale "
        "save rejected with 409; omit it for last-writer-wins."
    ),
)
async def save_review(
    assessment_id: str,
    body: ReviewRequest,
    session: DbSession,
    staff: CurrentStaff,
    request_id: RequestId,
    if_match: str | None = Header(None),
) -> AssessmentRead:
    """Save review findings, optionally completing the review."""
    expected_version = body.version
    if expected_version is None and if_match and if_match.strip('"').isdigit():
        expected_version = int(if_match.strip('"'))

    try:
        assessment = await ReviewService(session).save_review(
            assessment_id,
            body,
            reviewer=staff,
            expected_version=expected_version,
            request_id=request_id,
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e
    return AssessmentRead.model_validate(assessment)


@router.post(
    "/{assessment_id}/archive",
    response_model=AssessmentRead,
    status_code=status.HTTP_200_OK,
    summary="Archive a completed assessment",
)
async def archive_assessment(
    assessment_id: str,
    session: DbSession,
    staff: AdminStaff,
    request_id: RequestId,
) -> AssessmentRead:
    """Archive a completed assessment (admin only)."""
    try:
        assessment = await ReviewService(session).archive(
            assessment_id, actor=staff, request_id=request_id
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e
    return AssessmentRead.model_validate(assessment)


@router.post(
    "/{assessment_id}/reopen",
    response_model=AssessmentRead,
    status_code=status.HTTP_200_OK,
    summary="Reopen a completed review",
)
async def reopen_review(
    assessment_id: str,
    body: ReopenRequest,
    session: DbSession,
    staff: CurrentStaff,
    request_id: RequestId,
) -> AssessmentRead:
    """Return a completed review to under_review. A reason is required."""
    try:
        assessment = await ReviewService(session).reopen(
            assessment_id, actor=staff, reason=body.reason, request_id=request_id
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e
    return AssessmentRead.model_validate(assessment)


@router.post(
    "/{assessment_id}/priority",
    response_model=AssessmentRead,
    status_code=status.HTTP_200_OK,
    summary="Change review priority",
)
async def set_priority(
    assessment_id: str,
    body: PriorityRequest,
    session: DbSession,
    staff: AdminStaff,
    request_id: RequestId,
) -> AssessmentRead:
    """Change review priority (admin only)."""
    try:
        assessment = await ReviewService(session).set_priority(
            assessment_id, body.priority, actor=staff, request_id=request_id
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e
    return AssessmentRead.model_validate(assessment)
