"""Assessment intake and read endpoints."""

from datetime import datetime

from fastapi import APIRouter, Query, status

from cogscreen.api.deps import (
    CatalogDep,
    CurrentStaff,
    DbSession,
    RequestId,
    SubmittingActor,
)
from cogscreen.api.errors import to_http_exception
from cogscreen.core.errors import AssessmentError
from cogscreen.models.assessment import AssessmentStatus, FormType, Priority
from cogscreen.schemas.assessment import (
    AnalyticsResponse,
    AssessmentListResponse,
    AssessmentRead,
    AssessmentSubmit,
    DraftCreate,
    ProxyInfoSchema,
    ResponseCreate,
    ResponseRead,
    ScoreReportResponse,
    ScoreSnapshotRead,
    StatsResponse,
    SubmissionResponse,
)
from cogscreen.schemas.audit_event import AuditEventRead
from cogscreen.services.audit import AuditService
from cogscreen.services.ingest import ResponseIngestService
from cogscreen.services.reporting import ReportingService
from cogscreen.services.scoring import ScoringService
from cogscreen.services.submission import ProxyInfo, SubmissionPayload, SubmissionService

router = APIRouter()


def _proxy(proxy_info: ProxyInfoSchema | None) -> ProxyInfo | None:
    if proxy_info is None:
        return None
    return ProxyInfo(**proxy_info.model_dump())


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a questionnaire",
    description="Validate, number and score a complete questionnaire in one step",
)
async def submit_assessment(
    body: AssessmentSubmit,
    session: DbSession,
    catalog: CatalogDep,
    actor: SubmittingActor,
    request_id: RequestId,
) -> SubmissionResponse:
    """Submit a complete questionnaire.

    Nothing is stored unless the whole submission succeeds.
    """
    payload = SubmissionPayload(
        patient_id=body.patient_id,
        form_type=body.form_type,
        language=body.language,
        responses=body.responses,
        proxy_info=_proxy(body.proxy_info),
        priority=body.priority,
    )
    try:
        assessment = await SubmissionService(session, catalog).submit_payload(
            payload, actor=actor, request_id=request_id
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e

    return SubmissionResponse(assessment=AssessmentRead.model_validate(assessment))


@router.post(
    "/drafts",
    response_model=AssessmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Start a draft assessment",
)
async def create_draft(
    body: DraftCreate,
    session: DbSession,
    catalog: CatalogDep,
    actor: SubmittingActor,
    request_id: RequestId,
) -> AssessmentRead:
    """Start a draft that answers are recorded against one at a time."""
    try:
        assessment = await SubmissionService(session, catalog).create_draft(
            patient_id=body.patient_id,
            form_type=body.form_type,
            language=body.language,
            proxy_info=_proxy(body.proxy_info),
            priority=body.priority,
            actor=actor,
            request_id=request_id,
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e

    return AssessmentRead.model_validate(assessment)


@router.post(
    "/{assessment_id}/responses",
    response_model=ResponseRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record an answer",
    description="Answers are immutable; a question can only be answered once",
)
async def record_response(
    assessment_id: str,
    body: ResponseCreate,
    session: DbSession,
    catalog: CatalogDep,
    actor: SubmittingActor,
    request_id: RequestId,
) -> ResponseRead:
    """Record one answer against a draft."""
    try:
        response = await ResponseIngestService(session, catalog).record_response(
            assessment_id,
            body.question_id,
            body.value,
            actor=actor,
            request_id=request_id,
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e

    return ResponseRead.model_validate(response)


@router.post(
    "/{assessment_id}/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_200_OK,
    summary="Submit a draft",
)
async def submit_draft(
    assessment_id: str,
    session: DbSession,
    catalog: CatalogDep,
    actor: SubmittingActor,
    request_id: RequestId,
) -> SubmissionResponse:
    """Number and score a draft whose answers were recorded individually."""
    try:
        assessment = await SubmissionService(session, catalog).submit(
            assessment_id, actor=actor, request_id=request_id
        )
    except AssessmentError as e:
        raise to_http_exception(e) from e

    return SubmissionResponse(assessment=AssessmentRead.model_validate(assessment))


@router.get(
    "",
    response_model=AssessmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List assessments",
    description="Filtered, paginated list for the clinical team (staff only)",
)
async def list_assessments(
    session: DbSession,
    staff: CurrentStaff,
    status_filter: AssessmentStatus | None = Query(None, alias="status"),
    form_type: FormType | None = Query(None),
    priority: Priority | None = Query(None),
    search: str | None = Query(None, description="Assessment number or patient id"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> AssessmentListResponse:
    """List assessments, newest submission first."""
    items, total = await ReportingService(session).list_assessments(
        status=status_filter,
        form_type=form_type,
        priority=priority,
        search=search,
        limit=limit,
        offset=offset,
    )
    return AssessmentListResponse(
        items=[AssessmentRead.model_validate(a) for a in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/stats",
    response_model=StatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Review workload counts",
)
async def get_stats(session: DbSession, staff: CurrentStaff) -> StatsResponse:
    """Counts of submitted assessments by review state."""
    stats = await ReportingService(session).get_stats()
    return StatsResponse(**stats.to_dict())


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    status_code=status.HTTP_200_OK,
    summary="Submission volumes over a period",
)
async def get_analytics(
    session: DbSession,
    staff: CurrentStaff,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> AnalyticsResponse:
    """Counts by status, form type and language, and submissions per day."""
    analytics = await ReportingService(session).get_analytics(start_date, end_date)
    return AnalyticsResponse.model_validate(analytics)


@router.get(
    "/{assessment_id}",
    response_model=AssessmentRead,
    status_code=status.HTTP_200_OK,
    summary="Get an assessment",
)
async def get_assessment(
    assessment_id: str,
    session: DbSession,
    staff: CurrentStaff,
) -> AssessmentRead:
    """Get one assessment with its review fields."""
    try:
        assessment = await ReportingService(session).get_assessment(assessment_id)
    except AssessmentError as e:
        raise to_http_exception(e) from e
    return AssessmentRead.model_validate(assessment)


@router.get(
    "/{assessment_id}/scores",
    response_model=ScoreReportResponse,
    status_code=status.HTTP_200_OK,
    summary="Get instrument scores",
    description="Live aggregate from the stored answers, plus the snapshot taken at submission",
)
async def get_scores(
    assessment_id: str,
    session: DbSession,
    catalog: CatalogDep,
    staff: CurrentStaff,
) -> ScoreReportResponse:
    """Aggregate instrument scores with coverage and anomalies."""
    scoring = ScoringService(session, catalog)
    try:
        report = await scoring.aggregate(assessment_id)
    except AssessmentError as e:
        raise to_http_exception(e) from e
    snapshots = await scoring.get_snapshots(assessment_id)

    data = report.to_dict()
    return ScoreReportResponse(
        assessment_id=assessment_id,
        catalog_version=data["catalog_version"],
        score_version=data["score_version"],
        coverage_complete=data["coverage_complete"],
        anomaly_count=report.anomaly_count,
        instruments=data["instruments"],
        snapshots=[ScoreSnapshotRead.model_validate(s) for s in snapshots],
    )


@router.get(
    "/{assessment_id}/audit",
    response_model=list[AuditEventRead],
    status_code=status.HTTP_200_OK,
    summary="Get assessment audit trail",
)
async def get_audit_trail(
    assessment_id: str,
    session: DbSession,
    staff: CurrentStaff,
    limit: int = Query(100, ge=1, le=500),
) -> list[AuditEventRead]:
    """Audit events for one assessment, oldest first."""
    try:
        await ReportingService(session).get_assessment(assessment_id)
    except AssessmentError as e:
        raise to_http_exception(e) from e

    events = await AuditService(session).get_entity_history("assessment", assessment_id, limit)
    return [AuditEventRead.model_validate(e) for e in events]
