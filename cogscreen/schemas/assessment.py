"""Assessment submission and read schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from cogscreen.models.assessment import (
    AnswerShape,
    AssessmentStatus,
    FormType,
    Language,
    Priority,
)

SUBMITTED_MESSAGE = "Assessment submitted successfully"
SUBMITTED_MESSAGE_AR = "تم إرسال التقييم بنجاح"


class ProxyInfoSchema(BaseModel):
    """Relative or caregiver filling in the form for the patient."""

    name: str = Field(..., min_length=1, max_length=255)
    relationship: str = Field(..., min_length=1, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)


class AssessmentSubmit(BaseModel):
    """Schema for a one-shot questionnaire submission."""

    patient_id: str = Field(..., min_length=1, max_length=64)
    form_type: FormType
    language: Language = Language.ENGLISH
    proxy_info: ProxyInfoSchema | None = None
    responses: dict[str, Any] = Field(..., description="Answers keyed by question id")
    priority: Priority = Priority.NORMAL


class DraftCreate(BaseModel):
    """Schema for starting a draft assessment."""

    patient_id: str = Field(..., min_length=1, max_length=64)
    form_type: FormType
    language: Language = Language.ENGLISH
    proxy_info: ProxyInfoSchema | None = None
    priority: Priority = Priority.NORMAL


class ResponseCreate(BaseModel):
    """Schema for recording one answer against a draft."""

    question_id: str = Field(..., min_length=1, max_length=64)
    value: Any = None


class ResponseRead(BaseModel):
    """Schema for reading a stored answer."""

    id: str
    assessment_id: str
    question_id: str
    question_text: str
    answer_value: str
    answer_shape: AnswerShape
    created_at: datetime

    model_config = {"from_attributes": True}


class AssessmentRead(BaseModel):
    """Schema for reading assessment data."""

    id: str
    assessment_number: str | None
    patient_id: str
    form_type: FormType
    language: Language
    status: AssessmentStatus
    priority: Priority
    proxy_name: str | None
    proxy_email: str | None
    proxy_phone: str | None
    proxy_relationship: str | None
    submitted_at: datetime | None
    catalog_id: str
    catalog_version: str
    clinical_score: str | None
    review_notes: str | None
    recommendations: str | None
    reviewed_by: str | None
    reviewed_at: datetime | None
    is_reviewed: bool
    version: int
    last_review_saved_at: datetime | None
    last_review_saved_by: str | None
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class AssessmentListResponse(BaseModel):
    """Page of assessments."""

    items: list[AssessmentRead]
    total: int
    limit: int
    offset: int


class SubmissionResponse(BaseModel):
    """Response after a successful submission."""

    assessment: AssessmentRead
    message: str = SUBMITTED_MESSAGE
    message_ar: str = Field(SUBMITTED_MESSAGE_AR, serialization_alias="messageAr")


class StatsResponse(BaseModel):
    """Review workload counts for the dashboard."""

    total: int
    pending_review: int
    under_review: int
    completed: int
    archived: int
    submitted_today: int


class DailySubmissionsRead(BaseModel):
    """Submissions on one day."""

    day: str
    count: int

    model_config = {"from_attributes": True}


class AnalyticsResponse(BaseModel):
    """Submission volumes for a period."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    total: int
    reviewed: int
    by_status: dict[str, int]
    by_form_type: dict[str, int]
    by_language: dict[str, int]
    daily: list[DailySubmissionsRead]

    model_config = {"from_attributes": True}


class InstrumentScoreRead(BaseModel):
    """Aggregated score for one instrument."""

    instrument: str
    total: int
    max_total: int
    matched_count: int
    expected_count: int
    coverage: float
    coverage_complete: bool
    anomalies: list[str]
    missing: list[str]
    item_codes: dict[str, int] = {}


class ScoreSnapshotRead(BaseModel):
    """Instrument score stored at submission."""

    instrument: str
    score_version: str
    catalog_version: str
    total_score: int
    max_score: int
    matched_count: int
    expected_count: int
    anomalies: list[str]
    missing: list[str]
    calculated_at: datetime

    model_config = {"from_attributes": True}


class ScoreReportResponse(BaseModel):
    """Live aggregate plus the snapshots stored at submission."""

    assessment_id: str
    catalog_version: str
    score_version: str
    coverage_complete: bool
    anomaly_count: int
    instruments: dict[str, InstrumentScoreRead]
    snapshots: list[ScoreSnapshotRead] = []
