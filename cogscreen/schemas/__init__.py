"""Pydantic schemas for request/response validation."""

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
    StatsResponse,
    SubmissionResponse,
)
from cogscreen.schemas.audit_event import AuditEventFilter, AuditEventRead
from cogscreen.schemas.catalog import CatalogRead
from cogscreen.schemas.review import PriorityRequest, ReopenRequest, ReviewRequest

__all__ = [
    "AssessmentSubmit",
    "DraftCreate",
    "ProxyInfoSchema",
    "ResponseCreate",
    "ResponseRead",
    "AssessmentRead",
    "AssessmentListResponse",
    "SubmissionResponse",
    "StatsResponse",
    "AnalyticsResponse",
    "ScoreReportResponse",
    "AuditEventRead",
    "AuditEventFilter",
    "CatalogRead",
    "ReviewRequest",
    "ReopenRequest",
    "PriorityRequest",
]
