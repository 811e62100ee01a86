"""Database models for the screening service."""

from cogscreen.models.assessment import (
    AnswerShape,
    Assessment,
    AssessmentResponse,
    AssessmentStatus,
    FormType,
    Language,
    Priority,
)
from cogscreen.models.audit_event import ActorType, AuditEvent
from cogscreen.models.notification import NotificationEvent, NotificationType
from cogscreen.models.score import InstrumentId, ScoreSnapshot
from cogscreen.models.sequence import AssessmentSequence

__all__ = [
    # Assessment
    "Assessment",
    "AssessmentResponse",
    "AssessmentStatus",
    "AnswerShape",
    "FormType",
    "Language",
    "Priority",
    # Numbering
    "AssessmentSequence",
    # Scoring
    "ScoreSnapshot",
    "InstrumentId",
    # Audit
    "AuditEvent",
    "ActorType",
    # Notifications
    "NotificationEvent",
    "NotificationType",
]
