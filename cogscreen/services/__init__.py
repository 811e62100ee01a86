"""Business logic services."""

from cogscreen.services.audit import (
    ANONYMOUS_ACTOR,
    SYSTEM_ACTOR,
    Actor,
    AuditService,
    write_audit_event,
)
from cogscreen.services.ingest import ResponseIngestService
from cogscreen.services.reporting import ReportingService
from cogscreen.services.review import ReviewService
from cogscreen.services.review_state import ReviewStateMachine, review_state_machine
from cogscreen.services.scoring import ScoringService
from cogscreen.services.sequence import SequenceAllocator
from cogscreen.services.submission import ProxyInfo, SubmissionPayload, SubmissionService

__all__ = [
    "Actor",
    "ANONYMOUS_ACTOR",
    "SYSTEM_ACTOR",
    "AuditService",
    "write_audit_event",
    "ResponseIngestService",
    "ReportingService",
    "ReviewService",
    "ReviewStateMachine",
    "review_state_machine",
    "ScoringService",
    "SequenceAllocator",
    "SubmissionService",
    "SubmissionPayload",
    "ProxyInfo",
]
