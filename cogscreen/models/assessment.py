"""Assessment and response models for the screening questionnaire."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from cogscreen.db.base import Base, TimestampMixin, UUIDMixin


class AssessmentStatus(str, Enum):
    """Assessment review lifecycle status.

    Allowed moves are defined in ``cogscreen.services.review_state``.
    """

    DRAFT = "draft"  # Answers being collected
    SUBMITTED = "submitted"  # Numbered, awaiting clinical review
    UNDER_REVIEW = "under_review"  # Reviewer has saved partial findings
    COMPLETED = "completed"  # Review signed off
    ARCHIVED = "archived"  # Administrative end state


class FormType(str, Enum):
    """Who is filling in the questionnaire."""

    SELF = "self"
    PROXY = "proxy"  # Relative or caregiver answering for the patient


class Language(str, Enum):
    """Language the questionnaire was administered in."""

    ENGLISH = "english"
    ARABIC = "arabic"


class Priority(str, Enum):
    """Review priority shown to the clinical team."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class AnswerShape(str, Enum):
    """Shape of a stored raw answer value."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    MULTI_SELECT = "multi_select"
    DATE = "date"


class Assessment(Base, UUIDMixin, TimestampMixin):
    """One administration of the screening questionnaire.

    Root aggregate for responses, score snapshots and review findings.
    Clinical fields are only written through the review service.
    """

    __tablename__ = "assessments"
    __table_args__ = (
        UniqueConstraint("sequence_year", "sequence_number"),
    )

    # Patient identity is owned by an external collaborator
    patient_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    form_type: Mapped[FormType] = mapped_column(
        String(20),
        nullable=False,
    )
    language: Mapped[Language] = mapped_column(
        String(20),
        nullable=False,
    )

    # Proxy (relative/caregiver) details for PROXY forms
    proxy_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    proxy_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    proxy_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    proxy_relationship: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[AssessmentStatus] = mapped_column(
        String(30),
        default=AssessmentStatus.DRAFT,
        nullable=False,
        index=True,
    )
    priority: Mapped[Priority] = mapped_column(
        String(20),
        default=Priority.NORMAL,
        nullable=False,
    )

    # Human-facing number, allocated at submission (ASM-2025-00042)
    assessment_number: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        unique=True,
    )
    sequence_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sequence_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    # Catalog version the answers were collected against
    catalog_id: Mapped[str] = mapped_column(String(100), nullable=False)
    catalog_version: Mapped[str] = mapped_column(String(50), nullable=False)
    catalog_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Clinical review fields
    clinical_score: Mapped[str | None] = mapped_column(String(255), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommendations: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    is_reviewed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Optimistic concurrency token, bumped on every review write
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )
    last_review_saved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_review_saved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Assessment {self.assessment_number or self.id[:8]} status={self.status}>"


class AssessmentResponse(Base, UUIDMixin, TimestampMixin):
    """One answer to one question within an assessment.

    Responses are immutable once recorded. A corrected answer requires
    a new assessment.
    """

    __tablename__ = "assessment_responses"
    __table_args__ = (
        UniqueConstraint("assessment_id", "question_id"),
    )

    assessment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Catalog question id (e.g. "adl_01")
    question_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    # Question text as displayed at submission time
    question_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    # Raw value as submitted; JSON-encoded list for multi-select
    answer_value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    answer_shape: Mapped[AnswerShape] = mapped_column(
        String(20),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AssessmentResponse {self.question_id}={self.answer_value[:20]!r}>"
