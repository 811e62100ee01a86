"""Append-only record of who changed what on an assessment."""

from enum import Enum

from sqlalchemy import Index, String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import Mapped, mapped_column

from cogscreen.db.base import Base, TimestampMixin, UUIDMixin


class ActorType(str, Enum):
    """Who performed an action."""

    SYSTEM = "system"
    STAFF = "staff"  # Clinical staff or administrator
    PATIENT = "patient"  # Authenticated respondent
    ANONYMOUS = "anonymous"  # Unauthenticated form submission


class AuditEvent(Base, UUIDMixin, TimestampMixin):
    """One audited action.

    Rows are never updated or deleted; on PostgreSQL a trigger rejects both.
    Events are written in the same transaction as the change they describe:
    response ingest, submission, review saves and completion, reopen,
    archive and priority changes.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_entity", "entity_type", "entity_id"),
    )

    actor_type: Mapped[ActorType] = mapped_column(String(50), nullable=False)
    # Identity provider subject; null for system and anonymous actors
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    actor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # e.g. "assessment_submitted", "review_completed"
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    # intake, review or admin
    action_category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} {self.entity_type}:{self.entity_id}>"
