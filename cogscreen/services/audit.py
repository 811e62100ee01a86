"""Audit trail: who did what to an assessment, and when.

Writes go through ``write_audit_event``; rows are never changed afterwards.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cogscreen.core.logging import audit_logger
from cogscreen.models.audit_event import ActorType, AuditEvent
from cogscreen.schemas.audit_event import AuditEventFilter


@dataclass(frozen=True)
class Actor:
    """Who is performing an action, as asserted by the identity provider."""

    actor_type: ActorType
    actor_id: str | None = None
    name: str | None = None
    role: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.actor_id or self.actor_type.value


SYSTEM_ACTOR = Actor(actor_type=ActorType.SYSTEM)
ANONYMOUS_ACTOR = Actor(actor_type=ActorType.ANONYMOUS)


async def write_audit_event(
    session: AsyncSession,
    actor: Actor,
    action: str,
    entity_type: str,
    entity_id: str | None,
    metadata: dict[str, Any] | None = None,
    action_category: str | None = None,
    description: str | None = None,
    request_id: str | None = None,
    commit: bool = True,
) -> AuditEvent:
    """Record an action on the audit trail.

    Args:
        session: Database session
        actor: Who performed the action
        action: What happened, e.g. "assessment_submitted"
        entity_type: Kind of record acted on, normally "assessment"
        entity_id: Record id
        metadata: JSON context such as the status moved from and to
        action_category: intake, review or admin
        description: Free text, e.g. the reason given for a reopen
        request_id: X-Request-ID of the originating request
        commit: Commit immediately. Pass False to join the caller's
            transaction so the event commits (or rolls back) with the change
            it records.

    Returns:
        The event, flushed and refreshed only when committed here
    """
    event = AuditEvent(
        actor_type=actor.actor_type,
        actor_id=actor.actor_id,
        actor_name=actor.name,
        action=action,
        action_category=action_category,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
        description=description,
        request_id=request_id,
    )

    session.add(event)
    if commit:
        await session.commit()
        await session.refresh(event)

    # Mirror to the log stream
    audit_logger.log(
        action=action,
        actor_type=actor.actor_type.value,
        actor_id=actor.actor_id or actor.actor_type.value,
        entity_type=entity_type,
        entity_id=entity_id or "none",
        metadata=metadata,
    )

    return event


class AuditService:
    """Read side of the audit trail."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_events(
        self,
        filters: AuditEventFilter,
    ) -> list[AuditEvent]:
        """Query audit events, newest first."""
        query = select(AuditEvent).order_by(AuditEvent.created_at.desc())

        for column, value in (
            (AuditEvent.entity_type, filters.entity_type),
            (AuditEvent.entity_id, filters.entity_id),
            (AuditEvent.actor_id, filters.actor_id),
            (AuditEvent.action, filters.action),
            (AuditEvent.action_category, filters.action_category),
        ):
            if value:
                query = query.where(column == value)
        if filters.since:
            query = query.where(AuditEvent.created_at >= filters.since)

        query = query.offset(filters.offset).limit(filters.limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Events for one record, oldest first."""
        result = await self.session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type)
            .where(AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())
