"""Audit trail schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field

from cogscreen.models.audit_event import ActorType


class AuditEventRead(BaseModel):
    """One entry of an assessment's audit trail."""

    id: str
    actor_type: ActorType
    actor_id: str | None
    actor_name: str | None
    action: str
    action_category: str | None
    entity_type: str
    entity_id: str | None
    metadata: dict[str, Any] | None = Field(None, validation_alias="event_metadata")
    description: str | None
    request_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def actor_display(self) -> str:
        """Name shown in the review screen's history panel."""
        return self.actor_name or self.actor_id or self.actor_type.value


class AuditEventFilter(BaseModel):
    """Audit query filters; unset fields do not filter."""

    entity_type: str | None = None
    entity_id: str | None = None
    actor_id: str | None = None
    action: str | None = None
    action_category: str | None = None
    since: datetime | None = None
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)
