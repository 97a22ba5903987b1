"""Escalation log schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class EscalationLogEntryResponse(BaseModel):
    """Single escalation log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    rule_id: uuid.UUID | None
    rule_name: str | None
    entity_type: str
    entity_id: uuid.UUID
    entity_title: str | None
    notified_user_ids: list[str]
    notification_channels: list[str]
    fired_at: datetime
    resolved_at: datetime | None
    acknowledged_by: uuid.UUID | None
    acknowledged_at: datetime | None


class EscalationLogResponse(BaseModel):
    """Escalation history for a workspace."""

    workspace_id: uuid.UUID
    entries: list[EscalationLogEntryResponse]
    count: int
