"""Escalation engine monitoring schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RunSummaryResponse(BaseModel):
    """Result of the latest evaluation pass."""

    model_config = ConfigDict(from_attributes=True)

    rules_checked: int
    escalations_fired: int
    rules_failed: int = 0
    rules_total: int = 0
    timed_out: bool = False
    evaluated_at: datetime | None = None


class WorkspaceActivationRequest(BaseModel):
    """Start polling a workspace on behalf of an authenticated user."""

    actor_id: uuid.UUID


class WorkspaceActivationResponse(BaseModel):
    workspace_id: uuid.UUID
    active: bool
    state: str


class DefaultRulesResponse(BaseModel):
    workspace_id: uuid.UUID
    created: list[str]
    count: int
