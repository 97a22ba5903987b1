"""Escalation router.

Monitoring endpoints for the escalation engine: workspace activation,
run summaries, on-demand passes and escalation history.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from escalator.database import get_db
from escalator.schemas.engine import (
    DefaultRulesResponse,
    RunSummaryResponse,
    WorkspaceActivationRequest,
    WorkspaceActivationResponse,
)
from escalator.schemas.escalation_log import (
    EscalationLogEntryResponse,
    EscalationLogResponse,
)
from escalator.services.default_rules import install_default_rules
from escalator.services.escalation_engine import get_escalation_log
from escalator.services.scheduler import PollingScheduler, get_scheduler

router = APIRouter(prefix="/api/escalation", tags=["escalation"])


def require_scheduler() -> PollingScheduler:
    """Dependency returning the running scheduler."""
    instance = get_scheduler()
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Escalation engine is disabled",
        )
    return instance


@router.post(
    "/workspaces/{workspace_id}/activate",
    response_model=WorkspaceActivationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def activate_workspace(
    workspace_id: uuid.UUID,
    body: WorkspaceActivationRequest,
    engine: PollingScheduler = Depends(require_scheduler),
) -> WorkspaceActivationResponse:
    """Start background escalation polling for a workspace."""
    active = engine.activate_workspace(workspace_id, body.actor_id)
    return WorkspaceActivationResponse(
        workspace_id=workspace_id,
        active=active,
        state=engine.state(workspace_id).value,
    )


@router.delete(
    "/workspaces/{workspace_id}/activate",
    response_model=WorkspaceActivationResponse,
)
async def deactivate_workspace(
    workspace_id: uuid.UUID,
    engine: PollingScheduler = Depends(require_scheduler),
) -> WorkspaceActivationResponse:
    """Stop background escalation polling for a workspace."""
    engine.deactivate_workspace(workspace_id)
    return WorkspaceActivationResponse(
        workspace_id=workspace_id,
        active=False,
        state=engine.state(workspace_id).value,
    )


@router.get(
    "/workspaces/{workspace_id}/summary",
    response_model=RunSummaryResponse,
)
async def get_run_summary(
    workspace_id: uuid.UUID,
    engine: PollingScheduler = Depends(require_scheduler),
) -> RunSummaryResponse:
    """Latest evaluation summary, evaluating on demand when stale.

    Inactive workspaces report zero counts.
    """
    summary = await engine.get_summary(workspace_id)
    return RunSummaryResponse(**summary.as_dict())


@router.post(
    "/workspaces/{workspace_id}/run",
    response_model=RunSummaryResponse,
)
async def run_evaluation_pass(
    workspace_id: uuid.UUID,
    engine: PollingScheduler = Depends(require_scheduler),
) -> RunSummaryResponse:
    """Force an evaluation pass now."""
    if not engine.is_active(workspace_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Workspace is not activated for escalation polling",
        )
    summary = await engine.run_pass(workspace_id)
    return RunSummaryResponse(**summary.as_dict())


@router.get(
    "/workspaces/{workspace_id}/log",
    response_model=EscalationLogResponse,
)
async def get_workspace_escalation_log(
    workspace_id: uuid.UUID,
    open_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> EscalationLogResponse:
    """Escalation history for a workspace, newest first."""
    entries = await get_escalation_log(db, workspace_id, open_only, limit)
    return EscalationLogResponse(
        workspace_id=workspace_id,
        entries=[EscalationLogEntryResponse.model_validate(e) for e in entries],
        count=len(entries),
    )


@router.post(
    "/workspaces/{workspace_id}/default-rules",
    response_model=DefaultRulesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_default_rules(
    workspace_id: uuid.UUID,
    body: WorkspaceActivationRequest,
    db: AsyncSession = Depends(get_db),
) -> DefaultRulesResponse:
    """Install the starter rule presets the workspace does not have yet."""
    created = await install_default_rules(db, workspace_id, body.actor_id)
    engine = get_scheduler()
    if created and engine is not None:
        engine.rules_changed(workspace_id)
    return DefaultRulesResponse(
        workspace_id=workspace_id,
        created=[rule.name for rule in created],
        count=len(created),
    )
