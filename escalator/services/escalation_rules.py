"""Rule directory: read access to a workspace's escalation rules."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from escalator.models.escalation_rule import EscalationRule


async def list_active_rules(
    db: AsyncSession,
    workspace_id: uuid.UUID,
) -> list[EscalationRule]:
    """Get all active rules for a workspace, oldest first.

    Args:
        db: Database session.
        workspace_id: Workspace UUID.

    Returns:
        Active escalation rules.
    """
    result = await db.execute(
        select(EscalationRule)
        .where(
            EscalationRule.workspace_id == workspace_id,
            EscalationRule.is_active.is_(True),
        )
        .order_by(EscalationRule.created_at, EscalationRule.id)
    )
    return list(result.scalars().all())


async def count_active_rules(db: AsyncSession, workspace_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(EscalationRule)
        .where(
            EscalationRule.workspace_id == workspace_id,
            EscalationRule.is_active.is_(True),
        )
    )
    return result.scalar_one()
