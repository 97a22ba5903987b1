"""At-most-one-open-escalation check.

The existence query here is the fast path. The partial unique index on
escalation_log(rule_id, entity_id) WHERE resolved_at IS NULL is what
actually holds the invariant when two passes race between this check
and the insert.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from escalator.models.escalation_log import EscalationLogEntry


async def has_open_escalation(
    db: AsyncSession,
    rule_id: uuid.UUID,
    entity_id: uuid.UUID,
) -> bool:
    """Return True if the rule already has an unresolved firing for the record.

    Args:
        db: Database session.
        rule_id: Rule UUID.
        entity_id: Target record UUID.
    """
    result = await db.execute(
        select(EscalationLogEntry.id)
        .where(
            EscalationLogEntry.rule_id == rule_id,
            EscalationLogEntry.entity_id == entity_id,
            EscalationLogEntry.resolved_at.is_(None),
        )
        .limit(1)
    )
    return result.first() is not None
