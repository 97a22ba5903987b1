"""Starter escalation rules offered to new workspaces."""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from escalator.logging_config import get_logger
from escalator.models.escalation_rule import EscalationRule, TriggerEntity

logger = get_logger(__name__)

DEFAULT_RULES: list[dict[str, Any]] = [
    {
        "name": "Emergency Work Order - 2 Hour Response",
        "description": "Escalate emergency work orders not acknowledged within 2 hours",
        "trigger_entity": TriggerEntity.WORK_ORDER.value,
        "trigger_condition": {
            "field": "priority",
            "operator": "equals",
            "value": "emergency",
        },
        "delay_hours": 2,
        "notify_roles": ["admin", "owner", "manager"],
        "message_template": (
            "Emergency work order '{entity_title}' has been open for "
            "{hours_elapsed} hours without acknowledgment."
        ),
    },
    {
        "name": "Severe Defect - 48 Hour Assignment",
        "description": "Escalate severe defects unassigned for 48 hours",
        "trigger_entity": TriggerEntity.ISSUE.value,
        "trigger_condition": {
            "field": "severity",
            "operator": "equals",
            "value": "severe",
        },
        "delay_hours": 48,
        "notify_roles": ["admin", "owner"],
        "message_template": (
            "Severe defect '{entity_title}' has been unassigned for "
            "{hours_elapsed} hours."
        ),
    },
    {
        "name": "Critical Risk No Mitigation - 7 Days",
        "description": "Escalate critical risks open for 7+ days without mitigation",
        "trigger_entity": TriggerEntity.RISK.value,
        "trigger_condition": {"field": "status", "operator": "equals", "value": "open"},
        "delay_hours": 168,
        "notify_roles": ["admin", "owner"],
        "message_template": (
            "Critical risk '{entity_title}' has been open for {hours_elapsed} "
            "hours with no mitigation actions."
        ),
    },
    {
        "name": "Overdue Regulatory Action Item",
        "description": "Immediately escalate overdue regulatory action items",
        "trigger_entity": TriggerEntity.REGULATORY_ACTION_ITEM.value,
        "trigger_condition": {"field": "status", "operator": "equals", "value": "open"},
        "delay_hours": 0,
        "notify_roles": ["admin", "owner"],
        "message_template": "Regulatory action item '{entity_title}' is now overdue.",
    },
]


async def install_default_rules(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    created_by: uuid.UUID | None = None,
) -> list[EscalationRule]:
    """Add the starter rules a workspace does not have yet.

    Presets are matched by name, so running this twice is a no-op.

    Args:
        db: Database session.
        workspace_id: Workspace UUID.
        created_by: User installing the presets.

    Returns:
        The rules that were created.
    """
    result = await db.execute(
        select(EscalationRule.name).where(EscalationRule.workspace_id == workspace_id)
    )
    existing = {row[0] for row in result.all()}

    created = [
        EscalationRule(
            workspace_id=workspace_id,
            created_by=created_by,
            notification_channels=["in_app"],
            **preset,
        )
        for preset in DEFAULT_RULES
        if preset["name"] not in existing
    ]
    if not created:
        return []

    db.add_all(created)
    await db.commit()

    logger.info(
        "Installed default escalation rules",
        workspace_id=str(workspace_id),
        count=len(created),
    )
    return created
