"""Escalation rule engine.

Fires active rules against the records they watch. For every candidate
that has no open escalation for the rule, writes one escalation log
entry and one in-app notification per resolved recipient.
"""

import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from escalator.config import settings
from escalator.core.exceptions import InvalidConditionError
from escalator.logging_config import bind_pass_id, get_logger
from escalator.models.escalation_log import EscalationLogEntry
from escalator.models.escalation_rule import EscalationRule
from escalator.models.notification import ESCALATION_NOTIFICATION_TYPE, Notification
from escalator.services.dedup_guard import has_open_escalation
from escalator.services.escalation_rules import list_active_rules
from escalator.services.message_templater import notification_title, render
from escalator.services.record_sources import (
    Candidate,
    RecordSourceRegistry,
    get_default_registry,
)
from escalator.services.role_expander import resolve_targets

logger = get_logger(__name__)


@dataclass(frozen=True)
class RuleSnapshot:
    """Plain copy of a rule's firing parameters.

    A rollback expires every ORM instance in the session, so the pass
    works from snapshots rather than the loaded rules.
    """

    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    trigger_entity: str
    trigger_condition: dict[str, Any]
    delay_threshold: timedelta
    notify_roles: tuple[str, ...] = ()
    notify_user_ids: tuple[str, ...] = ()
    notification_channels: tuple[str, ...] = ()
    message_template: str | None = None

    @classmethod
    def from_rule(cls, rule: EscalationRule) -> "RuleSnapshot":
        return cls(
            id=rule.id,
            workspace_id=rule.workspace_id,
            name=rule.name,
            trigger_entity=rule.trigger_entity,
            trigger_condition=dict(rule.trigger_condition or {}),
            delay_threshold=rule.delay_threshold,
            notify_roles=tuple(rule.notify_roles or ()),
            notify_user_ids=tuple(str(u) for u in rule.notify_user_ids or ()),
            notification_channels=tuple(rule.notification_channels or ()),
            message_template=rule.message_template,
        )

    @property
    def channels(self) -> list[str]:
        return list(self.notification_channels) or [settings.escalation_default_channel]


@dataclass
class EvaluationSummary:
    """Outcome of one evaluation pass over a workspace."""

    rules_checked: int = 0
    escalations_fired: int = 0
    rules_failed: int = 0
    rules_total: int = 0
    timed_out: bool = False
    evaluated_at: datetime | None = field(default=None)

    def as_dict(self) -> dict[str, Any]:
        return {
            "rules_checked": self.rules_checked,
            "escalations_fired": self.escalations_fired,
            "rules_failed": self.rules_failed,
            "rules_total": self.rules_total,
            "timed_out": self.timed_out,
            "evaluated_at": self.evaluated_at,
        }


async def get_escalation_log(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    open_only: bool = False,
    limit: int = 100,
) -> list[EscalationLogEntry]:
    """Get a workspace's escalation history, newest first.

    Args:
        db: Database session.
        workspace_id: Workspace UUID.
        open_only: Only return entries that are not resolved yet.
        limit: Maximum number of entries.

    Returns:
        Escalation log entries.
    """
    stmt = select(EscalationLogEntry).where(
        EscalationLogEntry.workspace_id == workspace_id
    )
    if open_only:
        stmt = stmt.where(EscalationLogEntry.resolved_at.is_(None))
    stmt = stmt.order_by(EscalationLogEntry.fired_at.desc()).limit(limit)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_log_entry(
    db: AsyncSession,
    rule: RuleSnapshot,
    candidate: Candidate,
    targets: Iterable[uuid.UUID],
    now: datetime,
) -> EscalationLogEntry | None:
    """Persist the audit record of one firing.

    Args:
        db: Database session.
        rule: The rule that fired.
        candidate: The record it fired for.
        targets: Resolved recipients.
        now: Fire time.

    Returns:
        Created entry, or None if an open entry for the same rule and
        record was written concurrently (unique index violation).
    """
    entry = EscalationLogEntry(
        workspace_id=rule.workspace_id,
        rule_id=rule.id,
        rule_name=rule.name,
        entity_type=rule.trigger_entity,
        entity_id=candidate.id,
        entity_title=candidate.title,
        notified_user_ids=sorted(str(user_id) for user_id in targets),
        notification_channels=rule.channels,
        fired_at=now,
    )
    db.add(entry)

    try:
        await db.commit()
    except IntegrityError:
        # Another pass already holds the open escalation for this pair
        await db.rollback()
        logger.debug(
            "Open escalation already exists (race condition)",
            rule_id=str(rule.id),
            entity_id=str(candidate.id),
        )
        return None

    return entry


async def create_notifications(
    db: AsyncSession,
    rule: RuleSnapshot,
    candidate: Candidate,
    targets: Iterable[uuid.UUID],
    message: str,
) -> list[Notification]:
    """Persist one in-app notification per recipient.

    Args:
        db: Database session.
        rule: The rule that fired.
        candidate: The record it fired for.
        targets: Resolved recipients.
        message: Rendered notification body.

    Returns:
        The created notifications (empty when there are no recipients).
    """
    notifications = [
        Notification(
            user_id=user_id,
            type=ESCALATION_NOTIFICATION_TYPE,
            title=notification_title(rule.name),
            message=message,
            entity_type=rule.trigger_entity,
            entity_id=candidate.id,
        )
        for user_id in sorted(targets)
    ]
    if not notifications:
        return []

    db.add_all(notifications)
    await db.commit()
    return notifications


async def fire_rule(
    db: AsyncSession,
    rule: EscalationRule | RuleSnapshot,
    now: datetime,
    registry: RecordSourceRegistry | None = None,
    summary: EvaluationSummary | None = None,
) -> int:
    """Fire one rule against all of its current candidates.

    Firings are committed one by one, so an exception part way through
    leaves the earlier firings in place. ``summary.escalations_fired`` is
    incremented as each firing lands.

    Args:
        db: Database session.
        rule: Rule to fire.
        now: Evaluation time.
        registry: Record source registry (defaults to the built-in one).
        summary: Run summary to update.

    Returns:
        Number of escalations fired for this rule.
    """
    if isinstance(rule, EscalationRule):
        rule = RuleSnapshot.from_rule(rule)
    registry = registry or get_default_registry()

    candidates = await registry.find_candidates(
        db,
        rule.workspace_id,
        rule.trigger_entity,
        rule.trigger_condition,
        rule.delay_threshold,
        now,
    )

    fired = 0
    for candidate in candidates:
        if await has_open_escalation(db, rule.id, candidate.id):
            continue

        targets = await resolve_targets(
            db, rule.workspace_id, rule.notify_roles, rule.notify_user_ids
        )
        message = render(rule.message_template, candidate, now)

        entry = await create_log_entry(db, rule, candidate, targets, now)
        if entry is None:
            continue

        # The committed log entry is the firing, whatever the fan-out does
        fired += 1
        if summary is not None:
            summary.escalations_fired += 1

        try:
            await create_notifications(db, rule, candidate, targets, message)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(
                "Escalation notification fan-out failed",
                rule_id=str(rule.id),
                entity_id=str(candidate.id),
                recipients=len(targets),
                error=str(e),
            )

        logger.info(
            "Escalation fired",
            rule_id=str(rule.id),
            rule_name=rule.name,
            entity_type=rule.trigger_entity,
            entity_id=str(candidate.id),
            recipients=len(targets),
        )

    return fired


async def evaluate_workspace(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    now: datetime | None = None,
    registry: RecordSourceRegistry | None = None,
    deadline_seconds: float | None = None,
) -> EvaluationSummary:
    """Run one evaluation pass over every active rule of a workspace.

    A failing rule is rolled back, counted in ``rules_failed`` and
    skipped; the pass carries on with the next rule. When the deadline
    is reached the remaining rules are left for the next pass.

    Args:
        db: Database session.
        workspace_id: Workspace UUID.
        now: Evaluation time (defaults to the current UTC time).
        registry: Record source registry (defaults to the built-in one).
        deadline_seconds: Pass time budget; None uses the configured
            timeout, 0 disables it.

    Returns:
        EvaluationSummary for the pass.
    """
    now = now or datetime.now(UTC)
    registry = registry or get_default_registry()
    if deadline_seconds is None:
        deadline_seconds = settings.escalation_pass_timeout_seconds

    with bind_pass_id():
        active_rules = await list_active_rules(db, workspace_id)
        rules = [RuleSnapshot.from_rule(rule) for rule in active_rules]
        summary = EvaluationSummary(rules_total=len(rules), evaluated_at=now)

        logger.info(
            "Starting escalation evaluation pass",
            workspace_id=str(workspace_id),
            active_rules=len(rules),
        )

        started = time.monotonic()
        for rule in rules:
            if deadline_seconds and time.monotonic() - started >= deadline_seconds:
                summary.timed_out = True
                logger.warning(
                    "Evaluation pass deadline reached, remaining rules skipped",
                    workspace_id=str(workspace_id),
                    rules_checked=summary.rules_checked,
                    rules_total=summary.rules_total,
                )
                break

            summary.rules_checked += 1
            try:
                await fire_rule(db, rule, now, registry, summary)
            except InvalidConditionError as e:
                await db.rollback()
                summary.rules_failed += 1
                logger.warning(
                    "Skipping rule with invalid trigger condition",
                    rule_id=str(rule.id),
                    error=str(e),
                )
            except Exception as e:
                await db.rollback()
                summary.rules_failed += 1
                logger.error(
                    "Escalation rule evaluation failed",
                    rule_id=str(rule.id),
                    trigger_entity=rule.trigger_entity,
                    error=str(e),
                )

        logger.info(
            "Escalation evaluation pass completed",
            workspace_id=str(workspace_id),
            rules_checked=summary.rules_checked,
            escalations_fired=summary.escalations_fired,
            rules_failed=summary.rules_failed,
        )

    return summary
