"""Record sources for escalation candidates.

Each trigger entity (work order, issue, ...) is served by a RecordSource
registered under its name. The engine only talks to the registry, so a
new record domain is one ``register`` call away.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from escalator.config import settings
from escalator.core.exceptions import InvalidConditionError, UnknownTriggerEntityError
from escalator.logging_config import get_logger
from escalator.models.escalation_rule import ConditionOperator, TriggerEntity
from escalator.models.records import (
    ComplianceEvent,
    Issue,
    RegulatoryActionItem,
    Risk,
    WorkOrder,
)
from escalator.schemas.trigger_condition import TriggerCondition
from escalator.services.condition_matcher import matches, parse_condition

logger = get_logger(__name__)

UNTITLED = "Untitled"


@dataclass(frozen=True)
class Candidate:
    """A record eligible for escalation, detached from any session."""

    id: uuid.UUID
    title: str
    created_at: datetime | None = None
    fields: dict[str, Any] = field(default_factory=dict)


class RecordSource(Protocol):
    """Query capability over one record domain."""

    async def find_candidates(
        self,
        db: AsyncSession,
        workspace_id: uuid.UUID,
        condition: dict[str, Any] | TriggerCondition | None,
        delay_threshold: timedelta,
        now: datetime,
    ) -> list[Candidate]: ...


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqlAlchemyRecordSource:
    """RecordSource backed by one mapped table.

    The trigger condition is pushed down as a WHERE clause and re-checked
    with the condition matcher on every returned row.
    """

    def __init__(
        self,
        model: type,
        fields: tuple[str, ...],
        limit: int | None = None,
    ):
        self.model = model
        self.fields = ("id", "title", "created_at", *fields)
        self.limit = limit

    def _column(self, name: str):
        if name not in self.fields:
            msg = f"'{name}' is not a filterable field of {self.model.__tablename__}"
            raise InvalidConditionError(msg)
        return getattr(self.model, name)

    def condition_clause(self, condition: TriggerCondition):
        """Translate a parsed condition into a SQL expression."""
        column = self._column(condition.field)

        if condition.operator == ConditionOperator.EQUALS:
            return column == condition.value
        if condition.operator == ConditionOperator.IN:
            return column.in_(condition.value)
        # NULL is not in any list; a bare NOT IN would drop those rows
        return or_(column.is_(None), column.not_in(condition.value))

    async def find_candidates(
        self,
        db: AsyncSession,
        workspace_id: uuid.UUID,
        condition: dict[str, Any] | TriggerCondition | None,
        delay_threshold: timedelta,
        now: datetime,
    ) -> list[Candidate]:
        """Find records of this domain that a rule may fire for.

        Args:
            db: Database session.
            workspace_id: Workspace the rule belongs to.
            condition: The rule's trigger condition.
            delay_threshold: Minimum record age; zero disables the age filter.
            now: Evaluation time.

        Returns:
            Matching records, oldest first, capped at the candidate limit.
        """
        parsed = parse_condition(condition)
        model = self.model

        stmt = select(model).where(model.workspace_id == workspace_id)

        if parsed is not None:
            stmt = stmt.where(self.condition_clause(parsed))

        if delay_threshold > timedelta(0):
            cutoff = now - delay_threshold
            stmt = stmt.where(model.created_at <= cutoff)

        limit = self.limit or settings.escalation_candidate_limit
        stmt = stmt.order_by(model.created_at, model.id).limit(limit)

        result = await db.execute(stmt)

        candidates = []
        for row in result.scalars().all():
            values = {name: getattr(row, name) for name in self.fields}
            values["created_at"] = _as_utc(values["created_at"])
            if parsed is not None and not matches(values, parsed):
                continue
            candidates.append(
                Candidate(
                    id=row.id,
                    title=row.title or UNTITLED,
                    created_at=values["created_at"],
                    fields=values,
                )
            )

        return candidates


def _key(trigger_entity: str | enum.Enum) -> str:
    if isinstance(trigger_entity, enum.Enum):
        return str(trigger_entity.value)
    return str(trigger_entity)


class RecordSourceRegistry:
    """Maps trigger entity names to record sources."""

    def __init__(self) -> None:
        self._sources: dict[str, RecordSource] = {}

    def register(self, trigger_entity: str | enum.Enum, source: RecordSource) -> None:
        self._sources[_key(trigger_entity)] = source

    def unregister(self, trigger_entity: str | enum.Enum) -> None:
        self._sources.pop(_key(trigger_entity), None)

    def get(self, trigger_entity: str | enum.Enum) -> RecordSource:
        try:
            return self._sources[_key(trigger_entity)]
        except KeyError:
            raise UnknownTriggerEntityError(_key(trigger_entity)) from None

    def entities(self) -> list[str]:
        return sorted(self._sources)

    def __contains__(self, trigger_entity: object) -> bool:
        if not isinstance(trigger_entity, (str, enum.Enum)):
            return False
        return _key(trigger_entity) in self._sources

    async def find_candidates(
        self,
        db: AsyncSession,
        workspace_id: uuid.UUID,
        trigger_entity: str | enum.Enum,
        condition: dict[str, Any] | TriggerCondition | None,
        delay_threshold: timedelta,
        now: datetime,
    ) -> list[Candidate]:
        """Dispatch to the source for ``trigger_entity``.

        Unsupported entities yield no candidates, which makes rules that
        point at them inert rather than failing the pass.
        """
        try:
            source = self.get(trigger_entity)
        except UnknownTriggerEntityError:
            logger.debug(
                "No record source for trigger entity",
                trigger_entity=_key(trigger_entity),
            )
            return []

        return await source.find_candidates(
            db, workspace_id, condition, delay_threshold, now
        )


def build_default_registry() -> RecordSourceRegistry:
    """Registry with the five built-in record domains."""
    registry = RecordSourceRegistry()
    registry.register(
        TriggerEntity.WORK_ORDER,
        SqlAlchemyRecordSource(WorkOrder, ("status", "priority")),
    )
    registry.register(
        TriggerEntity.ISSUE,
        SqlAlchemyRecordSource(Issue, ("status", "severity")),
    )
    registry.register(
        TriggerEntity.COMPLIANCE_EVENT,
        SqlAlchemyRecordSource(ComplianceEvent, ("status", "priority")),
    )
    registry.register(
        TriggerEntity.RISK,
        SqlAlchemyRecordSource(Risk, ("status", "probability", "impact")),
    )
    registry.register(
        TriggerEntity.REGULATORY_ACTION_ITEM,
        SqlAlchemyRecordSource(RegulatoryActionItem, ("status", "due_date")),
    )
    return registry


_default_registry: RecordSourceRegistry | None = None


def get_default_registry() -> RecordSourceRegistry:
    """Get or create the process-wide registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = build_default_registry()
    return _default_registry
