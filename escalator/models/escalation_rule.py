"""Escalation rule model.

A standing alert definition: which records to watch, which predicate
they must satisfy, how old they must be, and who to notify.
"""

import enum
import uuid
from datetime import timedelta
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Float, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from escalator.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TriggerEntity(str, enum.Enum):
    """Record domains a rule can watch."""

    WORK_ORDER = "work_order"
    ISSUE = "issue"
    COMPLIANCE_EVENT = "compliance_event"
    RISK = "risk"
    REGULATORY_ACTION_ITEM = "regulatory_action_item"


class ConditionOperator(str, enum.Enum):
    """Operators supported in a trigger condition."""

    EQUALS = "equals"
    IN = "in"
    NOT_IN = "not_in"


class EscalationRule(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """User-defined escalation rule, scoped to a workspace.

    ``trigger_entity`` is stored as a plain string rather than an enum
    column: a rule pointing at an unsupported domain must still load, it
    just never matches anything.
    """

    __tablename__ = "escalation_rules"
    __table_args__ = (
        CheckConstraint("delay_hours >= 0", name="ck_escalation_rules_delay_hours"),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    trigger_entity: Mapped[str] = mapped_column(String(50), nullable=False)

    # {"field": ..., "operator": ..., "value": ...}
    trigger_condition: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    delay_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    notify_roles: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    notify_user_ids: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    notification_channels: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    message_template: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Stored for the resolution collaborator; the engine never evaluates it
    resolution_condition: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
    )

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )

    @property
    def delay_threshold(self) -> timedelta:
        return timedelta(hours=self.delay_hours or 0)

    def __repr__(self) -> str:
        return (
            f"<EscalationRule(name={self.name!r}, "
            f"entity={self.trigger_entity}, active={self.is_active})>"
        )
