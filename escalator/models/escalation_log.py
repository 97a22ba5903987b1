"""Escalation log model.

Audit trail of every rule firing. Snapshots (rule name, entity title,
recipients, channels) are captured at fire time so later edits to the
rule or the record do not rewrite history.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from escalator.models.base import Base, UUIDPrimaryKeyMixin

OPEN_ESCALATION_INDEX = "uq_escalation_log_open_rule_entity"


class EscalationLogEntry(Base, UUIDPrimaryKeyMixin):
    """One firing of a rule against one record.

    At most one row per (rule_id, entity_id) may have resolved_at IS NULL.
    The partial unique index turns a second concurrent insert into an
    IntegrityError instead of a duplicate escalation.
    """

    __tablename__ = "escalation_log"
    __table_args__ = (
        Index(
            OPEN_ESCALATION_INDEX,
            "rule_id",
            "entity_id",
            unique=True,
            postgresql_where=text("resolved_at IS NULL"),
            sqlite_where=text("resolved_at IS NULL"),
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )

    # Weak reference: history survives rule deletion
    rule_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("escalation_rules.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    rule_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    entity_title: Mapped[str | None] = mapped_column(String(500), nullable=True)

    notified_user_ids: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    notification_channels: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    fired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # Set by the acknowledgement/resolution collaborator, never by the engine
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    acknowledged_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    def __repr__(self) -> str:
        return (
            f"<EscalationLogEntry(rule={self.rule_id}, "
            f"entity={self.entity_type}:{self.entity_id}, open={self.is_open})>"
        )
