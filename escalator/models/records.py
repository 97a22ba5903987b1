"""Operational record models watched by escalation rules.

These tables belong to their own domains (maintenance, inspections,
compliance calendar, risk register, regulatory cases). Only the columns
a trigger condition may reference are mapped here.
"""

import uuid
from datetime import UTC, date, datetime

from sqlalchemy import Date, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from escalator.models.base import Base, UUIDPrimaryKeyMixin


class TrackedRecordMixin(UUIDPrimaryKeyMixin):
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        index=True,
    )


class WorkOrder(Base, TrackedRecordMixin):
    __tablename__ = "work_orders"

    priority: Mapped[str | None] = mapped_column(String(50), nullable=True)


class Issue(Base, TrackedRecordMixin):
    __tablename__ = "issues"

    severity: Mapped[str | None] = mapped_column(String(50), nullable=True)


class ComplianceEvent(Base, TrackedRecordMixin):
    __tablename__ = "compliance_events"

    priority: Mapped[str | None] = mapped_column(String(50), nullable=True)


class Risk(Base, TrackedRecordMixin):
    __tablename__ = "risks"

    probability: Mapped[str | None] = mapped_column(String(50), nullable=True)
    impact: Mapped[str | None] = mapped_column(String(50), nullable=True)


class RegulatoryActionItem(Base, TrackedRecordMixin):
    __tablename__ = "regulatory_action_items"

    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
