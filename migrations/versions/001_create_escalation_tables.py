"""Create escalation engine tables.

Revision ID: 001_escalation_tables
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001_escalation_tables"
down_revision = None
branch_labels = None
depends_on = None

RECORD_TABLES = {
    "work_orders": [sa.Column("priority", sa.String(50), nullable=True)],
    "issues": [sa.Column("severity", sa.String(50), nullable=True)],
    "compliance_events": [sa.Column("priority", sa.String(50), nullable=True)],
    "risks": [
        sa.Column("probability", sa.String(50), nullable=True),
        sa.Column("impact", sa.String(50), nullable=True),
    ],
    "regulatory_action_items": [sa.Column("due_date", sa.Date(), nullable=True)],
}


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=None if nullable else sa.func.now(),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "escalation_rules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("trigger_entity", sa.String(50), nullable=False),
        sa.Column(
            "trigger_condition",
            postgresql.JSONB(),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("delay_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "notify_roles", postgresql.JSONB(), nullable=False, server_default="[]"
        ),
        sa.Column(
            "notify_user_ids", postgresql.JSONB(), nullable=False, server_default="[]"
        ),
        sa.Column(
            "notification_channels",
            postgresql.JSONB(),
            nullable=False,
            server_default="[]",
        ),
        sa.Column("message_template", sa.Text(), nullable=True),
        sa.Column("resolution_condition", postgresql.JSONB(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("delay_hours >= 0", name="ck_escalation_rules_delay_hours"),
    )
    op.create_index(
        "ix_escalation_rules_workspace_id", "escalation_rules", ["workspace_id"]
    )

    op.create_table(
        "escalation_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "rule_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("escalation_rules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("rule_name", sa.String(255), nullable=True),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_title", sa.String(500), nullable=True),
        sa.Column(
            "notified_user_ids",
            postgresql.JSONB(),
            nullable=False,
            server_default="[]",
        ),
        sa.Column(
            "notification_channels",
            postgresql.JSONB(),
            nullable=False,
            server_default="[]",
        ),
        _timestamp("fired_at"),
        _timestamp("resolved_at", nullable=True),
        sa.Column("acknowledged_by", postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp("acknowledged_at", nullable=True),
    )
    op.create_index(
        "ix_escalation_log_workspace_id", "escalation_log", ["workspace_id"]
    )
    op.create_index("ix_escalation_log_rule_id", "escalation_log", ["rule_id"])
    op.create_index("ix_escalation_log_entity_id", "escalation_log", ["entity_id"])
    # At most one open escalation per (rule, record)
    op.create_index(
        "uq_escalation_log_open_rule_entity",
        "escalation_log",
        ["rule_id", "entity_id"],
        unique=True,
        postgresql_where=sa.text("resolved_at IS NULL"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "is_read", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        _timestamp("created_at"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "user_roles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "workspace_id",
            "user_id",
            "role",
            name="uq_user_roles_workspace_user_role",
        ),
    )
    op.create_index("ix_user_roles_workspace_id", "user_roles", ["workspace_id"])
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    for table, extra_columns in RECORD_TABLES.items():
        op.create_table(
            table,
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("title", sa.String(500), nullable=True),
            sa.Column("status", sa.String(50), nullable=True),
            *extra_columns,
            _timestamp("created_at"),
        )
        op.create_index(f"ix_{table}_workspace_id", table, ["workspace_id"])
        op.create_index(f"ix_{table}_created_at", table, ["created_at"])


def downgrade() -> None:
    for table in reversed(list(RECORD_TABLES)):
        op.drop_index(f"ix_{table}_created_at")
        op.drop_index(f"ix_{table}_workspace_id")
        op.drop_table(table)

    op.drop_index("ix_user_roles_user_id")
    op.drop_index("ix_user_roles_workspace_id")
    op.drop_table("user_roles")

    op.drop_index("ix_notifications_user_id")
    op.drop_table("notifications")

    op.drop_index("uq_escalation_log_open_rule_entity")
    op.drop_index("ix_escalation_log_entity_id")
    op.drop_index("ix_escalation_log_rule_id")
    op.drop_index("ix_escalation_log_workspace_id")
    op.drop_table("escalation_log")

    op.drop_index("ix_escalation_rules_workspace_id")
    op.drop_table("escalation_rules")
