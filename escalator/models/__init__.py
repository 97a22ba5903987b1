# Database Models
from escalator.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from escalator.models.escalation_log import OPEN_ESCALATION_INDEX, EscalationLogEntry
from escalator.models.escalation_rule import (
    ConditionOperator,
    EscalationRule,
    TriggerEntity,
)
from escalator.models.notification import ESCALATION_NOTIFICATION_TYPE, Notification
from escalator.models.records import (
    ComplianceEvent,
    Issue,
    RegulatoryActionItem,
    Risk,
    WorkOrder,
)
from escalator.models.user_role import KNOWN_ROLES, UserRole

__all__ = [
    "Base",
    "ComplianceEvent",
    "ConditionOperator",
    "ESCALATION_NOTIFICATION_TYPE",
    "EscalationLogEntry",
    "EscalationRule",
    "Issue",
    "KNOWN_ROLES",
    "Notification",
    "OPEN_ESCALATION_INDEX",
    "RegulatoryActionItem",
    "Risk",
    "TimestampMixin",
    "TriggerEntity",
    "UUIDPrimaryKeyMixin",
    "UserRole",
    "WorkOrder",
]
