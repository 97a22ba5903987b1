"""Exceptions raised by the escalation engine."""


class EscalationError(Exception):
    """Base class for escalation engine errors."""


class InvalidConditionError(EscalationError):
    """A rule's trigger condition cannot be evaluated.

    Treated as a configuration error: the rule is skipped for the pass.
    """


class UnknownTriggerEntityError(EscalationError):
    """No record source is registered for a trigger entity."""

    def __init__(self, trigger_entity: str):
        super().__init__(f"No record source registered for '{trigger_entity}'")
        self.trigger_entity = trigger_entity
