"""Trigger condition evaluation.

Decides whether a record satisfies a rule's ``{field, operator, value}``
predicate. Record sources push the same predicate down to SQL where they
can; this module is the reference semantics every candidate is checked
against afterwards.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from escalator.core.exceptions import InvalidConditionError
from escalator.models.escalation_rule import ConditionOperator
from escalator.schemas.trigger_condition import TriggerCondition

_MULTI_VALUED = (list, tuple, set, frozenset)


def is_match_all(raw: Mapping[str, Any] | None) -> bool:
    """Return True when no predicate is configured.

    A condition without a field, or without a value, lets every record
    of the rule's entity type through.
    """
    if not raw:
        return True
    value = raw.get("value")
    return not raw.get("field") or value is None or value == ""


def parse_condition(
    raw: Mapping[str, Any] | TriggerCondition | None,
) -> TriggerCondition | None:
    """Normalise a stored trigger condition.

    Args:
        raw: The rule's ``trigger_condition`` JSON, or an already parsed condition.

    Returns:
        The parsed condition, or None for a match-all condition.

    Raises:
        InvalidConditionError: If the operator is unknown or the value has
            the wrong shape for the operator.
    """
    if isinstance(raw, TriggerCondition):
        return raw
    if is_match_all(raw):
        return None

    try:
        return TriggerCondition.model_validate(dict(raw))
    except ValidationError as e:
        errors = "; ".join(err["msg"] for err in e.errors())
        raise InvalidConditionError(f"Invalid trigger condition: {errors}") from e


def matches(
    record: Mapping[str, Any],
    condition: Mapping[str, Any] | TriggerCondition | None,
) -> bool:
    """Evaluate a trigger condition against a record's fields.

    Multi-valued fields are compared by overlap: ``in`` matches when any
    element is listed, ``not_in`` when none is.

    Args:
        record: Field name to value mapping for one record.
        condition: Raw or parsed trigger condition.

    Returns:
        True if the record satisfies the condition.
    """
    parsed = parse_condition(condition)
    if parsed is None:
        return True

    actual = record.get(parsed.field)

    if parsed.operator == ConditionOperator.EQUALS:
        return actual == parsed.value

    options = parsed.value
    if isinstance(actual, _MULTI_VALUED):
        overlap = any(item in options for item in actual)
    else:
        overlap = actual in options

    if parsed.operator == ConditionOperator.IN:
        return overlap
    return not overlap
