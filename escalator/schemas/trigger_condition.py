"""Trigger condition schema."""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from escalator.models.escalation_rule import ConditionOperator


class TriggerCondition(BaseModel):
    """A ``{field, operator, value}`` predicate over a record's columns.

    ``in`` and ``not_in`` take a list; ``equals`` takes any JSON value.
    """

    model_config = ConfigDict(frozen=True)

    field: str
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: Any

    @model_validator(mode="after")
    def check_value_shape(self) -> "TriggerCondition":
        if self.operator in (ConditionOperator.IN, ConditionOperator.NOT_IN):
            if not isinstance(self.value, list):
                msg = f"operator '{self.operator.value}' requires a list value"
                raise ValueError(msg)
        return self
