"""Tests for trigger condition evaluation."""

import pytest

from escalator.core.exceptions import InvalidConditionError
from escalator.models.escalation_rule import ConditionOperator
from escalator.schemas.trigger_condition import TriggerCondition
from escalator.services.condition_matcher import is_match_all, matches, parse_condition


class TestIsMatchAll:
    """Conditions without a usable predicate let everything through."""

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            {},
            {"operator": "equals", "value": "open"},
            {"field": "", "value": "open"},
            {"field": "status"},
            {"field": "status", "value": None},
            {"field": "status", "value": ""},
        ],
    )
    def test_match_all_conditions(self, raw):
        assert is_match_all(raw) is True

    def test_field_and_value_is_a_predicate(self):
        assert is_match_all({"field": "status", "value": "open"}) is False

    def test_falsy_but_present_value_is_a_predicate(self):
        assert is_match_all({"field": "count", "value": 0}) is False


class TestParseCondition:
    """Tests for parse_condition."""

    def test_defaults_to_equals(self):
        parsed = parse_condition({"field": "status", "value": "open"})

        assert parsed.field == "status"
        assert parsed.operator == ConditionOperator.EQUALS
        assert parsed.value == "open"

    def test_match_all_returns_none(self):
        assert parse_condition({}) is None

    def test_parsed_condition_passes_through(self):
        condition = TriggerCondition(field="status", value="open")

        assert parse_condition(condition) is condition

    def test_unknown_operator_is_rejected(self):
        with pytest.raises(InvalidConditionError, match="Invalid trigger condition"):
            parse_condition({"field": "status", "operator": "gt", "value": 3})

    @pytest.mark.parametrize("operator", ["in", "not_in"])
    def test_list_operators_require_a_list(self, operator):
        with pytest.raises(InvalidConditionError):
            parse_condition({"field": "status", "operator": operator, "value": "open"})


class TestMatches:
    """Tests for matches."""

    def test_equals(self):
        condition = {"field": "priority", "operator": "equals", "value": "emergency"}

        assert matches({"priority": "emergency"}, condition) is True
        assert matches({"priority": "routine"}, condition) is False

    def test_equals_missing_field_does_not_match(self):
        condition = {"field": "priority", "value": "emergency"}

        assert matches({"status": "open"}, condition) is False

    def test_in(self):
        condition = {"field": "status", "operator": "in", "value": ["open", "blocked"]}

        assert matches({"status": "blocked"}, condition) is True
        assert matches({"status": "closed"}, condition) is False

    def test_not_in(self):
        condition = {"field": "status", "operator": "not_in", "value": ["closed"]}

        assert matches({"status": "open"}, condition) is True
        assert matches({"status": "closed"}, condition) is False

    def test_not_in_matches_missing_value(self):
        condition = {"field": "status", "operator": "not_in", "value": ["closed"]}

        assert matches({"status": None}, condition) is True

    def test_in_with_empty_list_matches_nothing(self):
        condition = {"field": "status", "operator": "in", "value": []}

        assert matches({"status": "open"}, condition) is False

    def test_list_valued_field_uses_overlap(self):
        in_condition = {"field": "tags", "operator": "in", "value": ["fire", "flood"]}
        not_in_condition = {"field": "tags", "operator": "not_in", "value": ["fire"]}

        assert matches({"tags": ["flood", "roof"]}, in_condition) is True
        assert matches({"tags": ["roof"]}, in_condition) is False
        assert matches({"tags": ["fire", "roof"]}, not_in_condition) is False
        assert matches({"tags": ["roof"]}, not_in_condition) is True

    def test_match_all_matches_any_record(self):
        assert matches({}, {"field": "status", "value": ""}) is True
        assert matches({"status": "closed"}, None) is True

    def test_invalid_condition_raises(self):
        with pytest.raises(InvalidConditionError):
            matches({"status": "open"}, {"field": "status", "operator": "like", "value": "o%"})
