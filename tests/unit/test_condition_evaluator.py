"""Unit tests for trigger filters and CONDITION step predicates."""

import pytest

from automation.application.services.condition_evaluator import (
    check_trigger_conditions,
    evaluate,
    evaluate_condition_step,
    resolve_field,
)
from automation.domain.value_objects.steps import (
    Condition,
    TriggerConfig,
    parse_trigger_config,
)


class TestEvaluate:
    """Operator table."""

    def test_equals_same_value(self) -> None:
        assert evaluate("gold", "equals", "gold") is True

    def test_equals_different_value(self) -> None:
        assert evaluate("gold", "equals", "silver") is False

    def test_equals_does_not_coerce_bool_to_number(self) -> None:
        assert evaluate(True, "equals", 1) is False
        assert evaluate(0, "equals", False) is False

    def test_not_equals(self) -> None:
        assert evaluate("a", "not_equals", "b") is True
        assert evaluate("a", "not_equals", "a") is False

    def test_not_equals_missing_field(self) -> None:
        assert evaluate(None, "not_equals", "x") is True

    def test_contains_substring(self) -> None:
        assert evaluate("vip-customer", "contains", "vip") is True

    def test_contains_on_number_uses_text_form(self) -> None:
        assert evaluate(12345, "contains", "234") is True

    def test_contains_missing_field_is_false(self) -> None:
        assert evaluate(None, "contains", "vip") is False

    def test_greater_than_and_less_than(self) -> None:
        assert evaluate(150, "greater_than", 100) is True
        assert evaluate(50, "greater_than", 100) is False
        assert evaluate(50, "less_than", 100) is True
        assert evaluate(100, "less_than", 100) is False

    def test_ordering_incomparable_types_is_false(self) -> None:
        assert evaluate("abc", "greater_than", 10) is False
        assert evaluate(None, "less_than", 10) is False

    def test_in_list(self) -> None:
        assert evaluate("US", "in", ["US", "CA"]) is True
        assert evaluate("FR", "in", ["US", "CA"]) is False

    def test_in_requires_list_target(self) -> None:
        assert evaluate("US", "in", "US") is False

    def test_is_set_and_is_not_set(self) -> None:
        assert evaluate("x", "is_set", None) is True
        assert evaluate(None, "is_set", None) is False
        assert evaluate(None, "is_not_set", None) is True
        assert evaluate(0, "is_not_set", None) is False

    @pytest.mark.parametrize("default", [True, False])
    def test_unknown_operator_uses_caller_default(self, default: bool) -> None:
        assert evaluate("x", "matches_regex", "x", unknown_operator_result=default) is default


class TestCheckTriggerConditions:
    """Trigger filters: implicit AND, unknown operators pass."""

    def test_no_conditions_matches_everything(self) -> None:
        assert check_trigger_conditions(None, {}) is True
        assert check_trigger_conditions(TriggerConfig(), {"anything": 1}) is True

    def test_all_conditions_must_hold(self) -> None:
        config = parse_trigger_config(
            {
                "conditions": [
                    {"field": "orderTotal", "operator": "greater_than", "value": 100},
                    {"field": "country", "operator": "equals", "value": "US"},
                ]
            }
        )
        assert check_trigger_conditions(config, {"orderTotal": 150, "country": "US"}) is True
        assert check_trigger_conditions(config, {"orderTotal": 150, "country": "CA"}) is False

    def test_missing_field_fails_value_condition(self) -> None:
        config = TriggerConfig(conditions=(Condition("orderTotal", "greater_than", 100),))
        assert check_trigger_conditions(config, {}) is False

    def test_unknown_operator_passes(self) -> None:
        config = TriggerConfig(conditions=(Condition("x", "starts_with", "a"),))
        assert check_trigger_conditions(config, {"x": "zzz"}) is True


class TestResolveField:
    """Customer record first, then trigger data."""

    def test_customer_value_wins(self) -> None:
        assert resolve_field("tier", {"tier": "gold"}, {"tier": "silver"}) == "gold"

    def test_falls_back_to_trigger_data(self) -> None:
        assert resolve_field("cart_recovered", {"email": "a@b.c"}, {"cart_recovered": True}) is True

    def test_customer_key_present_with_none_wins(self) -> None:
        assert resolve_field("phone", {"phone": None}, {"phone": "+1555"}) is None

    def test_missing_everywhere_is_none(self) -> None:
        assert resolve_field("x", None, None) is None


class TestEvaluateConditionStep:
    """CONDITION steps: unknown operator takes the false branch."""

    def test_branch_on_trigger_data(self) -> None:
        condition = Condition("cart_recovered", "equals", False)
        assert evaluate_condition_step(condition, {}, {"cart_recovered": False}) is True
        assert evaluate_condition_step(condition, {}, {"cart_recovered": True}) is False

    def test_unknown_operator_is_false(self) -> None:
        condition = Condition("x", "starts_with", "a")
        assert evaluate_condition_step(condition, {"x": "abc"}, {}) is False

    def test_missing_customer(self) -> None:
        condition = Condition("email", "is_set")
        assert evaluate_condition_step(condition, None, {}) is False
