"""Predicate evaluation for trigger filters and CONDITION steps.

One operator table serves both callers. They differ only in what an
operator the engine does not know evaluates to: trigger filters pass
(``unknown_operator_result=True``), CONDITION steps take the false branch
(``unknown_operator_result=False``).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from automation.domain.enums import ConditionOperator
from automation.domain.value_objects.steps import Condition, TriggerConfig


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality without bool/number coercion (True never equals 1)."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compare(field_value: Any, target: Any, greater: bool) -> bool:
    if field_value is None or target is None:
        return False
    try:
        return field_value > target if greater else field_value < target
    except TypeError:
        return False


def evaluate(
    field_value: Any,
    operator: str,
    target: Any,
    *,
    unknown_operator_result: bool = False,
) -> bool:
    """Evaluate ``field_value <operator> target``.

    A missing field is passed as None. ``contains`` is substring containment on
    the field's text form (None never contains anything); ``in`` requires
    target to be a list. Ordering comparisons between incomparable types are
    False.
    """
    try:
        op = ConditionOperator(operator)
    except ValueError:
        return unknown_operator_result

    if op is ConditionOperator.EQUALS:
        return _strict_equals(field_value, target)
    if op is ConditionOperator.NOT_EQUALS:
        return not _strict_equals(field_value, target)
    if op is ConditionOperator.CONTAINS:
        if field_value is None or target is None:
            return False
        return _as_text(target) in _as_text(field_value)
    if op is ConditionOperator.GREATER_THAN:
        return _compare(field_value, target, greater=True)
    if op is ConditionOperator.LESS_THAN:
        return _compare(field_value, target, greater=False)
    if op is ConditionOperator.IN:
        if not isinstance(target, (list, tuple)):
            return False
        return any(_strict_equals(field_value, item) for item in target)
    if op is ConditionOperator.IS_SET:
        return field_value is not None
    return field_value is None


def check_trigger_conditions(
    trigger_config: TriggerConfig | None, trigger_data: Mapping[str, Any]
) -> bool:
    """True when every trigger condition holds for trigger_data (no conditions: True)."""
    if trigger_config is None or not trigger_config.conditions:
        return True
    return all(
        evaluate(
            trigger_data.get(c.field),
            c.operator,
            c.value,
            unknown_operator_result=True,
        )
        for c in trigger_config.conditions
    )


def resolve_field(
    field: str,
    customer: Mapping[str, Any] | None,
    trigger_data: Mapping[str, Any] | None,
) -> Any:
    """Look up field on the customer record first, then in trigger_data.

    A key present on the customer wins even when its value is None; a field
    present in neither resolves to None.
    """
    for source in (customer, trigger_data):
        if source and field in source:
            return source[field]
    return None


def evaluate_condition_step(
    condition: Condition,
    customer: Mapping[str, Any] | None,
    trigger_data: Mapping[str, Any] | None,
) -> bool:
    """Evaluate a CONDITION step predicate (unknown operator takes the false branch)."""
    return evaluate(
        resolve_field(condition.field, customer, trigger_data),
        condition.operator,
        condition.value,
        unknown_operator_result=False,
    )
