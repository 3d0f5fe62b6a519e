"""Condition operators for custom assignment rules."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class ConditionOperator(Enum):
    """Supported comparison operators."""
    EQUALS = "equals"
    IN = "in"
    BETWEEN = "between"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"


@dataclass(frozen=True)
class AssignmentCondition:
    """A single ``field operator value`` test against a lead."""

    field: str  # e.g. "address1_country", "leadsourcecode", "estimatedvalue"
    operator: str
    value: Any


def lead_field_value(lead: Any, field: str) -> Any:
    """Read a field from a lead object or mapping; enums compare by value."""
    if isinstance(lead, dict):
        value = lead.get(field)
    else:
        value = getattr(lead, field, None)
    if isinstance(value, Enum):
        return value.value
    return value


def evaluate_condition(lead: Any, condition: AssignmentCondition) -> bool:
    """Check a single condition. Unknown operators and missing fields fail."""
    field_value = lead_field_value(lead, condition.field)
    expected = condition.value
    operator = condition.operator

    try:
        if operator == ConditionOperator.EQUALS.value:
            return field_value == expected

        if operator == ConditionOperator.IN.value:
            return isinstance(expected, (list, tuple, set)) and field_value in expected

        if operator == ConditionOperator.BETWEEN.value:
            if not isinstance(expected, (list, tuple)) or len(expected) != 2:
                return False
            if field_value is None:
                return False
            low, high = expected
            return low <= field_value <= high

        if operator == ConditionOperator.GREATER_THAN.value:
            return field_value is not None and field_value > expected

        if operator == ConditionOperator.LESS_THAN.value:
            return field_value is not None and field_value < expected

        if operator == ConditionOperator.CONTAINS.value:
            return (
                isinstance(field_value, str)
                and isinstance(expected, str)
                and expected.lower() in field_value.lower()
            )
    except TypeError:
        # Incomparable types (e.g. str vs int)
        return False

    return False


def evaluate_conditions(lead: Any, conditions: Iterable[AssignmentCondition]) -> bool:
    """All conditions must hold. An empty condition list always matches."""
    return all(evaluate_condition(lead, c) for c in conditions)
