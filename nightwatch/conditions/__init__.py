"""Action availability conditions."""

from nightwatch.conditions.condition_evaluator import (
    Condition,
    ConditionKind,
    ConditionEvaluator,
    parse_condition,
    are_conditions_met,
    get_condition_evaluator,
    is_target_adjacent,
)

__all__ = [
    "Condition",
    "ConditionKind",
    "ConditionEvaluator",
    "parse_condition",
    "are_conditions_met",
    "get_condition_evaluator",
    "is_target_adjacent",
]
