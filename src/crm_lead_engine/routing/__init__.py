"""Lead routing and assignment system."""

from .router import (
    auto_assign_lead,
    AssignmentRule,
    AssignmentResult,
    RuleEvaluation,
    RuleType,
)
from .conditions import AssignmentCondition, ConditionOperator, evaluate_conditions
from .load_balancing import get_lead_distribution, suggest_rebalancing, RebalancingPlan

__all__ = [
    "auto_assign_lead",
    "AssignmentRule",
    "AssignmentResult",
    "RuleEvaluation",
    "RuleType",
    "AssignmentCondition",
    "ConditionOperator",
    "evaluate_conditions",
    "get_lead_distribution",
    "suggest_rebalancing",
    "RebalancingPlan",
]
