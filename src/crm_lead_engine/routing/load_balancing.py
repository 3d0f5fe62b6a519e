"""Lead load distribution across sales reps."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..core.config import AssignmentConfig
from ..core.models import SalesRepresentative

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepLoad:
    """A rep's share of the currently assigned leads."""
    rep: SalesRepresentative
    percentage: float
    is_overloaded: bool


@dataclass(frozen=True)
class RebalancingSuggestion:
    """Move ``lead_count`` leads from one rep to another."""
    from_rep: str
    to_rep: str
    lead_count: int


@dataclass(frozen=True)
class RebalancingPlan:
    should_rebalance: bool
    reason: str
    suggestions: List[RebalancingSuggestion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "should_rebalance": self.should_rebalance,
            "reason": self.reason,
            "suggestions": [
                {"from": s.from_rep, "to": s.to_rep, "lead_count": s.lead_count}
                for s in self.suggestions
            ],
        }


def get_lead_distribution(sales_reps: Sequence[SalesRepresentative]) -> List[RepLoad]:
    """Share of total leads held by each rep, in input order."""
    total_leads = sum(rep.current_lead_count for rep in sales_reps)

    return [
        RepLoad(
            rep=rep,
            percentage=rep.current_lead_count / total_leads * 100 if total_leads > 0 else 0,
            is_overloaded=rep.current_lead_count >= rep.max_lead_capacity
        )
        for rep in sales_reps
    ]


def suggest_rebalancing(
    sales_reps: Sequence[SalesRepresentative],
    config: Optional[AssignmentConfig] = None
) -> RebalancingPlan:
    """Suggest lead moves when active reps deviate too far from an even split."""
    config = config or AssignmentConfig()
    active = [d for d in get_lead_distribution(sales_reps) if d.rep.is_active]

    if not active:
        return RebalancingPlan(False, "No active sales reps")

    even_share = 100 / len(active)
    threshold = config.rebalance_threshold

    overloaded = [d for d in active if d.percentage > even_share + threshold]
    underloaded = [d for d in active if d.percentage < even_share - threshold]

    if not overloaded or not underloaded:
        return RebalancingPlan(False, "Lead distribution is balanced")

    suggestions = [
        RebalancingSuggestion(
            from_rep=over.rep.name,
            to_rep=under.rep.name,
            lead_count=(over.rep.current_lead_count - under.rep.current_lead_count) // 2
        )
        for over in overloaded
        for under in underloaded
    ]

    logger.info(f"Rebalancing suggested: {len(overloaded)} overloaded, {len(underloaded)} underloaded")
    return RebalancingPlan(
        True,
        f"{len(overloaded)} reps are overloaded, {len(underloaded)} are underloaded",
        suggestions
    )
