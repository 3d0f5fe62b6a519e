"""Tests for lead distribution and rebalancing."""

import pytest

from crm_lead_engine.core.config import AssignmentConfig
from crm_lead_engine.core.models import SalesRepresentative
from crm_lead_engine.routing import get_lead_distribution, suggest_rebalancing


def rep(rep_id, count, capacity=50, active=True):
    return SalesRepresentative(
        id=rep_id,
        name=rep_id.title(),
        current_lead_count=count,
        max_lead_capacity=capacity,
        is_active=active,
    )


class TestLeadDistribution:
    """Tests for get_lead_distribution."""

    def test_percentages(self):
        loads = get_lead_distribution([rep("ana", 30), rep("ben", 10)])

        assert loads[0].percentage == pytest.approx(75)
        assert loads[1].percentage == pytest.approx(25)

    def test_no_leads(self):
        loads = get_lead_distribution([rep("ana", 0), rep("ben", 0)])
        assert all(l.percentage == 0 for l in loads)

    def test_overloaded_flag(self):
        loads = get_lead_distribution([rep("ana", 10, capacity=10), rep("ben", 9, capacity=10)])
        assert loads[0].is_overloaded
        assert not loads[1].is_overloaded


class TestRebalancing:
    """Tests for suggest_rebalancing."""

    def test_balanced(self):
        plan = suggest_rebalancing([rep("ana", 10), rep("ben", 12)])

        assert not plan.should_rebalance
        assert plan.reason == "Lead distribution is balanced"
        assert plan.suggestions == []

    def test_no_active_reps(self):
        plan = suggest_rebalancing([rep("ana", 10, active=False)])
        assert not plan.should_rebalance
        assert plan.reason == "No active sales reps"

    def test_suggests_moves(self):
        """One rep with 80% of three reps' leads gets a move to the idle one."""
        reps = [rep("ana", 40), rep("ben", 10), rep("cy", 0)]
        plan = suggest_rebalancing(reps)

        assert plan.should_rebalance
        assert plan.reason == "1 reps are overloaded, 1 are underloaded"
        assert len(plan.suggestions) == 1
        suggestion = plan.suggestions[0]
        assert suggestion.from_rep == "Ana"
        assert suggestion.to_rep == "Cy"
        assert suggestion.lead_count == 20

    def test_threshold_from_config(self):
        """A wider threshold tolerates the same skew."""
        reps = [rep("ana", 40), rep("ben", 10), rep("cy", 0)]
        plan = suggest_rebalancing(reps, AssignmentConfig(rebalance_threshold=50))
        assert not plan.should_rebalance

    def test_inactive_reps_ignored(self):
        """Inactive reps don't count towards the even share."""
        reps = [rep("ana", 30), rep("ben", 30), rep("gone", 0, active=False)]
        plan = suggest_rebalancing(reps)
        assert not plan.should_rebalance

    def test_to_dict(self):
        plan = suggest_rebalancing([rep("ana", 40), rep("ben", 10), rep("cy", 0)])
        data = plan.to_dict()
        assert data["should_rebalance"] is True
        assert data["suggestions"][0] == {"from": "Ana", "to": "Cy", "lead_count": 20}
