"""Tests for lead auto-assignment."""

import pytest

from crm_lead_engine.core.exceptions import InvalidInputError
from crm_lead_engine.core.models import Lead, LeadSourceCode, SalesRepresentative
from crm_lead_engine.routing import (
    auto_assign_lead,
    AssignmentCondition,
    AssignmentRule,
    RuleType,
)
from crm_lead_engine.routing.router import (
    STAGE_COMPANY_SIZE,
    STAGE_CUSTOM_RULES,
    STAGE_INDUSTRY,
    STAGE_ROUND_ROBIN,
    STAGE_SKILLS,
    STAGE_TERRITORY,
)


def make_rep(rep_id, **kwargs):
    """Build an available rep with sensible defaults."""
    defaults = {
        "name": f"Rep {rep_id}",
        "email": f"{rep_id}@example.com",
        "current_lead_count": 0,
        "max_lead_capacity": 10,
        "is_active": True,
    }
    defaults.update(kwargs)
    return SalesRepresentative(id=rep_id, **defaults)


@pytest.fixture
def territory_reps():
    return [
        make_rep("r1", territories=["ES"], current_lead_count=2),
        make_rep("r2", territories=["FR"], current_lead_count=0),
    ]


class TestTerritoryAssignment:
    """Tests for the territory stage."""

    def test_matches_country(self, territory_reps):
        """Lead from ES goes to the rep covering ES."""
        lead = Lead(leadid="L1", address1_country="ES")
        result = auto_assign_lead(lead, territory_reps)

        assert result.assigned_to == "r1"
        assert result.assigned_to_name == "Rep r1"
        assert result.rule_applied == "territory"
        assert "ES" in result.reason

    def test_least_loaded_rep_wins(self):
        """Among territory matches the rep with fewest leads is chosen."""
        reps = [
            make_rep("busy", territories=["ES"], current_lead_count=7),
            make_rep("idle", territories=["ES", "PT"], current_lead_count=1),
        ]
        result = auto_assign_lead(Lead(leadid="L1", address1_country="ES"), reps)
        assert result.assigned_to == "idle"

    def test_tie_keeps_first_rep(self):
        """Equal load keeps input order."""
        reps = [
            make_rep("a", territories=["ES"], current_lead_count=3),
            make_rep("b", territories=["ES"], current_lead_count=3),
        ]
        result = auto_assign_lead(Lead(leadid="L1", address1_country="ES"), reps)
        assert result.assigned_to == "a"

    def test_unavailable_territory_rep_skipped(self):
        """A full territory rep falls through to round-robin."""
        reps = [
            make_rep("full", territories=["ES"], current_lead_count=10),
            make_rep("other", territories=["FR"]),
        ]
        result = auto_assign_lead(Lead(leadid="L1", address1_country="ES"), reps)

        assert result.assigned_to == "other"
        assert result.rule_applied == "round-robin"
        territory = [e for e in result.all_evaluations if e.rule_name == STAGE_TERRITORY][0]
        assert not territory.matched
        assert territory.reason == "No reps available for this territory"

    def test_no_country(self, territory_reps):
        """Missing country is recorded in the trail."""
        result = auto_assign_lead(Lead(leadid="L1"), territory_reps)
        territory = [e for e in result.all_evaluations if e.rule_name == STAGE_TERRITORY][0]
        assert territory.reason == "No country specified"

    def test_accepts_lead_mapping(self, territory_reps):
        """Leads can be passed as plain dicts of fields."""
        result = auto_assign_lead({"address1_country": "FR"}, territory_reps)
        assert result.assigned_to == "r2"


class TestCustomRules:
    """Tests for the custom rules stage."""

    def test_rule_wins_over_territory(self, territory_reps):
        """A matching rule short-circuits every later stage."""
        rule = AssignmentRule(
            id="web-fr",
            name="Web leads to r2",
            priority=1,
            type=RuleType.TERRITORY,
            assign_to="r2",
            conditions=[AssignmentCondition("leadsourcecode", "equals", LeadSourceCode.WEB.value)],
        )
        lead = Lead(leadid="L1", address1_country="ES", leadsourcecode=LeadSourceCode.WEB)
        result = auto_assign_lead(lead, territory_reps, custom_rules=[rule])

        assert result.assigned_to == "r2"
        assert result.rule_applied == "custom-rule-web-fr"
        assert [e.rule_name for e in result.all_evaluations] == [STAGE_CUSTOM_RULES]
        assert result.all_evaluations[0].matched

    def test_lowest_priority_number_first(self, territory_reps):
        """Rules are evaluated by ascending priority regardless of input order."""
        rules = [
            AssignmentRule(id="late", name="Late", priority=10, type=RuleType.TERRITORY, assign_to="r1"),
            AssignmentRule(id="early", name="Early", priority=1, type=RuleType.TERRITORY, assign_to="r2"),
        ]
        result = auto_assign_lead(Lead(leadid="L1"), territory_reps, custom_rules=rules)
        assert result.rule_applied == "custom-rule-early"

    def test_inactive_rule_ignored(self, territory_reps):
        """Inactive rules never match."""
        rule = AssignmentRule(
            id="off", name="Off", priority=1, type=RuleType.TERRITORY,
            assign_to="r2", is_active=False
        )
        lead = Lead(leadid="L1", address1_country="ES")
        result = auto_assign_lead(lead, territory_reps, custom_rules=[rule])

        assert result.rule_applied == "territory"
        assert result.all_evaluations[0].reason == "No matching custom rules"

    def test_rule_to_unavailable_rep_falls_through(self):
        """A matching rule targeting a full rep lets the next rule try."""
        reps = [make_rep("full", current_lead_count=10), make_rep("free")]
        rules = [
            AssignmentRule(id="1", name="To full", priority=1, type=RuleType.SKILL, assign_to="full"),
            AssignmentRule(id="2", name="To free", priority=2, type=RuleType.SKILL, assign_to="free"),
        ]
        result = auto_assign_lead(Lead(leadid="L1"), reps, custom_rules=rules)
        assert result.assigned_to == "free"
        assert result.rule_applied == "custom-rule-2"

    def test_rule_to_unknown_rep(self, territory_reps):
        """Rules pointing at reps not in the roster do not match."""
        rule = AssignmentRule(id="x", name="Ghost", priority=1, type=RuleType.TERRITORY, assign_to="ghost")
        result = auto_assign_lead(Lead(leadid="L1", address1_country="FR"), territory_reps, custom_rules=[rule])
        assert result.assigned_to == "r2"
        assert result.rule_applied == "territory"

    def test_no_rules_recorded_as_skipped(self, territory_reps):
        result = auto_assign_lead(Lead(leadid="L1", address1_country="ES"), territory_reps)
        assert result.all_evaluations[0].rule_name == STAGE_CUSTOM_RULES
        assert result.all_evaluations[0].reason == "No custom rules configured"


class TestSkillAssignment:
    """Tests for the skills stage."""

    def test_skill_substring_case_insensitive(self):
        """'Enterprise Sales' satisfies the required skill 'enterprise'."""
        reps = [
            make_rep("smb", skills=["SMB"]),
            make_rep("ent", skills=["Enterprise Sales"], current_lead_count=4),
        ]
        result = auto_assign_lead(Lead(leadid="L1"), reps, required_skills=["enterprise"])

        assert result.assigned_to == "ent"
        assert result.rule_applied == "skill"
        assert "enterprise" in result.reason

    def test_skill_least_loaded(self):
        reps = [
            make_rep("a", skills=["technical"], current_lead_count=5),
            make_rep("b", skills=["technical", "smb"], current_lead_count=2),
        ]
        result = auto_assign_lead(Lead(leadid="L1"), reps, required_skills=["technical"])
        assert result.assigned_to == "b"

    def test_no_skill_match_falls_back(self):
        reps = [make_rep("a", skills=["smb"]), make_rep("b")]
        result = auto_assign_lead(Lead(leadid="L1"), reps, required_skills=["enterprise"])

        assert result.rule_applied == "round-robin"
        skills = [e for e in result.all_evaluations if e.rule_name == STAGE_SKILLS][0]
        assert skills.reason == "No reps available with required skills"


class TestRoundRobin:
    """Tests for the round-robin fallback."""

    def test_wraps_around(self):
        """Cursor at the last rep wraps to the first."""
        reps = [make_rep("r0"), make_rep("r1"), make_rep("r2")]
        result = auto_assign_lead(Lead(leadid="L1"), reps, last_assigned_index=2)

        assert result.assigned_to == "r0"
        assert result.rule_applied == "round-robin"

    def test_next_after_cursor(self):
        reps = [make_rep("r0"), make_rep("r1"), make_rep("r2")]
        result = auto_assign_lead(Lead(leadid="L1"), reps, last_assigned_index=0)
        assert result.assigned_to == "r1"

    def test_skips_unavailable(self):
        """Inactive and full reps are passed over."""
        reps = [
            make_rep("r0"),
            make_rep("r1", is_active=False),
            make_rep("r2", current_lead_count=10),
            make_rep("r3"),
        ]
        result = auto_assign_lead(Lead(leadid="L1"), reps, last_assigned_index=0)
        assert result.assigned_to == "r3"

    def test_all_unavailable(self):
        """No available reps leaves the lead unassigned."""
        reps = [make_rep("r0", is_active=False), make_rep("r1", current_lead_count=10)]
        result = auto_assign_lead(Lead(leadid="L1", address1_country="ES"), reps)

        assert result.assigned_to is None
        assert result.rule_applied is None
        assert not result.assigned
        assert result.reason == "No available sales reps (all at capacity)"
        assert not result.all_evaluations[-1].matched

    def test_empty_roster(self):
        result = auto_assign_lead(Lead(leadid="L1"), [])
        assert result.assigned_to is None
        assert len(result.all_evaluations) == 6


class TestCascade:
    """Tests for the cascade as a whole."""

    def test_full_trail_order(self):
        """Every stage appears once, in cascade order."""
        reps = [make_rep("r0"), make_rep("r1")]
        result = auto_assign_lead(Lead(leadid="L1"), reps)

        assert [e.rule_name for e in result.all_evaluations] == [
            STAGE_CUSTOM_RULES,
            STAGE_TERRITORY,
            STAGE_INDUSTRY,
            STAGE_COMPANY_SIZE,
            STAGE_SKILLS,
            STAGE_ROUND_ROBIN,
        ]
        assert result.all_evaluations[-1].matched

    def test_industry_and_company_size_not_applicable(self):
        """Account-only stages are always recorded as not applicable."""
        reps = [make_rep("r0", industries=["software"], min_company_revenue=1000)]
        result = auto_assign_lead(Lead(leadid="L1"), reps)
        by_name = {e.rule_name: e for e in result.all_evaluations}

        assert not by_name[STAGE_INDUSTRY].matched
        assert by_name[STAGE_INDUSTRY].reason == "Industry code not available on Lead entity"
        assert not by_name[STAGE_COMPANY_SIZE].matched
        assert by_name[STAGE_COMPANY_SIZE].reason == "Revenue not available on Lead entity"

    def test_deterministic(self, territory_reps):
        """Same inputs give the same result and trail."""
        lead = Lead(leadid="L1", address1_country="DE")
        first = auto_assign_lead(lead, territory_reps, last_assigned_index=1)
        second = auto_assign_lead(lead, territory_reps, last_assigned_index=1)
        assert first == second

    def test_inputs_not_mutated(self, territory_reps):
        """Lead counts are left for the caller to update."""
        auto_assign_lead(Lead(leadid="L1", address1_country="ES"), territory_reps)
        assert territory_reps[0].current_lead_count == 2
        assert territory_reps[1].current_lead_count == 0

    def test_never_assigns_unavailable_rep(self):
        """Rules cannot push a lead to an inactive rep."""
        reps = [make_rep("off", is_active=False, territories=["ES"], skills=["smb"]), make_rep("on")]
        rule = AssignmentRule(id="1", name="To off", priority=1, type=RuleType.TERRITORY, assign_to="off")
        result = auto_assign_lead(
            Lead(leadid="L1", address1_country="ES"),
            reps,
            custom_rules=[rule],
            required_skills=["smb"],
        )
        assert result.assigned_to == "on"

    def test_preferred_strategy_does_not_reorder(self, territory_reps):
        lead = Lead(leadid="L1", address1_country="ES")
        result = auto_assign_lead(lead, territory_reps, preferred_strategy="round_robin")
        assert result.rule_applied == "territory"

    def test_unknown_preferred_strategy(self, territory_reps):
        with pytest.raises(InvalidInputError):
            auto_assign_lead(Lead(leadid="L1"), territory_reps, preferred_strategy="random")

    def test_to_dict(self, territory_reps):
        data = auto_assign_lead(Lead(leadid="L1", address1_country="ES"), territory_reps).to_dict()
        assert data["assigned_to"] == "r1"
        assert data["all_evaluations"][-1] == {
            "rule_name": STAGE_TERRITORY,
            "matched": True,
            "reason": "Assigned to Rep r1 based on territory: ES",
        }
