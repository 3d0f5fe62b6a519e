"""Lead auto-assignment.

Leads are assigned by a cascade of strategies, most specific first:

1. Custom rules (configured per organisation, lowest priority number first)
2. Territory (lead country against rep territories)
3. Industry
4. Company size
5. Skills (explicitly requested skills)
6. Round-robin (fallback)

The first strategy that finds an available representative wins. Every stage
that is reached appends a ``RuleEvaluation`` to the result so the caller can
show why a lead went where it did.

Industry and company size assignment need ``industrycode`` / ``revenue``,
which only exist on accounts. Leads don't carry them, so both stages are
recorded as not applicable until assignment runs on qualified leads.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import InvalidInputError
from ..core.models import SalesRepresentative
from .conditions import AssignmentCondition, evaluate_conditions, lead_field_value

logger = logging.getLogger(__name__)


class RuleType(Enum):
    """Assignment strategy types."""
    TERRITORY = "territory"
    INDUSTRY = "industry"
    COMPANY_SIZE = "company_size"
    SKILL = "skill"
    ROUND_ROBIN = "round_robin"


# Stage names as they appear in the evaluation trail
STAGE_CUSTOM_RULES = "Custom Rules"
STAGE_TERRITORY = "Territory"
STAGE_INDUSTRY = "Industry"
STAGE_COMPANY_SIZE = "Company Size"
STAGE_SKILLS = "Skills"
STAGE_ROUND_ROBIN = "Round-Robin (Fallback)"


@dataclass
class AssignmentRule:
    """Organisation-defined rule routing matching leads to one rep."""

    id: str
    name: str
    priority: int  # Lower = evaluated first
    type: RuleType
    assign_to: str  # Sales rep ID
    conditions: List[AssignmentCondition] = field(default_factory=list)
    is_active: bool = True

    def matches(self, lead: Any) -> bool:
        """Check if lead satisfies every condition of this rule."""
        return evaluate_conditions(lead, self.conditions)


@dataclass(frozen=True)
class RuleEvaluation:
    """One entry of the assignment audit trail."""

    rule_name: str
    matched: bool
    reason: str


@dataclass(frozen=True)
class AssignmentResult:
    """Outcome of an assignment attempt."""

    assigned_to: Optional[str]
    rule_applied: Optional[str]
    reason: str
    assigned_to_name: Optional[str] = None
    all_evaluations: Tuple[RuleEvaluation, ...] = ()

    @property
    def assigned(self) -> bool:
        return self.assigned_to is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assigned_to": self.assigned_to,
            "assigned_to_name": self.assigned_to_name,
            "rule_applied": self.rule_applied,
            "reason": self.reason,
            "all_evaluations": [
                {"rule_name": e.rule_name, "matched": e.matched, "reason": e.reason}
                for e in self.all_evaluations
            ],
        }


@dataclass(frozen=True)
class _StageMatch:
    rep: SalesRepresentative
    rule_applied: str
    reason: str


def _least_loaded(reps: Sequence[SalesRepresentative]) -> SalesRepresentative:
    """Rep with the fewest current leads; first one wins ties."""
    return min(reps, key=lambda r: r.current_lead_count)


def _assign_by_custom_rules(
    lead: Any,
    rules: Sequence[AssignmentRule],
    sales_reps: Sequence[SalesRepresentative]
) -> Optional[_StageMatch]:
    """First active rule (by priority) that matches and targets an available rep."""
    active_rules = sorted(
        (r for r in rules if r.is_active),
        key=lambda r: r.priority
    )
    reps_by_id = {}
    for rep in sales_reps:
        reps_by_id.setdefault(rep.id, rep)

    for rule in active_rules:
        if not rule.matches(lead):
            continue

        rep = reps_by_id.get(rule.assign_to)
        if rep and rep.is_available:
            return _StageMatch(
                rep=rep,
                rule_applied=f"custom-rule-{rule.id}",
                reason=f'Assigned to {rep.name} via custom rule: "{rule.name}"'
            )

        logger.debug(f"Rule {rule.id} matched but rep {rule.assign_to} is unavailable")

    return None


def _assign_by_territory(
    lead: Any,
    sales_reps: Sequence[SalesRepresentative]
) -> Optional[_StageMatch]:
    """Least-loaded available rep covering the lead's country."""
    country = lead_field_value(lead, "address1_country")
    if not country:
        return None

    matching = [
        rep for rep in sales_reps
        if rep.is_available and country in (rep.territories or [])
    ]
    if not matching:
        return None

    rep = _least_loaded(matching)
    return _StageMatch(
        rep=rep,
        rule_applied=RuleType.TERRITORY.value,
        reason=f"Assigned to {rep.name} based on territory: {country}"
    )


def _assign_by_skills(
    sales_reps: Sequence[SalesRepresentative],
    required_skills: Sequence[str]
) -> Optional[_StageMatch]:
    """Least-loaded available rep having at least one of the required skills."""
    wanted = [s.lower() for s in required_skills]

    def has_skill(rep: SalesRepresentative) -> bool:
        return any(
            skill in rep_skill.lower()
            for skill in wanted
            for rep_skill in rep.skills or []
        )

    matching = [rep for rep in sales_reps if rep.is_available and has_skill(rep)]
    if not matching:
        return None

    rep = _least_loaded(matching)
    return _StageMatch(
        rep=rep,
        rule_applied=RuleType.SKILL.value,
        reason=f"Assigned to {rep.name} based on required skills: {', '.join(required_skills)}"
    )


def _assign_round_robin(
    sales_reps: Sequence[SalesRepresentative],
    last_assigned_index: int
) -> Tuple[Optional[SalesRepresentative], str]:
    """Next available rep after ``last_assigned_index``, wrapping around once."""
    if not any(rep.is_available for rep in sales_reps):
        return None, "No available sales reps (all at capacity)"

    count = len(sales_reps)
    index = (last_assigned_index + 1) % count
    for _ in range(count):
        rep = sales_reps[index]
        if rep.is_available:
            return rep, f"Assigned via round-robin distribution to {rep.name}"
        index = (index + 1) % count

    return None, "Round-robin failed: no available reps"


def auto_assign_lead(
    lead: Any,
    sales_reps: Sequence[SalesRepresentative],
    custom_rules: Optional[Sequence[AssignmentRule]] = None,
    required_skills: Optional[Sequence[str]] = None,
    last_assigned_index: int = 0,
    preferred_strategy: Optional[str] = None
) -> AssignmentResult:
    """Pick a sales rep for a lead.

    ``lead`` may be a ``Lead`` or a mapping of lead fields; only the fields
    the reached stages need have to be present. ``last_assigned_index`` is
    the round-robin cursor the caller kept from its previous assignment.
    ``preferred_strategy`` is accepted for API compatibility and does not
    change the cascade order.

    Neither the lead nor the reps are modified; the caller owns updating
    ``current_lead_count`` after persisting the assignment.
    """
    if preferred_strategy is not None:
        valid = {t.value for t in RuleType}
        if preferred_strategy not in valid:
            raise InvalidInputError(
                f"Unknown assignment strategy: {preferred_strategy}",
                {"valid": sorted(valid)}
            )
        logger.debug(f"Preferred strategy '{preferred_strategy}' does not alter the cascade")

    evaluations: List[RuleEvaluation] = []

    def finish(match: _StageMatch) -> AssignmentResult:
        logger.info(f"Assigned lead to {match.rep.name} via {match.rule_applied}")
        return AssignmentResult(
            assigned_to=match.rep.id,
            assigned_to_name=match.rep.name,
            rule_applied=match.rule_applied,
            reason=match.reason,
            all_evaluations=tuple(evaluations)
        )

    # 1. Custom rules
    if custom_rules:
        match = _assign_by_custom_rules(lead, custom_rules, sales_reps)
        if match:
            evaluations.append(RuleEvaluation(STAGE_CUSTOM_RULES, True, match.reason))
            return finish(match)
        evaluations.append(RuleEvaluation(STAGE_CUSTOM_RULES, False, "No matching custom rules"))
    else:
        evaluations.append(RuleEvaluation(STAGE_CUSTOM_RULES, False, "No custom rules configured"))

    # 2. Territory
    match = _assign_by_territory(lead, sales_reps)
    if match:
        evaluations.append(RuleEvaluation(STAGE_TERRITORY, True, match.reason))
        return finish(match)
    evaluations.append(RuleEvaluation(
        STAGE_TERRITORY,
        False,
        "No reps available for this territory"
        if lead_field_value(lead, "address1_country")
        else "No country specified"
    ))

    # 3-4. Not applicable at lead stage
    evaluations.append(RuleEvaluation(
        STAGE_INDUSTRY, False, "Industry code not available on Lead entity"
    ))
    evaluations.append(RuleEvaluation(
        STAGE_COMPANY_SIZE, False, "Revenue not available on Lead entity"
    ))

    # 5. Skills
    if required_skills:
        match = _assign_by_skills(sales_reps, required_skills)
        if match:
            evaluations.append(RuleEvaluation(STAGE_SKILLS, True, match.reason))
            return finish(match)
        evaluations.append(RuleEvaluation(
            STAGE_SKILLS, False, "No reps available with required skills"
        ))
    else:
        evaluations.append(RuleEvaluation(STAGE_SKILLS, False, "No required skills specified"))

    # 6. Round-robin fallback
    rep, reason = _assign_round_robin(sales_reps, last_assigned_index)
    evaluations.append(RuleEvaluation(STAGE_ROUND_ROBIN, rep is not None, reason))
    if rep:
        return finish(_StageMatch(rep=rep, rule_applied="round-robin", reason=reason))

    logger.warning(f"Lead could not be assigned: {reason}")
    return AssignmentResult(
        assigned_to=None,
        rule_applied=None,
        reason=reason,
        all_evaluations=tuple(evaluations)
    )
