"""Pydantic models for JSON payloads fed to the engine.

Payloads come from the CRM backend (snake/lowercase field names for
entities) or from the web front end (camelCase for reps and rules); both
spellings are accepted for reps and rules.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.exceptions import InvalidInputError
from ..core.models import (
    Lead,
    Opportunity,
    SalesRepresentative,
    LeadSourceCode,
    LeadQualityCode,
    LeadStateCode,
    OpportunityStateCode,
    naive_utc,
)
from ..routing.conditions import AssignmentCondition
from ..routing.router import AssignmentRule, RuleType

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class LeadPayload(BaseModel):
    leadid: str
    statecode: LeadStateCode = LeadStateCode.OPEN
    leadsourcecode: Optional[LeadSourceCode] = None
    leadqualitycode: Optional[LeadQualityCode] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    companyname: Optional[str] = None
    jobtitle: Optional[str] = None
    emailaddress1: Optional[str] = None
    address1_city: Optional[str] = None
    address1_stateorprovince: Optional[str] = None
    address1_country: Optional[str] = None
    estimatedvalue: Optional[float] = None
    originatingcampaignid: Optional[str] = None
    ownerid: Optional[str] = None
    createdon: Optional[datetime] = None
    modifiedon: Optional[datetime] = None

    @field_validator("createdon", "modifiedon")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(value)

    def to_model(self) -> Lead:
        return Lead(**self.model_dump())


class OpportunityPayload(BaseModel):
    opportunityid: str
    name: str = ""
    statecode: OpportunityStateCode = OpportunityStateCode.OPEN
    originatingleadid: Optional[str] = None
    estimatedvalue: float = 0
    actualvalue: Optional[float] = None
    createdon: Optional[datetime] = None
    actualclosedate: Optional[datetime] = None

    @field_validator("createdon", "actualclosedate")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(value)

    def to_model(self) -> Opportunity:
        return Opportunity(**self.model_dump())


class SalesRepPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str = ""
    is_active: bool = Field(True, alias="isActive")
    current_lead_count: int = Field(0, ge=0, alias="currentLeadCount")
    max_lead_capacity: int = Field(50, gt=0, alias="maxLeadCapacity")
    territories: List[str] = Field(default_factory=list)
    industries: List[str] = Field(default_factory=list)
    min_company_revenue: Optional[float] = Field(None, alias="minCompanyRevenue")
    max_company_revenue: Optional[float] = Field(None, alias="maxCompanyRevenue")
    skills: List[str] = Field(default_factory=list)

    def to_model(self) -> SalesRepresentative:
        return SalesRepresentative(**self.model_dump())


class ConditionPayload(BaseModel):
    field: str
    operator: str
    value: Any = None

    def to_model(self) -> AssignmentCondition:
        return AssignmentCondition(field=self.field, operator=self.operator, value=self.value)


class AssignmentRulePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    priority: int
    type: RuleType
    assign_to: str = Field(..., alias="assignTo")
    is_active: bool = Field(True, alias="isActive")
    conditions: List[ConditionPayload] = Field(default_factory=list)

    def to_model(self) -> AssignmentRule:
        return AssignmentRule(
            id=self.id,
            name=self.name,
            priority=self.priority,
            type=self.type,
            assign_to=self.assign_to,
            conditions=[c.to_model() for c in self.conditions],
            is_active=self.is_active,
        )


class CampaignPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    campaign_id: Optional[str] = Field(None, alias="campaignId")
    campaign_name: Optional[str] = Field(None, alias="campaignName")
    campaign_type: Optional[str] = Field(None, alias="campaignType")
    form_id: Optional[str] = Field(None, alias="formId")
    form_name: Optional[str] = Field(None, alias="formName")
    utm_source: Optional[str] = Field(None, alias="utmSource")
    utm_medium: Optional[str] = Field(None, alias="utmMedium")
    utm_campaign: Optional[str] = Field(None, alias="utmCampaign")
    utm_content: Optional[str] = Field(None, alias="utmContent")
    landing_page_url: Optional[str] = Field(None, alias="landingPageUrl")
    first_touch_date: Optional[datetime] = Field(None, alias="firstTouchDate")
    last_touch_date: Optional[datetime] = Field(None, alias="lastTouchDate")
    touch_count: Optional[int] = Field(None, ge=1, alias="touchCount")

    @field_validator("first_touch_date", "last_touch_date")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(value)


def _parse_many(payload_cls: Type[PayloadT], data: Any, kind: str) -> List[PayloadT]:
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise InvalidInputError(f"Expected a list of {kind}")

    try:
        return [payload_cls.model_validate(item) for item in data]
    except ValidationError as e:
        raise InvalidInputError(
            f"Invalid {kind} payload: {e.error_count()} error(s)",
            {"errors": e.errors(include_url=False)}
        ) from e


def parse_leads(data: Any) -> List[Lead]:
    return [p.to_model() for p in _parse_many(LeadPayload, data, "leads")]


def parse_opportunities(data: Any) -> List[Opportunity]:
    return [p.to_model() for p in _parse_many(OpportunityPayload, data, "opportunities")]


def parse_sales_reps(data: Any) -> List[SalesRepresentative]:
    return [p.to_model() for p in _parse_many(SalesRepPayload, data, "sales reps")]


def parse_rules(data: Any) -> List[AssignmentRule]:
    return [p.to_model() for p in _parse_many(AssignmentRulePayload, data, "assignment rules")]


def parse_campaign(data: Any) -> Dict[str, Any]:
    """Validated campaign data as keyword mapping for attribution."""
    if not isinstance(data, dict):
        raise InvalidInputError("Expected a campaign object")
    return _parse_many(CampaignPayload, data, "campaign")[0].model_dump()


def parse_costs(data: Any) -> Dict[LeadSourceCode, float]:
    """Source costs keyed by option value ("8") or member name ("web")."""
    if not isinstance(data, dict):
        raise InvalidInputError("Expected an object mapping lead sources to costs")

    costs = {}
    for key, value in data.items():
        source = _source_from_key(key)
        try:
            costs[source] = float(value)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Cost for {key} is not a number", {"value": value})
    return costs


def _source_from_key(key: Union[str, int]) -> LeadSourceCode:
    text = str(key).strip()
    if text.isdigit():
        try:
            return LeadSourceCode(int(text))
        except ValueError:
            pass
    else:
        name = text.upper().replace(" ", "_").replace("-", "_")
        if name in LeadSourceCode.__members__:
            return LeadSourceCode[name]
    raise InvalidInputError(f"Unknown lead source: {key}")


def load_json_file(path: Union[str, Path]) -> Any:
    """Read a JSON payload file."""
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidInputError(f"Could not read {path}: {e}") from e
