"""Data models for CRM entities used by assignment and analytics."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List


class LeadSourceCode(Enum):
    """Acquisition channel of a lead (CRM option set values)."""

    ADVERTISEMENT = 1
    EMPLOYEE_REFERRAL = 2
    EXTERNAL_REFERRAL = 3
    PARTNER = 4
    PUBLIC_RELATIONS = 5
    SEMINAR = 6
    TRADE_SHOW = 7
    WEB = 8
    WORD_OF_MOUTH = 9
    OTHER = 10

    @property
    def label(self) -> str:
        """Human readable source name."""
        return LEAD_SOURCE_LABELS[self]


LEAD_SOURCE_LABELS = {
    LeadSourceCode.ADVERTISEMENT: "Advertisement",
    LeadSourceCode.EMPLOYEE_REFERRAL: "Employee Referral",
    LeadSourceCode.EXTERNAL_REFERRAL: "External Referral",
    LeadSourceCode.PARTNER: "Partner",
    LeadSourceCode.PUBLIC_RELATIONS: "Public Relations",
    LeadSourceCode.SEMINAR: "Seminar",
    LeadSourceCode.TRADE_SHOW: "Trade Show",
    LeadSourceCode.WEB: "Web",
    LeadSourceCode.WORD_OF_MOUTH: "Word of Mouth",
    LeadSourceCode.OTHER: "Other",
}


class LeadQualityCode(Enum):
    """Lead temperature."""

    HOT = 1
    WARM = 2
    COLD = 3


class LeadStateCode(Enum):
    """Lifecycle state of a lead."""

    OPEN = 0
    QUALIFIED = 1
    DISQUALIFIED = 2


class OpportunityStateCode(Enum):
    """Lifecycle state of an opportunity."""

    OPEN = 0
    WON = 1
    LOST = 2


@dataclass
class Lead:
    """A prospective customer record as returned by the CRM backend.

    Attribute names follow the backend's field names so that custom
    assignment rules can reference them directly (e.g. ``address1_country``).
    """

    leadid: str
    statecode: LeadStateCode = LeadStateCode.OPEN
    leadsourcecode: Optional[LeadSourceCode] = None
    leadqualitycode: Optional[LeadQualityCode] = None

    # Contact info
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    companyname: Optional[str] = None
    jobtitle: Optional[str] = None
    emailaddress1: Optional[str] = None

    # Address
    address1_city: Optional[str] = None
    address1_stateorprovince: Optional[str] = None
    address1_country: Optional[str] = None

    estimatedvalue: Optional[float] = None
    originatingcampaignid: Optional[str] = None
    ownerid: Optional[str] = None

    # Timestamps
    createdon: Optional[datetime] = None
    modifiedon: Optional[datetime] = None

    @property
    def fullname(self) -> str:
        """Get best available name for display."""
        parts = [p for p in (self.firstname, self.lastname) if p]
        if parts:
            return " ".join(parts)
        return self.companyname or f"Lead {self.leadid}"


@dataclass
class Opportunity:
    """A sales opportunity, optionally created from a qualified lead."""

    opportunityid: str
    name: str = ""
    statecode: OpportunityStateCode = OpportunityStateCode.OPEN
    originatingleadid: Optional[str] = None
    estimatedvalue: float = 0
    actualvalue: Optional[float] = None
    createdon: Optional[datetime] = None
    actualclosedate: Optional[datetime] = None


@dataclass
class SalesRepresentative:
    """Sales user who can receive leads."""

    id: str
    name: str
    email: str = ""

    # Capacity
    is_active: bool = True
    current_lead_count: int = 0
    max_lead_capacity: int = 50

    # Matching attributes
    territories: List[str] = field(default_factory=list)  # country / region codes
    industries: List[str] = field(default_factory=list)
    min_company_revenue: Optional[float] = None
    max_company_revenue: Optional[float] = None
    skills: List[str] = field(default_factory=list)  # "enterprise", "smb", "technical"

    @property
    def is_available(self) -> bool:
        """Check if the rep can take another lead."""
        return self.is_active and self.current_lead_count < self.max_lead_capacity

    @property
    def remaining_capacity(self) -> int:
        return max(self.max_lead_capacity - self.current_lead_count, 0)


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Offset-aware timestamps become naive UTC; naive ones pass through."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
