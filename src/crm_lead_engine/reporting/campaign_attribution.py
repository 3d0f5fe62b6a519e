"""Campaign attribution for leads."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..core.exceptions import InvalidInputError
from ..core.models import Lead


class CampaignType(Enum):
    EMAIL = "email"
    SOCIAL = "social"
    PPC = "ppc"
    EVENT = "event"
    CONTENT = "content"
    OTHER = "other"


@dataclass(frozen=True)
class CampaignAttribution:
    """Which campaign, form and UTM parameters brought a lead in."""
    campaign_id: str
    campaign_name: str
    campaign_type: CampaignType
    first_touch_date: datetime
    last_touch_date: datetime
    touch_count: int = 1  # interactions before conversion
    form_id: Optional[str] = None
    form_name: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_content: Optional[str] = None
    landing_page_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "campaign_id": self.campaign_id,
            "campaign_name": self.campaign_name,
            "campaign_type": self.campaign_type.value,
            "first_touch_date": self.first_touch_date.isoformat(),
            "last_touch_date": self.last_touch_date.isoformat(),
            "touch_count": self.touch_count,
            "form_id": self.form_id,
            "form_name": self.form_name,
            "utm_source": self.utm_source,
            "utm_medium": self.utm_medium,
            "utm_campaign": self.utm_campaign,
            "utm_content": self.utm_content,
            "landing_page_url": self.landing_page_url,
        }


def attribute_campaign_to_lead(
    lead: Lead,
    campaign_data: Mapping[str, Any]
) -> CampaignAttribution:
    """Build an attribution record, defaulting whatever the campaign data lacks.

    Touch dates fall back to the lead's creation time, then to now.
    """
    fallback_date = lead.createdon or datetime.now()

    raw_type = campaign_data.get("campaign_type") or CampaignType.OTHER.value
    try:
        campaign_type = CampaignType(raw_type)
    except ValueError:
        raise InvalidInputError(
            f"Unknown campaign type: {raw_type}",
            {"valid": [t.value for t in CampaignType]}
        )

    return CampaignAttribution(
        campaign_id=campaign_data.get("campaign_id") or "unknown",
        campaign_name=campaign_data.get("campaign_name") or "Unknown Campaign",
        campaign_type=campaign_type,
        first_touch_date=campaign_data.get("first_touch_date") or fallback_date,
        last_touch_date=campaign_data.get("last_touch_date") or fallback_date,
        touch_count=campaign_data.get("touch_count") or 1,
        form_id=campaign_data.get("form_id"),
        form_name=campaign_data.get("form_name"),
        utm_source=campaign_data.get("utm_source"),
        utm_medium=campaign_data.get("utm_medium"),
        utm_campaign=campaign_data.get("utm_campaign"),
        utm_content=campaign_data.get("utm_content"),
        landing_page_url=campaign_data.get("landing_page_url"),
    )
