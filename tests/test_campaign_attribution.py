"""Tests for campaign attribution."""

from datetime import datetime

import pytest

from crm_lead_engine.core.exceptions import InvalidInputError
from crm_lead_engine.core.models import Lead
from crm_lead_engine.reporting import CampaignType, attribute_campaign_to_lead


class TestCampaignAttribution:
    """Tests for attribute_campaign_to_lead."""

    def test_defaults(self):
        """Missing campaign data falls back to unknown / lead creation time."""
        created = datetime(2025, 2, 3, 9, 30)
        attribution = attribute_campaign_to_lead(Lead(leadid="L1", createdon=created), {})

        assert attribution.campaign_id == "unknown"
        assert attribution.campaign_name == "Unknown Campaign"
        assert attribution.campaign_type == CampaignType.OTHER
        assert attribution.first_touch_date == created
        assert attribution.last_touch_date == created
        assert attribution.touch_count == 1
        assert attribution.utm_source is None

    def test_lead_without_created_date(self):
        before = datetime.now()
        attribution = attribute_campaign_to_lead(Lead(leadid="L1"), {})
        assert attribution.first_touch_date >= before

    def test_campaign_data_used(self):
        first = datetime(2025, 1, 5)
        last = datetime(2025, 1, 20)
        attribution = attribute_campaign_to_lead(Lead(leadid="L1"), {
            "campaign_id": "cmp-7",
            "campaign_name": "Spring Webinar",
            "campaign_type": "event",
            "utm_source": "linkedin",
            "utm_medium": "paid",
            "first_touch_date": first,
            "last_touch_date": last,
            "touch_count": 4,
        })

        assert attribution.campaign_type == CampaignType.EVENT
        assert attribution.first_touch_date == first
        assert attribution.last_touch_date == last
        assert attribution.touch_count == 4
        assert attribution.to_dict()["utm_source"] == "linkedin"

    def test_unknown_campaign_type(self):
        with pytest.raises(InvalidInputError):
            attribute_campaign_to_lead(Lead(leadid="L1"), {"campaign_type": "billboard"})
