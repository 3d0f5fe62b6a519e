"""Lead source reporting and attribution."""

from .lead_source_analytics import (
    calculate_lead_source_analytics,
    calculate_source_metrics,
    calculate_source_trends,
    generate_recommendations,
    compare_source_performance,
    DateRange,
    LeadSourceAnalytics,
    LeadSourceMetrics,
    TopPerformers,
)
from .campaign_attribution import attribute_campaign_to_lead, CampaignAttribution, CampaignType

__all__ = [
    'calculate_lead_source_analytics',
    'calculate_source_metrics',
    'calculate_source_trends',
    'generate_recommendations',
    'compare_source_performance',
    'DateRange',
    'LeadSourceAnalytics',
    'LeadSourceMetrics',
    'TopPerformers',
    'attribute_campaign_to_lead',
    'CampaignAttribution',
    'CampaignType',
]
