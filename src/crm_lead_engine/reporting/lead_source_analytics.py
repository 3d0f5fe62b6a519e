"""Lead source analytics: volume, quality, conversion and ROI per channel."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.config import AnalyticsConfig
from ..core.exceptions import EmptyInputError, InvalidInputError
from ..core.models import (
    Lead,
    Opportunity,
    LeadSourceCode,
    LeadQualityCode,
    LeadStateCode,
    OpportunityStateCode,
    naive_utc,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateRange:
    """Inclusive reporting window, held as naive UTC."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", naive_utc(self.start))
        object.__setattr__(self, "end", naive_utc(self.end))
        if self.start > self.end:
            raise InvalidInputError(
                "Date range start must not be after its end",
                {"start": self.start.isoformat(), "end": self.end.isoformat()}
            )

    def contains(self, moment: datetime) -> bool:
        return self.start <= naive_utc(moment) <= self.end


@dataclass(frozen=True)
class QualityDistribution:
    """Percentage of a source's leads in each quality bucket."""
    hot: float = 0
    warm: float = 0
    cold: float = 0


@dataclass(frozen=True)
class LeadSourceMetrics:
    """Metrics for a lead source over one reporting window."""
    source: LeadSourceCode
    source_name: str

    # Volume
    total_leads: int = 0
    new_leads_this_month: int = 0
    new_leads_last_month: int = 0
    growth_rate: float = 0  # % month over month

    # Quality
    average_score: float = 0  # 0-100
    hot_leads_count: int = 0
    warm_leads_count: int = 0
    cold_leads_count: int = 0
    quality_distribution: QualityDistribution = field(default_factory=QualityDistribution)

    # Conversion
    qualified_count: int = 0
    qualified_rate: float = 0
    opportunities_created: int = 0
    opportunities_won: int = 0
    win_rate: float = 0
    total_revenue: float = 0

    # Velocity (days)
    avg_time_to_qualify: float = 0
    avg_time_to_close: float = 0

    # Cost, only when a cost was supplied for the source
    total_cost: Optional[float] = None
    cost_per_lead: Optional[float] = None
    cost_per_acquisition: Optional[float] = None
    roi: Optional[float] = None  # %

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "source_name": self.source_name,
            "total_leads": self.total_leads,
            "new_leads_this_month": self.new_leads_this_month,
            "new_leads_last_month": self.new_leads_last_month,
            "growth_rate": self.growth_rate,
            "average_score": self.average_score,
            "hot_leads_count": self.hot_leads_count,
            "warm_leads_count": self.warm_leads_count,
            "cold_leads_count": self.cold_leads_count,
            "quality_distribution": {
                "hot": self.quality_distribution.hot,
                "warm": self.quality_distribution.warm,
                "cold": self.quality_distribution.cold,
            },
            "qualified_count": self.qualified_count,
            "qualified_rate": self.qualified_rate,
            "opportunities_created": self.opportunities_created,
            "opportunities_won": self.opportunities_won,
            "win_rate": self.win_rate,
            "total_revenue": self.total_revenue,
            "avg_time_to_qualify": self.avg_time_to_qualify,
            "avg_time_to_close": self.avg_time_to_close,
            "total_cost": self.total_cost,
            "cost_per_lead": self.cost_per_lead,
            "cost_per_acquisition": self.cost_per_acquisition,
            "roi": self.roi,
        }


@dataclass(frozen=True)
class TopPerformers:
    by_volume: LeadSourceMetrics
    by_quality: LeadSourceMetrics
    by_conversion: LeadSourceMetrics
    by_roi: Optional[LeadSourceMetrics] = None


@dataclass(frozen=True)
class MonthlySourceData:
    month: str  # "2025-01"
    leads_count: int
    qualified_count: int
    revenue: float


@dataclass(frozen=True)
class SourceTrend:
    source: LeadSourceCode
    monthly_data: List[MonthlySourceData] = field(default_factory=list)


@dataclass(frozen=True)
class LeadSourceAnalytics:
    """Complete lead source report for a date range."""
    date_range: DateRange
    metrics: List[LeadSourceMetrics]
    top_performers: TopPerformers
    trends: List[SourceTrend]
    recommendations: List[str]

    def to_dict(self) -> Dict[str, Any]:
        top = self.top_performers
        return {
            "date_range": {
                "from": self.date_range.start.isoformat(),
                "to": self.date_range.end.isoformat(),
            },
            "metrics": [m.to_dict() for m in self.metrics],
            "top_performers": {
                "by_volume": top.by_volume.source_name,
                "by_quality": top.by_quality.source_name,
                "by_conversion": top.by_conversion.source_name,
                "by_roi": top.by_roi.source_name if top.by_roi else None,
            },
            "trends": [
                {
                    "source": t.source.value,
                    "monthly_data": [
                        {
                            "month": d.month,
                            "leads_count": d.leads_count,
                            "qualified_count": d.qualified_count,
                            "revenue": d.revenue,
                        }
                        for d in t.monthly_data
                    ],
                }
                for t in self.trends
            ],
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class SourcePerformanceChange:
    """Change of a source's metrics between two periods."""
    source: LeadSourceCode
    source_name: str
    volume_change: float  # %
    quality_change: float  # score points
    conversion_change: float  # qualified rate points
    revenue_change: float


def _month_start(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, 1)


def _next_month_start(moment: datetime) -> datetime:
    if moment.month == 12:
        return datetime(moment.year + 1, 1, 1)
    return datetime(moment.year, moment.month + 1, 1)


def _previous_month_start(moment: datetime) -> datetime:
    if moment.month == 1:
        return datetime(moment.year - 1, 12, 1)
    return datetime(moment.year, moment.month - 1, 1)


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0


def _won_revenue(opportunities: Sequence[Opportunity]) -> float:
    return sum(
        o.actualvalue or 0
        for o in opportunities
        if o.statecode == OpportunityStateCode.WON
    )


def calculate_source_metrics(
    source: LeadSourceCode,
    leads: Sequence[Lead],
    opportunities: Sequence[Opportunity],
    costs: Optional[Mapping[LeadSourceCode, float]] = None,
    config: Optional[AnalyticsConfig] = None,
    now: Optional[datetime] = None
) -> LeadSourceMetrics:
    """Compute metrics for one source from already date-filtered leads.

    Month-over-month growth compares the current calendar month with the
    previous one, measured from ``now`` (UTC wall clock by default) rather than
    from the report's date range.
    """
    config = config or AnalyticsConfig()
    now = naive_utc(now or datetime.now(timezone.utc))
    source_leads = [l for l in leads if l.leadsourcecode == source]
    created = [naive_utc(l.createdon) for l in source_leads if l.createdon]

    # Volume
    total_leads = len(source_leads)
    this_month = _month_start(now)
    last_month = _previous_month_start(now)

    new_this_month = len([c for c in created if c >= this_month])
    new_last_month = len([c for c in created if last_month <= c < this_month])
    growth_rate = (
        (new_this_month - new_last_month) / new_last_month * 100
        if new_last_month > 0 else 0
    )

    # Quality
    hot = len([l for l in source_leads if l.leadqualitycode == LeadQualityCode.HOT])
    warm = len([l for l in source_leads if l.leadqualitycode == LeadQualityCode.WARM])
    cold = len([l for l in source_leads if l.leadqualitycode == LeadQualityCode.COLD])

    weights = config.quality_weights
    average_score = (
        (hot * weights["hot"] + warm * weights["warm"] + cold * weights["cold"]) / total_leads
        if total_leads > 0 else 0
    )

    # Conversion
    qualified_count = len([
        l for l in source_leads if l.statecode == LeadStateCode.QUALIFIED
    ])

    lead_ids = {l.leadid for l in source_leads}
    source_opportunities = [
        o for o in opportunities
        if o.originatingleadid and o.originatingleadid in lead_ids
    ]
    opportunities_won = len([
        o for o in source_opportunities if o.statecode == OpportunityStateCode.WON
    ])
    total_revenue = _won_revenue(source_opportunities)

    # Cost
    total_cost = (costs or {}).get(source)
    cost_per_lead = total_cost / total_leads if total_cost and total_leads > 0 else None
    cost_per_acquisition = (
        total_cost / opportunities_won if total_cost and opportunities_won > 0 else None
    )
    roi = (
        (total_revenue - total_cost) / total_cost * 100
        if total_cost and total_cost > 0 else None
    )

    return LeadSourceMetrics(
        source=source,
        source_name=source.label,
        total_leads=total_leads,
        new_leads_this_month=new_this_month,
        new_leads_last_month=new_last_month,
        growth_rate=growth_rate,
        average_score=average_score,
        hot_leads_count=hot,
        warm_leads_count=warm,
        cold_leads_count=cold,
        quality_distribution=QualityDistribution(
            hot=_percent(hot, total_leads),
            warm=_percent(warm, total_leads),
            cold=_percent(cold, total_leads),
        ),
        qualified_count=qualified_count,
        qualified_rate=_percent(qualified_count, total_leads),
        opportunities_created=len(source_opportunities),
        opportunities_won=opportunities_won,
        win_rate=_percent(opportunities_won, len(source_opportunities)),
        total_revenue=total_revenue,
        avg_time_to_qualify=config.avg_time_to_qualify_days,
        avg_time_to_close=config.avg_time_to_close_days,
        total_cost=total_cost,
        cost_per_lead=cost_per_lead,
        cost_per_acquisition=cost_per_acquisition,
        roi=roi,
    )


def calculate_source_trends(
    source: LeadSourceCode,
    leads: Sequence[Lead],
    opportunities: Sequence[Opportunity],
    date_range: DateRange
) -> SourceTrend:
    """Monthly lead, qualification and won revenue series for one source."""
    source_leads = [l for l in leads if l.leadsourcecode == source and l.createdon]
    monthly = []

    month = _month_start(date_range.start)
    while month <= date_range.end:
        next_month = _next_month_start(month)
        month_leads = [
            l for l in source_leads if month <= naive_utc(l.createdon) < next_month
        ]
        lead_ids = {l.leadid for l in month_leads}

        monthly.append(MonthlySourceData(
            month=month.strftime("%Y-%m"),
            leads_count=len(month_leads),
            qualified_count=len([
                l for l in month_leads if l.statecode == LeadStateCode.QUALIFIED
            ]),
            revenue=_won_revenue([
                o for o in opportunities
                if o.originatingleadid and o.originatingleadid in lead_ids
            ]),
        ))
        month = next_month

    return SourceTrend(source=source, monthly_data=monthly)


def _source_names(metrics: Sequence[LeadSourceMetrics]) -> str:
    return ", ".join(m.source_name for m in metrics)


def generate_recommendations(
    metrics: Sequence[LeadSourceMetrics],
    config: Optional[AnalyticsConfig] = None
) -> List[str]:
    """Turn per-source metrics into actionable recommendations."""
    config = config or AnalyticsConfig()
    recommendations = []

    high_volume_low_quality = [
        m for m in metrics
        if m.total_leads > config.high_volume_leads and m.average_score < config.low_quality_score
    ]
    if high_volume_low_quality:
        recommendations.append(
            f"⚠️ High volume but low quality detected in: {_source_names(high_volume_low_quality)}. "
            f"Consider improving lead qualification criteria."
        )

    good_roi = [m for m in metrics if m.roi is not None and m.roi > config.excellent_roi]
    if good_roi:
        recommendations.append(
            f"✅ Excellent ROI (>{config.excellent_roi:g}%) from: {_source_names(good_roi)}. "
            f"Consider increasing investment in these channels."
        )

    poor_roi = [m for m in metrics if m.roi is not None and m.roi < config.negative_roi]
    if poor_roi:
        recommendations.append(
            f"❌ Negative ROI detected in: {_source_names(poor_roi)}. "
            f"Review campaign effectiveness or pause these channels."
        )

    high_conversion = [m for m in metrics if m.qualified_rate > config.high_qualified_rate]
    if high_conversion:
        recommendations.append(
            f"🎯 High conversion rate (>{config.high_qualified_rate:g}%) from: "
            f"{_source_names(high_conversion)}. These are your best performing sources."
        )

    fast_growth = [m for m in metrics if m.growth_rate > config.fast_growth_rate]
    if fast_growth:
        recommendations.append(
            f"📈 Fast growing sources (>{config.fast_growth_rate:g}% MoM): {_source_names(fast_growth)}. "
            f"Monitor closely and scale if quality remains high."
        )

    low_cpl = [
        m for m in metrics
        if m.cost_per_lead is not None and m.cost_per_lead < config.low_cost_per_lead
    ]
    if low_cpl:
        recommendations.append(
            f"💰 Low cost per lead (<${config.low_cost_per_lead:g}) from: {_source_names(low_cpl)}. "
            f"Cost-effective channels worth scaling."
        )

    if not recommendations:
        recommendations.append(
            "No specific recommendations at this time. Continue monitoring performance."
        )

    return recommendations


def calculate_lead_source_analytics(
    leads: Sequence[Lead],
    opportunities: Sequence[Opportunity],
    date_range: DateRange,
    costs: Optional[Mapping[LeadSourceCode, float]] = None,
    config: Optional[AnalyticsConfig] = None,
    now: Optional[datetime] = None
) -> LeadSourceAnalytics:
    """Build the full lead source report for leads created in ``date_range``.

    Raises ``EmptyInputError`` when no lead with a source falls inside the
    window, since there is nothing to rank.
    """
    config = config or AnalyticsConfig()

    filtered = [l for l in leads if l.createdon and date_range.contains(l.createdon)]

    sources: List[LeadSourceCode] = []
    for lead in filtered:
        if lead.leadsourcecode is not None and lead.leadsourcecode not in sources:
            sources.append(lead.leadsourcecode)

    if not sources:
        raise EmptyInputError(
            "No leads with a source in the selected date range",
            {"leads": len(leads), "in_range": len(filtered)}
        )

    metrics = [
        calculate_source_metrics(source, filtered, opportunities, costs, config, now)
        for source in sources
    ]
    logger.info(f"Calculated lead source metrics for {len(metrics)} sources")

    # max() keeps the first of equal values
    with_roi = [m for m in metrics if m.roi is not None]
    top_performers = TopPerformers(
        by_volume=max(metrics, key=lambda m: m.total_leads),
        by_quality=max(metrics, key=lambda m: m.average_score),
        by_conversion=max(metrics, key=lambda m: m.qualified_rate),
        by_roi=max(with_roi, key=lambda m: m.roi) if with_roi else None,
    )

    trends = [
        calculate_source_trends(source, filtered, opportunities, date_range)
        for source in sources
    ]

    return LeadSourceAnalytics(
        date_range=date_range,
        metrics=metrics,
        top_performers=top_performers,
        trends=trends,
        recommendations=generate_recommendations(metrics, config),
    )


def compare_source_performance(
    current_period: Sequence[LeadSourceMetrics],
    previous_period: Sequence[LeadSourceMetrics]
) -> List[SourcePerformanceChange]:
    """Compare current period metrics against a previous period."""
    previous_by_source = {}
    for metrics in previous_period:
        previous_by_source.setdefault(metrics.source, metrics)

    changes = []
    for current in current_period:
        previous = previous_by_source.get(current.source)

        if not previous:
            changes.append(SourcePerformanceChange(
                source=current.source,
                source_name=current.source_name,
                volume_change=0,
                quality_change=0,
                conversion_change=0,
                revenue_change=current.total_revenue,
            ))
            continue

        changes.append(SourcePerformanceChange(
            source=current.source,
            source_name=current.source_name,
            volume_change=(
                (current.total_leads - previous.total_leads) / previous.total_leads * 100
                if previous.total_leads > 0 else 0
            ),
            quality_change=current.average_score - previous.average_score,
            conversion_change=current.qualified_rate - previous.qualified_rate,
            revenue_change=current.total_revenue - previous.total_revenue,
        ))

    return changes
