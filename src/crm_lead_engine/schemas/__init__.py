"""Validated input payloads."""

from .payloads import (
    parse_leads,
    parse_opportunities,
    parse_sales_reps,
    parse_rules,
    parse_campaign,
    parse_costs,
    load_json_file,
)

__all__ = [
    "parse_leads",
    "parse_opportunities",
    "parse_sales_reps",
    "parse_rules",
    "parse_campaign",
    "parse_costs",
    "load_json_file",
]
