"""Core entities, configuration and errors."""

from .models import (
    Lead,
    Opportunity,
    SalesRepresentative,
    LeadSourceCode,
    LeadQualityCode,
    LeadStateCode,
    OpportunityStateCode,
)
from .config import AssignmentConfig, AnalyticsConfig, EngineConfig, EngineConfigManager
from .exceptions import LeadEngineError, EmptyInputError, InvalidInputError

__all__ = [
    "Lead",
    "Opportunity",
    "SalesRepresentative",
    "LeadSourceCode",
    "LeadQualityCode",
    "LeadStateCode",
    "OpportunityStateCode",
    "AssignmentConfig",
    "AnalyticsConfig",
    "EngineConfig",
    "EngineConfigManager",
    "LeadEngineError",
    "EmptyInputError",
    "InvalidInputError",
]
