"""Configurable thresholds for lead assignment and source analytics."""

import json
import logging
import os
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Any

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "CRM_LEAD_ENGINE_CONFIG"


@dataclass
class AssignmentConfig:
    """Settings for lead assignment and load balancing."""

    # Percentage points a rep's share may deviate from an even split
    rebalance_threshold: float = 20.0


@dataclass
class AnalyticsConfig:
    """Weights and thresholds used by lead source analytics."""

    # Synthetic 0-100 score per quality bucket
    quality_weights: Dict[str, float] = field(default_factory=lambda: {
        "hot": 85,
        "warm": 60,
        "cold": 30,
    })

    # Velocity placeholders (days) until qualify/close dates are tracked
    avg_time_to_qualify_days: float = 14
    avg_time_to_close_days: float = 45

    # Recommendation thresholds
    high_volume_leads: int = 50
    low_quality_score: float = 40
    excellent_roi: float = 200
    negative_roi: float = 0
    high_qualified_rate: float = 50
    fast_growth_rate: float = 50
    low_cost_per_lead: float = 50


@dataclass
class EngineConfig:
    """Top-level engine configuration."""

    assignment: AssignmentConfig = field(default_factory=AssignmentConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    updated_at: datetime = field(default_factory=datetime.now)


class EngineConfigManager:
    """Manage and persist engine configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager."""
        env_path = os.getenv(CONFIG_PATH_ENV)
        if config_path is None and env_path:
            config_path = Path(env_path)
        self.config_path = config_path or Path.home() / ".crm-lead-engine" / "config.json"
        self.config = self._load_config()

    def _load_config(self) -> EngineConfig:
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("config root must be a JSON object")
                return EngineConfig(
                    assignment=AssignmentConfig(**data.get("assignment", {})),
                    analytics=_analytics_from_dict(data.get("analytics", {})),
                    updated_at=datetime.fromisoformat(data["updated_at"])
                    if data.get("updated_at") else datetime.now(),
                )
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.error(f"Error loading engine config: {e}")

        return EngineConfig()

    def save_config(self):
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "assignment": asdict(self.config.assignment),
            "analytics": asdict(self.config.analytics),
            "updated_at": self.config.updated_at.isoformat(),
        }
        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

    def set_threshold(self, key: str, value: float):
        """Update a numeric assignment or analytics setting by name.

        Raises ``KeyError`` for unknown settings and ``ValueError`` when a
        whole-number setting gets a fractional value.
        """
        for section in (self.config.assignment, self.config.analytics):
            field_type = {f.name: f.type for f in fields(section)}.get(key)
            if field_type in (int, float):
                if field_type is int and not float(value).is_integer():
                    raise ValueError(f"{key} must be a whole number, got {value:g}")
                setattr(section, key, field_type(value))
                break
        else:
            raise KeyError(key)

        self.config.updated_at = datetime.now()
        self.save_config()

    def set_quality_weight(self, bucket: str, weight: float):
        """Set the synthetic score for a quality bucket (hot, warm, cold)."""
        if bucket not in self.config.analytics.quality_weights:
            raise KeyError(bucket)
        self.config.analytics.quality_weights[bucket] = weight
        self.config.updated_at = datetime.now()
        self.save_config()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.config_path),
            "assignment": asdict(self.config.assignment),
            "analytics": asdict(self.config.analytics),
            "updated_at": self.config.updated_at.isoformat(),
        }


def _analytics_from_dict(data: Dict[str, Any]) -> AnalyticsConfig:
    weights = AnalyticsConfig().quality_weights
    weights.update(data.get("quality_weights", {}))
    values = {k: v for k, v in data.items() if k != "quality_weights"}
    return AnalyticsConfig(quality_weights=weights, **values)
