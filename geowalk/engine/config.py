"""
Pipeline configuration for geowalk.

Defaults describe the Taiwan deployment. ``PipelineConfig.from_env`` reads
overrides from ``GEOWALK_*`` environment variables.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

from geowalk.models.geo import TAIWAN_BOUNDS, Bounds


class PipelineConfig(BaseModel):
    """Movement pipeline configuration."""

    # Geofence
    bounds: Bounds = TAIWAN_BOUNDS
    restricted_zones: list[Bounds] = Field(default_factory=list)

    # Safety limits; one hop may span the whole operating region
    max_hop_meters: float = Field(default=500_000.0, gt=0)
    min_confidence: float = Field(default=0.3, ge=0.0, le=1.0)

    # Movement frequency per actor
    rate_limit_max_requests: int = Field(default=10, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_retention_seconds: float = Field(default=600.0, gt=0)
    rate_limit_sweep_interval_seconds: float = Field(default=300.0, gt=0)

    # Daily AI usage per actor (narrative generation)
    ai_daily_limit: int = Field(default=15, ge=1)
    ai_warning_ratio: float = Field(default=0.8, gt=0.0, le=1.0)

    # Timeouts for external calls
    geocoder_timeout_seconds: float = Field(default=10.0, gt=0)
    store_timeout_seconds: float = Field(default=5.0, gt=0)
    narrative_timeout_seconds: float = Field(default=15.0, gt=0)

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """
        Build a config from the environment.

        Recognised variables:
            GEOWALK_MAX_HOP_METERS, GEOWALK_MIN_CONFIDENCE,
            GEOWALK_RATE_LIMIT_MAX, GEOWALK_RATE_LIMIT_WINDOW,
            GEOWALK_AI_DAILY_LIMIT, GEOWALK_GEOCODER_TIMEOUT,
            GEOWALK_STORE_TIMEOUT, GEOWALK_NARRATIVE_TIMEOUT
        """
        env_fields = {
            "GEOWALK_MAX_HOP_METERS": "max_hop_meters",
            "GEOWALK_MIN_CONFIDENCE": "min_confidence",
            "GEOWALK_RATE_LIMIT_MAX": "rate_limit_max_requests",
            "GEOWALK_RATE_LIMIT_WINDOW": "rate_limit_window_seconds",
            "GEOWALK_AI_DAILY_LIMIT": "ai_daily_limit",
            "GEOWALK_GEOCODER_TIMEOUT": "geocoder_timeout_seconds",
            "GEOWALK_STORE_TIMEOUT": "store_timeout_seconds",
            "GEOWALK_NARRATIVE_TIMEOUT": "narrative_timeout_seconds",
        }
        overrides = {
            field_name: os.environ[var]
            for var, field_name in env_fields.items()
            if os.getenv(var)
        }
        return cls(**overrides)
