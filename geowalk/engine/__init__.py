"""
Movement engine for geowalk.

Contains the core pipeline logic:
- Extraction: free text to MovementCommand
- Validation: geofence, hop ceiling, confidence floor, ETA
- Rate limiting and daily AI quota
- Pipeline: orchestration, audit, narration
"""

from geowalk.engine.config import PipelineConfig
from geowalk.engine.errors import (
    CommandRejectedError,
    ExtractionError,
    MovementError,
    NotAMovementCommandError,
)
from geowalk.engine.extractor import (
    STRATEGIES,
    CommandExtractor,
    detect_speed,
    extract_coordinates,
    extract_direction_distance,
    extract_map_link,
    extract_named_location,
    extract_relative_movement,
    is_movement_command,
)
from geowalk.engine.pipeline import MovementPipeline
from geowalk.engine.rate_limit import MovementRateLimiter, RateLimitDecision
from geowalk.engine.usage import DailyUsageQuota, UsageDecision, format_usage_warning
from geowalk.engine.validator import CommandValidator

__all__ = [
    # Config
    "PipelineConfig",
    # Errors
    "CommandRejectedError",
    "ExtractionError",
    "MovementError",
    "NotAMovementCommandError",
    # Extraction
    "STRATEGIES",
    "CommandExtractor",
    "detect_speed",
    "extract_coordinates",
    "extract_direction_distance",
    "extract_map_link",
    "extract_named_location",
    "extract_relative_movement",
    "is_movement_command",
    # Validation
    "CommandValidator",
    # Limits
    "DailyUsageQuota",
    "MovementRateLimiter",
    "RateLimitDecision",
    "UsageDecision",
    "format_usage_warning",
    # Pipeline
    "MovementPipeline",
]
