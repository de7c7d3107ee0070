"""
Data models for geowalk.

- Coordinate / Bounds: geographic primitives
- MovementCommand and extraction variants: parsed commands
- AuditRecord: immutable record of each attempt
- MovementResult / ErrorCode: what the pipeline returns
"""

from geowalk.models.audit import AuditRecord, create_audit_record
from geowalk.models.command import (
    SPEED_METERS_PER_SECOND,
    CoordinateMatch,
    Direction,
    DirectionMatch,
    Extraction,
    MovementCommand,
    MovementKind,
    PlaceNameMatch,
    SpeedProfile,
)
from geowalk.models.errors import ErrorCode
from geowalk.models.geo import TAIPEI_SPAWN_POINT, TAIWAN_BOUNDS, Bounds, Coordinate
from geowalk.models.result import MovementResult

__all__ = [
    # Geo
    "Bounds",
    "Coordinate",
    "TAIPEI_SPAWN_POINT",
    "TAIWAN_BOUNDS",
    # Commands
    "CoordinateMatch",
    "Direction",
    "DirectionMatch",
    "Extraction",
    "MovementCommand",
    "MovementKind",
    "PlaceNameMatch",
    "SPEED_METERS_PER_SECOND",
    "SpeedProfile",
    # Audit
    "AuditRecord",
    "create_audit_record",
    # Results
    "ErrorCode",
    "MovementResult",
]
