"""
Movement command models for geowalk.

Defines:
- MovementCommand: the transient, per-request structured command
- Extraction variants: what a single extraction strategy found in the text
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from geowalk.models.geo import Coordinate


class MovementKind(str, Enum):
    """How the destination of a command is determined."""

    ABSOLUTE_MOVE = "absolute_move"
    RELATIVE_MOVE = "relative_move"
    DIRECTION_MOVE = "direction_move"


class Direction(str, Enum):
    """Compass octants plus map-relative directions."""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    NORTHEAST = "northeast"
    NORTHWEST = "northwest"
    SOUTHEAST = "southeast"
    SOUTHWEST = "southwest"

    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"


class SpeedProfile(str, Enum):
    """Travel pace; maps to a fixed speed in meters per second."""

    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"


SPEED_METERS_PER_SECOND: dict[SpeedProfile, float] = {
    SpeedProfile.SLOW: 1.0,
    SpeedProfile.NORMAL: 2.5,
    SpeedProfile.FAST: 5.0,
}


class MovementCommand(BaseModel):
    """
    A parsed movement command.

    Created by the extractor, finalized by the validator, consumed once by
    the pipeline's execution step. Never persisted itself.
    """

    kind: MovementKind
    destination: Coordinate | None = Field(
        default=None, description="Target; required after validation"
    )
    direction: Direction | None = Field(
        default=None, description="Only for direction_move"
    )
    distance_meters: float = Field(default=0.0, ge=0.0, description="Only for direction_move")
    speed: SpeedProfile = SpeedProfile.NORMAL

    original_text: str = Field(description="The raw input, kept for audit")
    confidence: float = Field(ge=0.0, le=1.0, description="Set by the producing strategy")
    strategy: str = Field(default="", description="Name of the producing strategy")

    # Place-name resolution
    requires_external_resolution: bool = False
    place_name: str | None = None
    source_url: str | None = None

    # Filled in by the validator
    safety_checked: bool = False
    estimated_seconds: int = 0
    hop_distance_meters: float | None = None


# =============================================================================
# Extraction variants
# =============================================================================


class CoordinateMatch(BaseModel):
    """A literal coordinate found in the text."""

    tag: Literal["coordinate"] = "coordinate"
    coordinate: Coordinate
    confidence: float
    strategy: str
    source_url: str | None = None


class PlaceNameMatch(BaseModel):
    """A place name that must be resolved through the geocoder."""

    tag: Literal["place_name"] = "place_name"
    place_name: str
    confidence: float
    strategy: str
    source_url: str | None = None


class DirectionMatch(BaseModel):
    """A direction plus distance; destination depends on the current position."""

    tag: Literal["direction"] = "direction"
    direction: Direction
    distance_meters: float
    confidence: float
    strategy: str


Extraction = CoordinateMatch | PlaceNameMatch | DirectionMatch
