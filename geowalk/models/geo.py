"""
Geographic primitives for geowalk.

Coordinates are plain decimal degrees. Whether a coordinate is inside the
supported service area is decided by the validator against a Bounds box,
never by the Coordinate type itself.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class Coordinate(BaseModel):
    """A point in decimal degrees."""

    model_config = {"frozen": True}

    latitude: float = Field(allow_inf_nan=False, description="Degrees north")
    longitude: float = Field(allow_inf_nan=False, description="Degrees east")

    def __str__(self) -> str:
        return f"{self.latitude:.6f}, {self.longitude:.6f}"


class Bounds(BaseModel):
    """
    Rectangular lat/lng region.

    A coarse geofence: a point is inside iff south <= lat <= north and
    west <= lng <= east. Regions crossing the antimeridian are not supported.
    """

    model_config = {"frozen": True}

    north: float
    south: float
    east: float
    west: float

    @model_validator(mode="after")
    def _check_order(self) -> Bounds:
        if self.south > self.north:
            raise ValueError("south edge must not be above north edge")
        if self.west > self.east:
            raise ValueError("west edge must not be east of east edge")
        return self

    def contains(self, point: Coordinate) -> bool:
        """Check whether a point lies inside the box (edges inclusive)."""
        return (
            self.south <= point.latitude <= self.north
            and self.west <= point.longitude <= self.east
        )


# Operating region: Taiwan main island plus Kenting (21.95N) and Green Island.
TAIWAN_BOUNDS = Bounds(north=25.5, south=21.8, east=122.2, west=119.8)

# Where new actors appear when a store is configured to auto-create them.
TAIPEI_SPAWN_POINT = Coordinate(latitude=25.0330, longitude=121.5654)
