"""
Geometry utilities for geowalk.

- haversine_distance: great-circle distance in meters
- project: destination from a direction and a distance

``project`` is a planar approximation (1 degree of latitude ~ 111 km,
longitude scaled by cos(latitude)). It is accurate to well under a percent
over tens of kilometers at Taiwan's latitudes and degrades with distance
and towards the poles. Do not use it for long hops.
"""

from __future__ import annotations

import math

from geowalk.models.command import Direction
from geowalk.models.geo import Coordinate

EARTH_RADIUS_METERS = 6_371_000.0
METERS_PER_DEGREE_LATITUDE = 111_000.0
DIAGONAL_FACTOR = 0.707  # cos(45 degrees)

# (latitude sign, longitude sign, scale) per direction.
# Relative directions use a north-up map: forward is north, left is west.
_DIRECTION_VECTORS: dict[Direction, tuple[int, int, float]] = {
    Direction.NORTH: (1, 0, 1.0),
    Direction.SOUTH: (-1, 0, 1.0),
    Direction.EAST: (0, 1, 1.0),
    Direction.WEST: (0, -1, 1.0),
    Direction.NORTHEAST: (1, 1, DIAGONAL_FACTOR),
    Direction.NORTHWEST: (1, -1, DIAGONAL_FACTOR),
    Direction.SOUTHEAST: (-1, 1, DIAGONAL_FACTOR),
    Direction.SOUTHWEST: (-1, -1, DIAGONAL_FACTOR),
    Direction.FORWARD: (1, 0, 1.0),
    Direction.BACKWARD: (-1, 0, 1.0),
    Direction.LEFT: (0, -1, 1.0),
    Direction.RIGHT: (0, 1, 1.0),
}


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two points.

    Args:
        a: First point in decimal degrees
        b: Second point in decimal degrees

    Returns:
        Distance in meters (symmetric, zero for identical points)
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lng = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lng / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def project(origin: Coordinate, direction: Direction, distance_meters: float) -> Coordinate:
    """
    Project a destination from an origin, a direction and a distance.

    Args:
        origin: Starting point
        direction: Compass octant or map-relative direction
        distance_meters: How far to go (non-negative)

    Returns:
        The approximate destination

    Raises:
        ValueError: If the distance is negative
    """
    if distance_meters < 0:
        raise ValueError(f"distance must be non-negative, got {distance_meters}")

    lat_sign, lng_sign, scale = _DIRECTION_VECTORS[direction]
    lat_delta = distance_meters / METERS_PER_DEGREE_LATITUDE
    lng_delta = distance_meters / (
        METERS_PER_DEGREE_LATITUDE * math.cos(math.radians(origin.latitude))
    )

    return Coordinate(
        latitude=origin.latitude + lat_sign * lat_delta * scale,
        longitude=origin.longitude + lng_sign * lng_delta * scale,
    )
