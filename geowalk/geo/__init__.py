"""
Geography layer for geowalk.

- geometry: distance and direction projection
- geocoding: place-name resolution providers
"""

from __future__ import annotations

from geowalk.geo.geocoding import (
    Geocoder,
    GeocodingError,
    GooglePlacesGeocoder,
    NominatimGeocoder,
    StaticGeocoder,
    create_geocoder,
)
from geowalk.geo.geometry import EARTH_RADIUS_METERS, haversine_distance, project

__all__ = [
    # Geometry
    "EARTH_RADIUS_METERS",
    "haversine_distance",
    "project",
    # Geocoding
    "Geocoder",
    "GeocodingError",
    "GooglePlacesGeocoder",
    "NominatimGeocoder",
    "StaticGeocoder",
    "create_geocoder",
]
