"""
Geocoding for geowalk.

Resolves a place name to coordinates. The pipeline only relies on the
Geocoder contract; providers are interchangeable:

- GooglePlacesGeocoder: Places text search (most accurate for Taiwan)
- NominatimGeocoder: OpenStreetMap, no key required
- StaticGeocoder: fixed dictionary for tests and offline play
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from geowalk.models.geo import TAIWAN_BOUNDS, Bounds, Coordinate

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """A place name could not be resolved."""


class Geocoder(Protocol):
    """Interface for place-name resolution."""

    async def resolve(self, name: str) -> Coordinate:
        """
        Resolve a place name.

        Raises:
            GeocodingError: If the place is unknown or the provider failed
        """
        ...


@dataclass
class GooglePlacesGeocoder:
    """
    Google Places text-search geocoder.

    Configuration via environment variables:
        GOOGLE_PLACES_API_KEY: API key (required)
    """

    api_key: str | None = None
    base_url: str = "https://maps.googleapis.com/maps/api/place"
    region: str = "tw"
    language: str = "zh-TW"
    query_suffix: str = " Taiwan"
    bounds: Bounds = TAIWAN_BOUNDS
    timeout: float = 10.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.api_key is None:
            self.api_key = os.getenv("GOOGLE_PLACES_API_KEY")

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    async def resolve(self, name: str) -> Coordinate:
        if not self.api_key:
            raise GeocodingError(
                "Google Places geocoder not configured. Set GOOGLE_PLACES_API_KEY."
            )

        params = {
            "query": name + self.query_suffix,
            "key": self.api_key,
            "region": self.region,
            "language": self.language,
        }
        payload = await _get_json(
            self.base_url,
            "/textsearch/json",
            params=params,
            timeout=self.timeout,
            transport=self.transport,
        )

        status = payload.get("status")
        if status != "OK":
            raise GeocodingError(f"Google Places returned status {status} for {name!r}")

        candidates = []
        for result in payload.get("results", []):
            location = result.get("geometry", {}).get("location", {})
            try:
                candidates.append(
                    Coordinate(latitude=location["lat"], longitude=location["lng"])
                )
            except (KeyError, TypeError, ValueError):
                continue

        if not candidates:
            raise GeocodingError(f"No results found for {name!r}")

        # Prefer a result inside the operating region; text search sometimes
        # ranks a same-named place abroad first.
        for candidate in candidates:
            if self.bounds.contains(candidate):
                return candidate
        return candidates[0]


@dataclass
class NominatimGeocoder:
    """
    OpenStreetMap Nominatim geocoder.

    Nominatim requires an identifying User-Agent. Configuration via
    environment variables:
        NOMINATIM_USER_AGENT: User-Agent header (optional)
    """

    base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "geowalk/0.1 (contact@example.com)"
    country_codes: str = "tw"
    country_hint: str = "Taiwan"
    bounds: Bounds = TAIWAN_BOUNDS
    timeout: float = 10.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if os.getenv("NOMINATIM_USER_AGENT"):
            self.user_agent = os.getenv("NOMINATIM_USER_AGENT", self.user_agent)

    async def resolve(self, name: str) -> Coordinate:
        query = name
        if self.country_hint.lower() not in name.lower() and "台灣" not in name:
            query = f"{name}, {self.country_hint}"

        params = {
            "q": query,
            "format": "json",
            "limit": "5",
            "countrycodes": self.country_codes,
            "addressdetails": "1",
        }
        results = await _get_json(
            self.base_url,
            "/search",
            params=params,
            timeout=self.timeout,
            transport=self.transport,
            headers={"User-Agent": self.user_agent},
        )

        if not results:
            raise GeocodingError(f"No results found for {name!r}")

        first = results[0]
        try:
            coordinate = Coordinate(latitude=float(first["lat"]), longitude=float(first["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(f"Malformed Nominatim result for {name!r}: {e}") from e

        if not self.bounds.contains(coordinate):
            raise GeocodingError(f"{name!r} resolved outside the supported region")
        return coordinate


@dataclass
class StaticGeocoder:
    """
    Dictionary-backed geocoder for tests and offline play.

    Lookups are case-insensitive and ignore surrounding whitespace.
    """

    places: dict[str, Coordinate] = field(default_factory=dict)
    call_count: int = 0

    def __post_init__(self) -> None:
        self.places = {self._key(k): v for k, v in self.places.items()}

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().lower()

    def add(self, name: str, coordinate: Coordinate) -> None:
        """Register a place."""
        self.places[self._key(name)] = coordinate

    async def resolve(self, name: str) -> Coordinate:
        self.call_count += 1
        coordinate = self.places.get(self._key(name))
        if coordinate is None:
            raise GeocodingError(f"Unknown place: {name!r}")
        return coordinate


async def _get_json(
    base_url: str,
    path: str,
    params: dict[str, str],
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """GET a JSON document, mapping every transport failure to GeocodingError."""
    try:
        async with httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers=headers,
        ) as client:
            response = await client.get(path, params=params)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as e:
        raise GeocodingError(f"Geocoding API returned status {e.response.status_code}") from e
    except httpx.HTTPError as e:
        logger.warning("Geocoding request to %s failed: %s", base_url, e)
        raise GeocodingError(f"Geocoding request failed: {e}") from e
    except ValueError as e:
        raise GeocodingError(f"Geocoding API returned invalid JSON: {e}") from e


# Small built-in table so offline play can reach the well-known landmarks.
OFFLINE_PLACES: dict[str, Coordinate] = {
    "台北": Coordinate(latitude=25.0330, longitude=121.5654),
    "taipei": Coordinate(latitude=25.0330, longitude=121.5654),
    "台北101": Coordinate(latitude=25.0339, longitude=121.5645),
    "taipei 101": Coordinate(latitude=25.0339, longitude=121.5645),
    "中正紀念堂": Coordinate(latitude=25.0346, longitude=121.5218),
    "西門町": Coordinate(latitude=25.0421, longitude=121.5081),
    "九份": Coordinate(latitude=25.1092, longitude=121.8452),
    "jiufen": Coordinate(latitude=25.1092, longitude=121.8452),
    "淡水": Coordinate(latitude=25.1677, longitude=121.4456),
    "tamsui": Coordinate(latitude=25.1677, longitude=121.4456),
    "台中": Coordinate(latitude=24.1477, longitude=120.6736),
    "taichung": Coordinate(latitude=24.1477, longitude=120.6736),
    "逢甲夜市": Coordinate(latitude=24.1745, longitude=120.6466),
    "日月潭": Coordinate(latitude=23.8572, longitude=120.9156),
    "sun moon lake": Coordinate(latitude=23.8572, longitude=120.9156),
    "嘉義": Coordinate(latitude=23.4801, longitude=120.4491),
    "chiayi": Coordinate(latitude=23.4801, longitude=120.4491),
    "阿里山": Coordinate(latitude=23.5105, longitude=120.8025),
    "alishan": Coordinate(latitude=23.5105, longitude=120.8025),
    "台南": Coordinate(latitude=22.9999, longitude=120.2270),
    "tainan": Coordinate(latitude=22.9999, longitude=120.2270),
    "高雄": Coordinate(latitude=22.6273, longitude=120.3014),
    "kaohsiung": Coordinate(latitude=22.6273, longitude=120.3014),
    "墾丁": Coordinate(latitude=21.9518, longitude=120.7976),
    "kenting": Coordinate(latitude=21.9518, longitude=120.7976),
    "花蓮": Coordinate(latitude=23.9872, longitude=121.6016),
    "hualien": Coordinate(latitude=23.9872, longitude=121.6016),
    "太魯閣": Coordinate(latitude=24.1587, longitude=121.6213),
    "taroko": Coordinate(latitude=24.1587, longitude=121.6213),
}


def create_geocoder(provider_type: str = "google", **kwargs) -> Geocoder:
    """
    Factory function to create a geocoder.

    Args:
        provider_type: "google", "nominatim" or "static"
        **kwargs: Provider-specific configuration

    Example:
        # Google Places, key from the environment
        geocoder = create_geocoder()

        # Offline play with the built-in landmark table
        geocoder = create_geocoder("static")
    """
    if provider_type == "google":
        return GooglePlacesGeocoder(**kwargs)
    if provider_type == "nominatim":
        return NominatimGeocoder(**kwargs)
    if provider_type == "static":
        kwargs.setdefault("places", dict(OFFLINE_PLACES))
        return StaticGeocoder(**kwargs)
    raise ValueError(f"Unknown geocoder type: {provider_type}")
