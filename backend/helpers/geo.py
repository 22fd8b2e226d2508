"""
Geographic helpers: coordinate validation, distances and service areas.
"""

import math
from dataclasses import dataclass

from loguru import logger

EARTH_RADIUS_METERS = 6_371_000


@dataclass(frozen=True)
class BoundingBox:
    """Latitude/longitude rectangle, inclusive on every edge."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return (
            self.min_lat <= lat <= self.max_lat
            and self.min_lng <= lng <= self.max_lng
        )


# Service areas, keyed by lower-cased city name
CITY_BOUNDARIES: dict[str, BoundingBox] = {
    "mumbai": BoundingBox(min_lat=18.9, max_lat=19.3, min_lng=72.7, max_lng=73.0),
    "delhi": BoundingBox(min_lat=28.4, max_lat=28.9, min_lng=76.8, max_lng=77.3),
    "bangalore": BoundingBox(
        min_lat=12.8, max_lat=13.2, min_lng=77.5, max_lng=77.7
    ),
}


def validate_coordinates(lat: float, lng: float) -> tuple[bool, str | None]:
    """
    Check that a point lies on the globe.

    Args:
        lat: Latitude in degrees
        lng: Longitude in degrees

    Returns:
        Tuple of (is_valid, error message or None)
    """
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False, "Coordinates must be numbers"
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False, "Coordinates must be numbers"
    if math.isnan(lat) or math.isnan(lng):
        return False, "Coordinates must be numbers"
    if lat < -90 or lat > 90:
        return False, "Latitude must be between -90 and 90"
    if lng < -180 or lng > 180:
        return False, "Longitude must be between -180 and 180"
    return True, None


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_within_radius(
    lat1: float, lng1: float, lat2: float, lng2: float, radius_meters: float
) -> bool:
    return haversine_distance(lat1, lng1, lat2, lng2) <= radius_meters


def calculate_bounding_box(lat: float, lng: float, radius_meters: float) -> BoundingBox:
    """
    Smallest lat/lng rectangle containing a circle around a point.

    Used as an index-friendly SQL prefilter before exact haversine checks.
    Near the poles the longitude span is widened to the full range.
    """
    lat_delta = math.degrees(radius_meters / EARTH_RADIUS_METERS)
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-9:
        lng_delta = 180.0
    else:
        lng_delta = min(lat_delta / cos_lat, 180.0)

    return BoundingBox(
        min_lat=max(lat - lat_delta, -90.0),
        max_lat=min(lat + lat_delta, 90.0),
        min_lng=lng - lng_delta,
        max_lng=lng + lng_delta,
    )


def get_city_boundaries(city: str) -> BoundingBox | None:
    """Look up a service area by city name, case-insensitively."""
    return CITY_BOUNDARIES.get(city.strip().lower())


def is_within_city(lat: float, lng: float, city: str) -> bool:
    """
    Check that a point falls inside a city's service area.

    Cities without a declared boundary are accepted.
    """
    boundaries = get_city_boundaries(city)
    if boundaries is None:
        logger.warning(f"No boundaries defined for city: {city}")
        return True
    return boundaries.contains(lat, lng)


def format_address(*parts: str | None) -> str:
    """Join the non-empty address parts with commas."""
    return ", ".join(p.strip() for p in parts if p and p.strip())
