"""
Reverse geocoding for report locations.

Providers:
- nominatim: OpenStreetMap Nominatim over httpx (default)
- null: Always returns None (tests, offline development)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from loguru import logger

from helpers.geo import format_address
from models.config import settings
from models.exceptions import UpstreamServiceException


@dataclass
class GeocodeResult:
    formatted_address: str
    city: Optional[str] = None
    pincode: Optional[str] = None


class ReverseGeocoder(ABC):
    """Abstract base class for reverse geocoders."""

    @abstractmethod
    def lookup(self, lat: float, lng: float) -> Optional[GeocodeResult]:
        """Resolve a point to an address, or None if nothing is known there."""
        pass


class NominatimGeocoder(ReverseGeocoder):
    """Nominatim reverse geocoder."""

    def __init__(
        self,
        url: str,
        timeout: float,
        user_agent: str,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.user_agent = user_agent
        self.client = client

    def lookup(self, lat: float, lng: float) -> Optional[GeocodeResult]:
        """
        Query Nominatim for the address at a point.

        Raises:
            UpstreamServiceException: On timeout, HTTP error or malformed reply
        """
        params = {
            "format": "json",
            "lat": lat,
            "lon": lng,
            "zoom": 18,
            "addressdetails": 1,
        }
        headers = {"User-Agent": self.user_agent}
        try:
            if self.client is not None:
                response = self.client.get(
                    self.url, params=params, headers=headers, timeout=self.timeout
                )
            else:
                response = httpx.get(
                    self.url, params=params, headers=headers, timeout=self.timeout
                )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            raise UpstreamServiceException("Geocoder", "timed out")
        except httpx.HTTPStatusError as e:
            raise UpstreamServiceException(
                "Geocoder", f"HTTP {e.response.status_code}"
            )
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamServiceException("Geocoder", str(e))

        if not isinstance(data, dict) or "error" in data:
            logger.debug(f"Geocoder found nothing at ({lat}, {lng})")
            return None

        return self._parse(data)

    @staticmethod
    def _parse(data: dict) -> Optional[GeocodeResult]:
        address = data.get("address")
        if not isinstance(address, dict):
            address = {}
        city = address.get("city") or address.get("town") or address.get("village")
        pincode = address.get("postcode")

        display_name = data.get("display_name")
        if not isinstance(display_name, str):
            display_name = None
        formatted = display_name or format_address(
            address.get("road") or address.get("pedestrian"),
            address.get("suburb") or address.get("neighbourhood"),
            city,
            address.get("state"),
            pincode,
            address.get("country"),
        )
        if not formatted:
            return None

        return GeocodeResult(
            formatted_address=formatted,
            city=city or None,
            pincode=pincode or None,
        )


class NullGeocoder(ReverseGeocoder):
    """Geocoder that never resolves anything."""

    def lookup(self, lat: float, lng: float) -> Optional[GeocodeResult]:
        return None


def get_geocoder() -> ReverseGeocoder:
    """Get the configured reverse geocoder."""
    if not settings.GEOCODING_ENABLED:
        return NullGeocoder()
    return NominatimGeocoder(
        url=settings.GEOCODER_URL,
        timeout=settings.GEOCODER_TIMEOUT_SECONDS,
        user_agent=settings.GEOCODER_USER_AGENT,
    )
