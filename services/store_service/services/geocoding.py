"""
Nominatim (OpenStreetMap) client used by the location picker.

Provides async methods for:
- Reverse geocoding a map pin into a readable address
- Searching places by free text

Results only matter for address entry; order routing works from the stored
coordinates and never calls out.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.errors import UpstreamServiceError
from libs.common.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ReverseGeocodeResult:
    display_name: str
    location_name: str
    serviceable: bool


@dataclass
class Place:
    id: Optional[int]
    name: str
    lat: str
    lon: str


class GeocodingError(UpstreamServiceError):
    """Geocoding provider failed or returned something unusable."""


def build_location_name(display_name: str, address: Optional[dict]) -> str:
    """Short address from the most specific parts available.

    Falls back to Nominatim's full ``display_name``.
    """
    if not address:
        return display_name
    parts = [
        address.get("house_number"),
        address.get("road"),
        address.get("neighbourhood") or address.get("suburb"),
        address.get("city") or address.get("town") or address.get("village"),
    ]
    parts = [part for part in parts if part]
    return ", ".join(parts) if parts else display_name


class GeocodingClient:
    """Async client for the Nominatim reverse and search APIs."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        serviceable_city: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.GEOCODING_BASE_URL).rstrip("/")
        self.serviceable_city = (serviceable_city or settings.SERVICEABLE_CITY).lower()
        self.timeout = settings.GEOCODING_TIMEOUT
        self._headers = {"User-Agent": settings.GEOCODING_USER_AGENT}
        self._transport = transport

    def is_serviceable(self, display_name: Optional[str]) -> bool:
        return bool(display_name) and self.serviceable_city in display_name.lower()

    async def _get(self, endpoint: str, params: dict) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as e:
            logger.error("Geocoding request to %s failed: %s", endpoint, e)
            raise GeocodingError("Failed to reach the geocoding service") from e

        if not response.is_success:
            logger.error(
                "Geocoding API error: %s - %s", response.status_code, response.text
            )
            raise GeocodingError("Failed to fetch address from geocoding service")

        try:
            return response.json()
        except ValueError as e:
            raise GeocodingError("Geocoding service returned invalid JSON") from e

    async def reverse(self, lat: float, lon: float) -> ReverseGeocodeResult:
        """Street-level address for a coordinate pair."""
        data = await self._get(
            "/reverse",
            {
                "format": "json",
                "lat": lat,
                "lon": lon,
                "zoom": 18,
                "addressdetails": 1,
            },
        )
        display_name = data.get("display_name") if isinstance(data, dict) else None
        if not display_name:
            raise GeocodingError("Could not find address for this location")

        return ReverseGeocodeResult(
            display_name=display_name,
            location_name=build_location_name(display_name, data.get("address")),
            serviceable=self.is_serviceable(display_name),
        )

    async def search(self, query: str, limit: int = 5) -> list[Place]:
        """Serviceable places matching ``query``."""
        data = await self._get(
            "/search", {"q": query, "format": "json", "limit": limit}
        )
        if not isinstance(data, list):
            raise GeocodingError("Geocoding service returned an unexpected payload")

        return [
            Place(
                id=place.get("osm_id"),
                name=place["display_name"],
                lat=str(place.get("lat")),
                lon=str(place.get("lon")),
            )
            for place in data
            if self.is_serviceable(place.get("display_name"))
        ]


def get_geocoding_client() -> GeocodingClient:
    """FastAPI dependency; tests override it with a client on a mock transport."""
    return GeocodingClient()
