"""
CivicAI - Location Services
One-shot position fixes and OpenStreetMap Nominatim geocoding.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import httpx

from civicai.core.config import settings
from civicai.core.errors import LocationUnavailable
from civicai.issues.models import Coordinates, LocationSource

logger = logging.getLogger(__name__)


class PositionProvider(ABC):
    """Platform source of a one-shot position fix."""

    @abstractmethod
    async def current_position(self) -> Coordinates:
        """
        Return the current position.

        Raises:
            LocationUnavailable: permission denied or no fix
        """


class Geocoder(ABC):
    """Address <-> coordinate resolution."""

    @abstractmethod
    async def geocode(self, query: str) -> Optional[Tuple[float, float]]:
        """(latitude, longitude) for an address, or None if not found."""

    @abstractmethod
    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """Address for a coordinate pair, or None."""


class _HttpService:
    """Lazily created async HTTP session shared by the location clients."""

    def __init__(
        self,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": settings.geocoder_user_agent}
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class IPGeolocationProvider(_HttpService, PositionProvider):
    """
    Approximate position from the public IP address.

    Expects an ip-api.com style JSON body: {"status", "lat", "lon", "city"}.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(timeout or settings.geolocation_timeout_seconds, transport)
        self.url = url or settings.ip_geolocation_url

    async def current_position(self) -> Coordinates:
        try:
            response = await self._get_client().get(self.url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LocationUnavailable(f"Position lookup failed: {e}") from e

        if data.get("status", "success") != "success" or "lat" not in data:
            raise LocationUnavailable(data.get("message") or "No position fix")

        return Coordinates(
            latitude=float(data["lat"]),
            longitude=float(data["lon"]),
            source=LocationSource.DEVICE,
        )


class NominatimGeocoder(_HttpService, Geocoder):
    """
    Geocoding via OpenStreetMap Nominatim.
    Rate limited to 1 request per second.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(timeout or settings.http_timeout_seconds, transport)
        self.url = (url or settings.nominatim_url).rstrip("/")
        self._last_request_time = 0.0

    async def _rate_limit(self) -> None:
        """Ensure we don't exceed rate limits."""
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < 1.0:
            await asyncio.sleep(1.0 - elapsed)
        self._last_request_time = time.monotonic()

    async def geocode(self, query: str) -> Optional[Tuple[float, float]]:
        """
        Geocode an address or place name.

        Args:
            query: Address or place name

        Returns:
            Tuple of (latitude, longitude) or None if not found
        """
        await self._rate_limit()

        params = {
            "q": query,
            "format": "json",
            "limit": 1,
        }

        response = await self._get_client().get(f"{self.url}/search", params=params)
        response.raise_for_status()
        data = response.json()

        if data:
            return (float(data[0]["lat"]), float(data[0]["lon"]))
        return None

    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """
        Reverse geocode coordinates to an address.

        Args:
            latitude: Location latitude
            longitude: Location longitude

        Returns:
            Address string or None
        """
        await self._rate_limit()

        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "json",
        }

        response = await self._get_client().get(f"{self.url}/reverse", params=params)
        response.raise_for_status()
        data = response.json()

        return data.get("display_name")
