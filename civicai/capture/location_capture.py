"""
Location capture
Device position fix with manual address entry as the fallback
"""

import asyncio
import logging
from dataclasses import replace
from typing import Optional, Tuple

import httpx

from civicai.core.config import settings
from civicai.core.errors import LocationUnavailable
from civicai.capture.geocoding import Geocoder, PositionProvider
from civicai.issues.models import Coordinates, LocationSource

logger = logging.getLogger(__name__)


class LocationCapture:
    """
    Holds the single active coordinate pair of a report.

    A device fix and a manual entry replace each other; there is never more
    than one active location.
    """

    def __init__(
        self,
        provider: Optional[PositionProvider] = None,
        geocoder: Optional[Geocoder] = None,
        timeout: Optional[float] = None,
        fallback: Optional[Tuple[float, float]] = None
    ):
        """
        Initialize location capture.

        Args:
            provider: One-shot position source
            geocoder: Resolves manual text to coordinates and fixes to addresses
            timeout: Seconds to wait for a position fix
            fallback: Coordinate used for manual entry when no geocoder is set
        """
        self.provider = provider
        self.geocoder = geocoder
        self.timeout = timeout or settings.geolocation_timeout_seconds
        self.fallback = fallback or (
            settings.manual_location_fallback_lat,
            settings.manual_location_fallback_lng,
        )
        self._current: Optional[Coordinates] = None

    @property
    def current(self) -> Optional[Coordinates]:
        return self._current

    async def request_current_location(self) -> Coordinates:
        """
        Ask the platform for a one-shot position fix.

        Raises:
            LocationUnavailable: denied, failed or timed out; use set_manual()
        """
        if self.provider is None:
            raise LocationUnavailable("No position provider available")

        try:
            position = await asyncio.wait_for(self.provider.current_position(), self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Position fix timed out after {self.timeout}s")
            raise LocationUnavailable("Position fix timed out") from e
        except PermissionError as e:
            logger.warning(f"Location access denied: {e}")
            raise LocationUnavailable("Location access denied") from e
        except LocationUnavailable as e:
            logger.warning(f"Location unavailable: {e}")
            raise

        if position.address is None and self.geocoder is not None:
            position = replace(position, address=await self._address_for(position))

        self._current = position
        logger.info(f"Location fixed: {position}")
        return position

    async def _address_for(self, position: Coordinates) -> Optional[str]:
        try:
            return await self.geocoder.reverse_geocode(position.latitude, position.longitude)
        except httpx.HTTPError as e:
            logger.warning(f"Reverse geocoding failed, keeping bare coordinates: {e}")
            return None

    async def set_manual(self, text: str) -> Coordinates:
        """
        Use a typed address or area name, replacing any device fix.

        Without a geocoder the configured fallback coordinate stands in for
        the address.
        """
        query = (text or "").strip()
        if not query:
            raise LocationUnavailable("Enter an address or area name")

        if self.geocoder is None:
            latitude, longitude = self.fallback
            logger.warning(f"No geocoder configured; using placeholder coordinate for {query!r}")
        else:
            try:
                found = await self.geocoder.geocode(query)
            except httpx.HTTPError as e:
                raise LocationUnavailable(f"Address lookup failed: {e}") from e
            if found is None:
                raise LocationUnavailable(f"No match for {query!r}")
            latitude, longitude = found

        self._current = Coordinates(
            latitude=latitude,
            longitude=longitude,
            address=query,
            source=LocationSource.MANUAL,
        )
        logger.info(f"Manual location set: {self._current}")
        return self._current

    def reset(self) -> None:
        self._current = None
