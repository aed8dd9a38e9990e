import asyncio
import logging
import re
from typing import Optional

import aiohttp

from skyquality.errors import ProviderError
from skyquality.types import GeocodeResult, GeoCoordinate
from .base import GeocodingProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org/reverse"
DEFAULT_USER_AGENT = "skyquality"
DEFAULT_TIMEOUT_S = 10.0

WATER_KEYWORDS = ("water", "sea", "ocean", "bay", "gulf", "lake", "river")

_WORD = re.compile(r"[a-z]+")


def classify_water(category: str | None, kind: str | None, display_name: str | None) -> bool:
    """True when the OSM category, type or display name names a water body.

    Category and type match on substrings (``waterway``, ``coastline_bay``).
    The display name matches whole words only, so a town called Riverside
    is not water.
    """
    tags = f"{category or ''} {kind or ''}".lower()
    if any(k in tags for k in WATER_KEYWORDS):
        return True
    words = set(_WORD.findall((display_name or "").lower()))
    return any(k in words for k in WATER_KEYWORDS)


def _parse_payload(payload: dict) -> GeocodeResult:
    # Nominatim answers {"error": "Unable to geocode"} for points it cannot
    # place, which is common far offshore. That is unknown, not "land".
    if not payload or "error" in payload:
        return GeocodeResult(name=None, is_water=None)
    category = payload.get("category") or payload.get("class")
    kind = payload.get("type")
    display_name = payload.get("display_name")
    return GeocodeResult(
        name=display_name,
        is_water=classify_water(category, kind, display_name),
        category=category,
        kind=kind,
    )


class NominatimGeocodingProvider(GeocodingProvider):
    name = "nominatim"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout, headers={"User-Agent": self.user_agent}
            )
        return self._session

    async def reverse_geocode(self, coordinate: GeoCoordinate) -> GeocodeResult:
        session = await self._ensure_session()
        key = coordinate.key(6)
        params = {
            "lat": f"{coordinate.latitude_deg:.6f}",
            "lon": f"{coordinate.longitude_deg:.6f}",
            "format": "jsonv2",
        }
        try:
            async with session.get(self.base_url, params=params) as response:
                response.raise_for_status()
                payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Nominatim lookup failed for %s: %s", key, e)
            raise ProviderError(f"Reverse geocode failed: {e}", provider=self.name, key=key) from e
        if not isinstance(payload, dict):
            raise ProviderError("Geocode response was not a JSON object", provider=self.name, key=key)
        return _parse_payload(payload)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def is_available(self) -> dict:
        return {"ok": True, "detail": f"{self.base_url} (User-Agent: {self.user_agent})"}
