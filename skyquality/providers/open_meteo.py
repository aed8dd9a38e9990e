import asyncio
import datetime
import logging
from typing import Any, Optional

import aiohttp

from skyquality.errors import ProviderError
from skyquality.types import GeoCoordinate, WeatherSample
from .base import WeatherProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_TIMEOUT_S = 10.0
FORECAST_HOURS = 24

VARIABLES = (
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation",
    "cloud_cover",
    "wind_speed_10m",
)

# Open-Meteo variable -> WeatherSample field
_FIELDS = {
    "temperature_2m": "temperature_c",
    "relative_humidity_2m": "humidity_pct",
    "precipitation": "precipitation_mm",
    "cloud_cover": "cloud_cover_pct",
    "wind_speed_10m": "wind_speed_kmh",
}


def _parse_time(text: str) -> datetime.datetime:
    dt = datetime.datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _parse_payload(payload: dict) -> tuple[WeatherSample, ...]:
    """Turn an Open-Meteo forecast response into weather samples.

    The current observation, when present, comes first. Hourly rows follow
    in response order. Rows without a parseable time are skipped, and
    missing or null values stay ``None``.
    """
    samples: list[WeatherSample] = []

    current = payload.get("current") or {}
    if current.get("time"):
        try:
            samples.append(
                WeatherSample(
                    timestamp_utc=_parse_time(current["time"]),
                    **{field: _number(current.get(var)) for var, field in _FIELDS.items()},
                )
            )
        except (TypeError, ValueError):
            logger.debug("skipping unparseable current row: %r", current.get("time"))

    hourly = payload.get("hourly") or {}
    times = hourly.get("time") or []
    for i, text in enumerate(times):
        try:
            timestamp = _parse_time(text)
        except (TypeError, ValueError):
            continue
        values = {}
        for var, field in _FIELDS.items():
            column = hourly.get(var) or []
            values[field] = _number(column[i]) if i < len(column) else None
        samples.append(WeatherSample(timestamp_utc=timestamp, **values))

    return tuple(samples)


class OpenMeteoWeatherProvider(WeatherProvider):
    name = "open-meteo"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _params(self, coordinate: GeoCoordinate) -> dict:
        variables = ",".join(VARIABLES)
        return {
            "latitude": f"{coordinate.latitude_deg:.4f}",
            "longitude": f"{coordinate.longitude_deg:.4f}",
            "current": variables,
            "hourly": variables,
            "forecast_hours": str(FORECAST_HOURS),
            "timezone": "GMT",
            "wind_speed_unit": "kmh",
        }

    async def fetch_weather(self, coordinate: GeoCoordinate) -> tuple[WeatherSample, ...]:
        session = await self._ensure_session()
        key = coordinate.key(4)
        try:
            async with session.get(self.base_url, params=self._params(coordinate)) as response:
                response.raise_for_status()
                payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Open-Meteo request failed for %s: %s", key, e)
            raise ProviderError(f"Weather fetch failed: {e}", provider=self.name, key=key) from e
        if not isinstance(payload, dict):
            logger.warning("Open-Meteo returned unexpected payload for %s", key)
            raise ProviderError("Weather response was not a JSON object", provider=self.name, key=key)
        return _parse_payload(payload)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def is_available(self) -> dict:
        return {"ok": True, "detail": self.base_url}
