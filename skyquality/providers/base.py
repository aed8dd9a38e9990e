from abc import ABC, abstractmethod

from skyquality.types import GeocodeResult, GeoCoordinate, WeatherSample


class WeatherProvider(ABC):
    name = "weather"

    @abstractmethod
    async def fetch_weather(self, coordinate: GeoCoordinate) -> tuple[WeatherSample, ...]:
        """Return the current observation followed by hourly forecast rows."""

    async def close(self) -> None:
        pass

    def is_available(self) -> dict:
        """Return a dict with 'ok' (bool) and 'detail' (str) for doctor checks."""
        return {"ok": False, "detail": "not implemented"}


class GeocodingProvider(ABC):
    name = "geocoding"

    @abstractmethod
    async def reverse_geocode(self, coordinate: GeoCoordinate) -> GeocodeResult:
        pass

    async def close(self) -> None:
        pass

    def is_available(self) -> dict:
        return {"ok": False, "detail": "not implemented"}


class LightPollutionProvider(ABC):
    name = "light-pollution"

    @abstractmethod
    async def fetch_light_pollution(self, coordinate: GeoCoordinate) -> float | None:
        """Return a Bortle value for the coordinate, or None when unknown."""

    async def close(self) -> None:
        pass

    def is_available(self) -> dict:
        return {"ok": False, "detail": "not implemented"}
