from skyquality.types import GeoCoordinate
from .base import LightPollutionProvider


class StaticLightPollutionProvider(LightPollutionProvider):
    """Answers every coordinate with one configured Bortle value."""

    name = "static"

    def __init__(self, bortle: float | None = None):
        self.bortle = bortle

    async def fetch_light_pollution(self, coordinate: GeoCoordinate) -> float | None:
        return self.bortle

    def is_available(self) -> dict:
        if self.bortle is None:
            return {"ok": True, "detail": "no Bortle configured; light pollution factor omitted"}
        return {"ok": True, "detail": f"Bortle {self.bortle:g} everywhere"}
