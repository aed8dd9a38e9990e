from dataclasses import dataclass
import datetime
import enum
import math
from typing import Generic, TypeVar

from skyquality.errors import InvalidCoordinateError

V = TypeVar("V")


@dataclass(frozen=True)
class GeoCoordinate:
    latitude_deg: float
    longitude_deg: float

    def key(self, places: int) -> str:
        lat = round(self.latitude_deg, places) + 0.0
        lon = round(self.longitude_deg, places) + 0.0
        return f"{lat:.{places}f},{lon:.{places}f}"

    def is_finite(self) -> bool:
        return math.isfinite(self.latitude_deg) and math.isfinite(self.longitude_deg)


def sanitize_coordinate(latitude_deg, longitude_deg) -> GeoCoordinate:
    """Clamp a raw latitude/longitude pair into range.

    Out-of-range values are clamped rather than rejected. Only values that are
    not finite numbers raise, since there is nothing sensible to clamp them to.
    """
    try:
        lat = float(latitude_deg)
        lon = float(longitude_deg)
    except (TypeError, ValueError) as e:
        raise InvalidCoordinateError(f"Coordinates must be numeric: {latitude_deg!r}, {longitude_deg!r}") from e
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinateError(f"Coordinates must be finite: {lat}, {lon}")
    return GeoCoordinate(
        latitude_deg=max(-90.0, min(90.0, lat)),
        longitude_deg=max(-180.0, min(180.0, lon)),
    )


@dataclass(frozen=True)
class AstronomicalNightWindow:
    start_utc: datetime.datetime
    end_utc: datetime.datetime

    @property
    def duration(self) -> datetime.timedelta:
        return self.end_utc - self.start_utc

    @property
    def is_zero_length(self) -> bool:
        return self.end_utc <= self.start_utc

    def contains(self, instant: datetime.datetime) -> bool:
        if self.is_zero_length:
            return False
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=datetime.timezone.utc)
        return self.start_utc <= instant <= self.end_utc


@dataclass(frozen=True)
class WeatherSample:
    timestamp_utc: datetime.datetime
    temperature_c: float | None = None
    humidity_pct: float | None = None
    cloud_cover_pct: float | None = None
    wind_speed_kmh: float | None = None
    precipitation_mm: float | None = None


@dataclass(frozen=True)
class LightPollutionEstimate:
    bortle_scale: float | None = None
    sqm: float | None = None
    nelm: float | None = None


@dataclass(frozen=True)
class SiqsFactor:
    name: str
    score: float
    description: str


@dataclass(frozen=True)
class SiqsMetadata:
    calculation_type: str
    calculated_at_utc: datetime.datetime
    night_window: AstronomicalNightWindow | None = None
    cloud_samples: int = 0
    sources: tuple[tuple[str, bool], ...] = ()


@dataclass(frozen=True)
class SiqsResult:
    score: float
    is_viable: bool
    factors: tuple[SiqsFactor, ...]
    metadata: SiqsMetadata

    def factor(self, name: str) -> SiqsFactor | None:
        for f in self.factors:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    inserted_at: float
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class LocationCandidate:
    id: str
    name: str
    coordinate: GeoCoordinate
    certification: str | None = None
    is_dark_sky_reserve: bool = False
    distance_km: float | None = None
    siqs: float | None = None

    @property
    def is_certified(self) -> bool:
        return self.is_dark_sky_reserve or bool(self.certification)


@dataclass(frozen=True)
class GeocodeResult:
    name: str | None
    is_water: bool | None
    category: str | None = None
    kind: str | None = None


class FilterMode(str, enum.Enum):
    CERTIFIED = "certified"
    CALCULATED = "calculated"
