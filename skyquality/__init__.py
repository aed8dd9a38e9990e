from skyquality.errors import (
    ConfigError,
    InvalidCoordinateError,
    ProviderError,
    SkyQualityError,
)
from skyquality.service import SkyQualityService
from skyquality.types import (
    AstronomicalNightWindow,
    FilterMode,
    GeoCoordinate,
    LightPollutionEstimate,
    LocationCandidate,
    SiqsFactor,
    SiqsResult,
    WeatherSample,
)

__version__ = "0.1.0"

__all__ = [
    "AstronomicalNightWindow",
    "ConfigError",
    "FilterMode",
    "GeoCoordinate",
    "InvalidCoordinateError",
    "LightPollutionEstimate",
    "LocationCandidate",
    "ProviderError",
    "SiqsFactor",
    "SiqsResult",
    "SkyQualityError",
    "SkyQualityService",
    "WeatherSample",
]
