from .base import GeocodingProvider, LightPollutionProvider, WeatherProvider
from .catalog import CatalogLightPollutionProvider
from .nominatim import NominatimGeocodingProvider
from .open_meteo import OpenMeteoWeatherProvider
from .static import StaticLightPollutionProvider


def get_weather_provider(config) -> WeatherProvider:
    name = getattr(config, "weather_provider", None) or "open-meteo"
    if name == "open-meteo":
        return OpenMeteoWeatherProvider(base_url=config.weather_base_url, timeout_s=config.weather_timeout_s)
    raise ValueError(f"Unknown weather provider: {name}")


def get_geocoding_provider(config) -> GeocodingProvider:
    name = getattr(config, "geocoding_provider", None) or "nominatim"
    if name == "nominatim":
        return NominatimGeocodingProvider(
            base_url=config.geocoding_base_url,
            user_agent=config.geocoding_user_agent,
            timeout_s=config.geocoding_timeout_s,
        )
    raise ValueError(f"Unknown geocoding provider: {name}")


def get_light_pollution_provider(config) -> LightPollutionProvider:
    name = getattr(config, "light_pollution_provider", None) or "catalog"
    if name == "catalog":
        return CatalogLightPollutionProvider()
    if name == "static":
        return StaticLightPollutionProvider(bortle=config.light_pollution_bortle)
    raise ValueError(f"Unknown light pollution provider: {name}")


__all__ = [
    "CatalogLightPollutionProvider",
    "GeocodingProvider",
    "LightPollutionProvider",
    "NominatimGeocodingProvider",
    "OpenMeteoWeatherProvider",
    "StaticLightPollutionProvider",
    "WeatherProvider",
    "get_geocoding_provider",
    "get_light_pollution_provider",
    "get_weather_provider",
]
