from pathlib import Path
from typing import TYPE_CHECKING

from skyquality.errors import ConfigError

if TYPE_CHECKING:
    import tomli as tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:  # Python < 3.11
        import tomli as tomllib

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "skyquality" / "config.toml"

DEFAULT_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_GEOCODING_URL = "https://nominatim.openstreetmap.org/reverse"


class Config:
    def __init__(self, data: dict):
        self._data = data

    def _section(self, name: str) -> dict:
        return self._data.get(name, {})

    def _positive(self, section: str, key: str, default, *, allow_zero: bool = False):
        value = self._section(section).get(key, default)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ConfigError(f"{section}.{key} must be a number, got {value!r}")
        if value < 0 or (value == 0 and not allow_zero):
            raise ConfigError(f"{section}.{key} must be positive, got {value!r}")
        return value

    @property
    def weather_ttl_s(self) -> float:
        return self._positive("cache", "weather_ttl_s", 900)

    @property
    def geocode_ttl_s(self) -> float:
        return self._positive("cache", "geocode_ttl_s", 86400)

    @property
    def light_pollution_ttl_s(self) -> float:
        return self._positive("cache", "light_pollution_ttl_s", 86400)

    @property
    def cache_max_entries(self) -> int:
        return int(self._positive("cache", "max_entries", 512))

    @property
    def result_ttl_s(self) -> float:
        return self._positive("cache", "result_ttl_s", 300)

    @property
    def result_capacity(self) -> int:
        return int(self._positive("cache", "result_capacity", 100))

    @property
    def viability_threshold(self) -> float:
        value = self._section("scoring").get("viability_threshold", 5.0)
        if not isinstance(value, (int, float)) or not 0.0 <= value <= 10.0:
            raise ConfigError(f"scoring.viability_threshold must be in [0, 10], got {value!r}")
        return float(value)

    @property
    def include_moon(self) -> bool:
        return bool(self._section("scoring").get("include_moon", True))

    @property
    def filter_cap(self) -> int:
        return int(self._positive("filter", "cap", 50))

    @property
    def filter_min_distance_km(self) -> float:
        return float(self._positive("filter", "min_distance_km", 3.0, allow_zero=True))

    @property
    def weather_provider(self) -> str:
        return self._section("weather").get("provider", "open-meteo")

    @property
    def weather_base_url(self) -> str:
        return self._section("weather").get("base_url", DEFAULT_WEATHER_URL)

    @property
    def weather_timeout_s(self) -> float:
        return self._positive("weather", "timeout_s", 10)

    @property
    def geocoding_provider(self) -> str:
        return self._section("geocoding").get("provider", "nominatim")

    @property
    def geocoding_base_url(self) -> str:
        return self._section("geocoding").get("base_url", DEFAULT_GEOCODING_URL)

    @property
    def geocoding_user_agent(self) -> str:
        return self._section("geocoding").get("user_agent", "skyquality")

    @property
    def geocoding_timeout_s(self) -> float:
        return self._positive("geocoding", "timeout_s", 10)

    @property
    def light_pollution_provider(self) -> str:
        section = self._section("light_pollution")
        if "provider" in section:
            return section["provider"]
        # A fixed Bortle in the config implies the static provider.
        return "static" if section.get("bortle") is not None else "catalog"

    @property
    def light_pollution_bortle(self) -> float | None:
        value = self._section("light_pollution").get("bortle", None)
        if value is None:
            return None
        if not isinstance(value, (int, float)) or not 1 <= value <= 9:
            raise ConfigError(f"light_pollution.bortle must be in [1, 9], got {value!r}")
        return float(value)

    @property
    def site_latitude_deg(self):
        return self._section("site").get("latitude_deg", None)

    @property
    def site_longitude_deg(self):
        return self._section("site").get("longitude_deg", None)


def load_config(path: Path | None = None) -> Config:
    explicit_path = path
    path = path or DEFAULT_CONFIG_PATH

    if not path.exists():
        if explicit_path is not None:
            raise FileNotFoundError(f"Config file not found: {path}")
        # Return default config if default file missing
        return Config({})

    with open(path, "rb") as f:
        data = tomllib.load(f)

    return Config(data)
