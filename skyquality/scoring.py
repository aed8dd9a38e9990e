import datetime
import math
from typing import Sequence

from skyquality.types import (
    AstronomicalNightWindow,
    GeoCoordinate,
    LightPollutionEstimate,
    SiqsFactor,
    SiqsMetadata,
    SiqsResult,
    WeatherSample,
)

DEFAULT_VIABILITY_THRESHOLD = 5.0

CLOUD = "Cloud Cover"
LIGHT_POLLUTION = "Light Pollution"
HUMIDITY = "Humidity"
WIND = "Wind"
PRECIPITATION = "Precipitation"
MOON = "Moon"

WEIGHTS = {
    CLOUD: 0.35,
    LIGHT_POLLUTION: 0.25,
    HUMIDITY: 0.15,
    WIND: 0.10,
    PRECIPITATION: 0.10,
    MOON: 0.05,
}

HUMIDITY_IDEAL_PCT = 30.0
WIND_IDEAL_KMH = 10.0
WIND_LIMIT_KMH = 40.0
PRECIPITATION_LIMIT_MM = 2.5


def compute_siqs(
    coordinate: GeoCoordinate,
    weather: Sequence[WeatherSample],
    night_window: AstronomicalNightWindow,
    light_pollution: LightPollutionEstimate,
    *,
    moon_illumination: float | None = None,
    viability_threshold: float = DEFAULT_VIABILITY_THRESHOLD,
    calculated_at: datetime.datetime | None = None,
) -> SiqsResult:
    """Combine weather, darkness and light pollution into a 0-10 score.

    Each factor is normalised to [0, 10]. Factors whose inputs are missing are
    left out of the weighted mean entirely, so absent data neither helps nor
    hurts. The cloud factor only exists for a non-zero night window.
    """
    in_window = [s for s in weather if night_window.contains(s.timestamp_utc)]
    pool = in_window or list(weather)

    factors: list[SiqsFactor] = []
    cloud_samples = 0

    if not night_window.is_zero_length:
        cloud_values = _values(in_window, "cloud_cover_pct")
        cloud_samples = len(cloud_values)
        if not cloud_values:
            cloud_values = _values(weather, "cloud_cover_pct")
        if cloud_values:
            cloud = _mean(cloud_values)
            factors.append(
                SiqsFactor(CLOUD, _round(_score_cloud(cloud)), _describe_cloud(cloud, bool(cloud_samples)))
            )

    if light_pollution.bortle_scale is not None:
        bortle = light_pollution.bortle_scale
        factors.append(
            SiqsFactor(LIGHT_POLLUTION, _round(_score_bortle(bortle)), _describe_bortle(light_pollution))
        )

    humidity_values = _values(pool, "humidity_pct")
    if humidity_values:
        humidity = _mean(humidity_values)
        factors.append(SiqsFactor(HUMIDITY, _round(_score_humidity(humidity)), f"Humidity {humidity:.0f}%"))

    wind_values = _values(pool, "wind_speed_kmh")
    if wind_values:
        wind = _mean(wind_values)
        factors.append(SiqsFactor(WIND, _round(_score_wind(wind)), f"Wind {wind:.1f} km/h"))

    precipitation_values = _values(pool, "precipitation_mm")
    if precipitation_values:
        precipitation = _mean(precipitation_values)
        factors.append(
            SiqsFactor(
                PRECIPITATION,
                _round(_score_precipitation(precipitation)),
                f"Precipitation {precipitation:.1f} mm",
            )
        )

    if moon_illumination is not None and not night_window.is_zero_length:
        illum = _clamp(moon_illumination, 0.0, 1.0)
        factors.append(SiqsFactor(MOON, _round(_score_moon(illum)), f"Moon {illum * 100:.0f}% illuminated"))

    score = _composite(factors)
    sources = (
        ("weather", bool(weather)),
        ("night_window", not night_window.is_zero_length),
        ("light_pollution", light_pollution.bortle_scale is not None),
        ("moon", moon_illumination is not None),
    )
    metadata = SiqsMetadata(
        calculation_type="realtime",
        calculated_at_utc=calculated_at or datetime.datetime.now(datetime.timezone.utc),
        night_window=night_window,
        cloud_samples=cloud_samples,
        sources=sources,
    )
    return SiqsResult(
        score=score,
        is_viable=score >= viability_threshold,
        factors=tuple(factors),
        metadata=metadata,
    )


def _composite(factors: list[SiqsFactor]) -> float:
    if not factors:
        return 0.0
    total_weight = sum(WEIGHTS[f.name] for f in factors)
    weighted = sum(f.score * WEIGHTS[f.name] for f in factors)
    return _round(_clamp(weighted / total_weight, 0.0, 10.0))


def _values(samples: Sequence[WeatherSample], attr: str) -> list[float]:
    values = []
    for sample in samples:
        value = getattr(sample, attr)
        if isinstance(value, (int, float)) and math.isfinite(value):
            values.append(float(value))
    return values


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def _score_cloud(cloud_cover_pct: float) -> float:
    return _clamp(10.0 * (1.0 - cloud_cover_pct / 100.0), 0.0, 10.0)


def _score_bortle(bortle: float) -> float:
    return _clamp(10.0 * (9.0 - bortle) / 8.0, 0.0, 10.0)


def _score_humidity(humidity_pct: float) -> float:
    if humidity_pct <= HUMIDITY_IDEAL_PCT:
        return 10.0
    return _clamp(10.0 * (100.0 - humidity_pct) / (100.0 - HUMIDITY_IDEAL_PCT), 0.0, 10.0)


def _score_wind(wind_kmh: float) -> float:
    if wind_kmh <= WIND_IDEAL_KMH:
        return 10.0
    return _clamp(10.0 * (WIND_LIMIT_KMH - wind_kmh) / (WIND_LIMIT_KMH - WIND_IDEAL_KMH), 0.0, 10.0)


def _score_precipitation(precipitation_mm: float) -> float:
    return _clamp(10.0 * (1.0 - precipitation_mm / PRECIPITATION_LIMIT_MM), 0.0, 10.0)


def _score_moon(illumination: float) -> float:
    return 10.0 * (1.0 - illumination)


def _describe_cloud(cloud_cover_pct: float, during_night: bool) -> str:
    if cloud_cover_pct < 10:
        sky = "Clear skies"
    elif cloud_cover_pct < 30:
        sky = "Mostly clear"
    elif cloud_cover_pct < 60:
        sky = "Partly cloudy"
    elif cloud_cover_pct < 90:
        sky = "Mostly cloudy"
    else:
        sky = "Overcast"
    when = "during astronomical night" if during_night else "from current conditions"
    return f"{sky}, {cloud_cover_pct:.0f}% cloud cover {when}"


def _describe_bortle(estimate: LightPollutionEstimate) -> str:
    text = f"Bortle {estimate.bortle_scale:g}"
    if estimate.sqm is not None:
        text += f", {estimate.sqm:.2f} mag/arcsec²"
    return text


def _round(value: float) -> float:
    return round(value, 2)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
