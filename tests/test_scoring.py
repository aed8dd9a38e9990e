import datetime
import math

import pytest

from skyquality.scoring import (
    CLOUD,
    HUMIDITY,
    LIGHT_POLLUTION,
    MOON,
    PRECIPITATION,
    WEIGHTS,
    WIND,
    compute_siqs,
)
from skyquality.types import (
    AstronomicalNightWindow,
    GeoCoordinate,
    LightPollutionEstimate,
    WeatherSample,
)

UTC = datetime.timezone.utc
SITE = GeoCoordinate(40.0, -105.0)
NIGHT = AstronomicalNightWindow(
    start_utc=datetime.datetime(2024, 1, 15, 19, 0, tzinfo=UTC),
    end_utc=datetime.datetime(2024, 1, 16, 5, 0, tzinfo=UTC),
)
MIDNIGHT = datetime.datetime(2024, 1, 16, 0, 0, tzinfo=UTC)
NO_NIGHT = AstronomicalNightWindow(start_utc=MIDNIGHT, end_utc=MIDNIGHT)
UNKNOWN_SKY = LightPollutionEstimate()


def _hourly(start, hours, **fields):
    return [WeatherSample(timestamp_utc=start + datetime.timedelta(hours=h), **fields) for h in range(hours)]


def test_weights_sum_to_one():
    assert math.isclose(sum(WEIGHTS.values()), 1.0)


def test_no_data_scores_zero_and_is_not_viable():
    result = compute_siqs(SITE, [], NO_NIGHT, UNKNOWN_SKY)
    assert result.factors == ()
    assert result.score == 0.0
    assert result.is_viable is False


def test_missing_inputs_are_omitted_not_zeroed():
    samples = _hourly(NIGHT.start_utc, 6, cloud_cover_pct=20.0)
    result = compute_siqs(SITE, samples, NIGHT, UNKNOWN_SKY)
    assert [f.name for f in result.factors] == [CLOUD]
    assert result.factor(CLOUD).score == 8.0
    assert result.score == 8.0
    assert result.factor(LIGHT_POLLUTION) is None
    assert result.factor(HUMIDITY) is None


def test_score_falls_as_cloud_cover_rises():
    sky = LightPollutionEstimate(bortle_scale=3.0)
    scores = []
    for cloud in range(0, 101, 10):
        samples = _hourly(NIGHT.start_utc, 10, cloud_cover_pct=float(cloud), humidity_pct=50.0)
        scores.append(compute_siqs(SITE, samples, NIGHT, sky).score)
    assert scores == sorted(scores, reverse=True)
    assert scores[0] > scores[-1]


def test_viability_boundary():
    at_threshold = compute_siqs(SITE, [], NO_NIGHT, LightPollutionEstimate(bortle_scale=5.0))
    assert at_threshold.score == 5.0
    assert at_threshold.is_viable is True

    just_below = compute_siqs(SITE, [], NO_NIGHT, LightPollutionEstimate(bortle_scale=5.008))
    assert just_below.score == 4.99
    assert just_below.is_viable is False


def test_custom_viability_threshold():
    result = compute_siqs(
        SITE, [], NO_NIGHT, LightPollutionEstimate(bortle_scale=5.0), viability_threshold=6.0
    )
    assert result.is_viable is False


def test_zero_length_night_omits_cloud_and_moon():
    samples = _hourly(MIDNIGHT - datetime.timedelta(hours=3), 6, cloud_cover_pct=0.0, wind_speed_kmh=5.0)
    result = compute_siqs(SITE, samples, NO_NIGHT, UNKNOWN_SKY, moon_illumination=0.0)
    assert result.factor(CLOUD) is None
    assert result.factor(MOON) is None
    assert result.factor(WIND).score == 10.0
    assert result.metadata.cloud_samples == 0


def test_cloud_uses_samples_inside_the_night():
    daytime = _hourly(NIGHT.start_utc - datetime.timedelta(hours=8), 6, cloud_cover_pct=100.0)
    night = _hourly(NIGHT.start_utc + datetime.timedelta(hours=1), 4, cloud_cover_pct=0.0)
    result = compute_siqs(SITE, daytime + night, NIGHT, UNKNOWN_SKY)
    assert result.factor(CLOUD).score == 10.0
    assert result.metadata.cloud_samples == 4


def test_cloud_falls_back_to_current_conditions():
    current = [WeatherSample(timestamp_utc=NIGHT.start_utc - datetime.timedelta(hours=5), cloud_cover_pct=50.0)]
    result = compute_siqs(SITE, current, NIGHT, UNKNOWN_SKY)
    cloud = result.factor(CLOUD)
    assert cloud.score == 5.0
    assert "current conditions" in cloud.description
    assert result.metadata.cloud_samples == 0


def test_weighted_mean_over_present_factors():
    samples = _hourly(NIGHT.start_utc, 4, cloud_cover_pct=0.0)
    result = compute_siqs(SITE, samples, NIGHT, LightPollutionEstimate(bortle_scale=9.0))
    # (10 * 0.35 + 0 * 0.25) / 0.60
    assert result.score == 5.83


@pytest.mark.parametrize(
    "field, value, name, expected",
    [
        ("humidity_pct", 30.0, HUMIDITY, 10.0),
        ("humidity_pct", 65.0, HUMIDITY, 5.0),
        ("humidity_pct", 100.0, HUMIDITY, 0.0),
        ("wind_speed_kmh", 10.0, WIND, 10.0),
        ("wind_speed_kmh", 25.0, WIND, 5.0),
        ("wind_speed_kmh", 60.0, WIND, 0.0),
        ("precipitation_mm", 0.0, PRECIPITATION, 10.0),
        ("precipitation_mm", 2.5, PRECIPITATION, 0.0),
    ],
)
def test_atmospheric_factor_mapping(field, value, name, expected):
    samples = _hourly(NIGHT.start_utc, 2, **{field: value})
    result = compute_siqs(SITE, samples, NIGHT, UNKNOWN_SKY)
    assert result.factor(name).score == expected


def test_non_finite_values_are_ignored():
    samples = _hourly(NIGHT.start_utc, 3, humidity_pct=math.nan, cloud_cover_pct=10.0)
    result = compute_siqs(SITE, samples, NIGHT, UNKNOWN_SKY)
    assert result.factor(HUMIDITY) is None
    assert result.factor(CLOUD) is not None


def test_moon_factor():
    result = compute_siqs(SITE, [], NIGHT, UNKNOWN_SKY, moon_illumination=0.25)
    assert result.factor(MOON).score == 7.5
    assert result.score == 7.5


def test_score_stays_in_range():
    samples = _hourly(
        NIGHT.start_utc,
        4,
        cloud_cover_pct=150.0,
        humidity_pct=-20.0,
        wind_speed_kmh=-5.0,
        precipitation_mm=40.0,
    )
    result = compute_siqs(SITE, samples, NIGHT, LightPollutionEstimate(bortle_scale=1.0), moon_illumination=2.0)
    assert 0.0 <= result.score <= 10.0
    for factor in result.factors:
        assert 0.0 <= factor.score <= 10.0


def test_same_inputs_same_result():
    samples = _hourly(NIGHT.start_utc, 6, cloud_cover_pct=35.0, humidity_pct=70.0)
    calculated_at = datetime.datetime(2024, 1, 15, 12, tzinfo=UTC)
    sky = LightPollutionEstimate(bortle_scale=4.0, sqm=21.09, nelm=6.17)
    a = compute_siqs(SITE, samples, NIGHT, sky, moon_illumination=0.4, calculated_at=calculated_at)
    b = compute_siqs(SITE, samples, NIGHT, sky, moon_illumination=0.4, calculated_at=calculated_at)
    assert a == b
