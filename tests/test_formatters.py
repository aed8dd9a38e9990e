import datetime
import json

from skyquality.formatters import format_candidates, format_json, format_siqs, format_window
from skyquality.scoring import compute_siqs
from skyquality.types import (
    AstronomicalNightWindow,
    GeoCoordinate,
    LightPollutionEstimate,
    LocationCandidate,
    WeatherSample,
)

UTC = datetime.timezone.utc
NIGHT = AstronomicalNightWindow(
    start_utc=datetime.datetime(2024, 1, 15, 19, 0, tzinfo=UTC),
    end_utc=datetime.datetime(2024, 1, 16, 5, 0, tzinfo=UTC),
)


def _result():
    samples = [WeatherSample(timestamp_utc=NIGHT.start_utc, cloud_cover_pct=5.0)]
    return compute_siqs(
        GeoCoordinate(40.0, -105.0),
        samples,
        NIGHT,
        LightPollutionEstimate(bortle_scale=3.0, sqm=21.79, nelm=6.5),
        calculated_at=datetime.datetime(2024, 1, 15, 12, tzinfo=UTC),
    )


def test_format_siqs_lists_factors():
    text = format_siqs(_result(), verbose=True)
    assert "Cloud Cover" in text
    assert "Light Pollution" in text
    assert "(viable)" in text
    assert "Sources: weather, night_window, light_pollution" in text


def test_format_window():
    assert format_window(NIGHT).endswith("(10.0 h)")
    instant = datetime.datetime(2024, 6, 21, 0, 0, tzinfo=UTC)
    assert format_window(AstronomicalNightWindow(instant, instant)).startswith("none")


def test_format_json_is_plain_data():
    data = json.loads(format_json(_result()))
    assert data["metadata"]["calculated_at_utc"] == "2024-01-15T12:00:00+00:00"
    assert data["factors"][0]["name"] == "Cloud Cover"


def test_format_candidates():
    spots = [LocationCandidate(id="a", name="Park", coordinate=GeoCoordinate(1.0, 2.0), certification="Dark Sky Park")]
    assert "Dark Sky Park" in format_candidates(spots)
    assert format_candidates([]) == "No locations."
