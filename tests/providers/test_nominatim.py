import asyncio

import aiohttp
import pytest

from skyquality.config import Config
from skyquality.errors import ProviderError
from skyquality.providers import (
    NominatimGeocodingProvider,
    StaticLightPollutionProvider,
    get_geocoding_provider,
    get_light_pollution_provider,
)
from skyquality.providers.nominatim import _parse_payload, classify_water
from skyquality.types import GeoCoordinate


class RaisingSession:
    closed = False

    def get(self, url, params=None):
        raise aiohttp.ClientConnectionError("unreachable")


@pytest.mark.parametrize(
    "category, kind, display_name, expected",
    [
        ("natural", "water", "Lake Tahoe, California", True),
        ("waterway", "river", "Colorado River", True),
        ("place", "bay", "Some Bay", True),
        ("boundary", "administrative", "Gulf of Mexico", True),
        ("place", "town", "Riverside, California", False),
        ("highway", "residential", "Main Street, Denver", False),
        (None, None, None, False),
    ],
)
def test_classify_water(category, kind, display_name, expected):
    assert classify_water(category, kind, display_name) is expected


def test_parse_payload():
    result = _parse_payload(
        {"category": "natural", "type": "water", "display_name": "Lake Geneva, Switzerland"}
    )
    assert result.is_water is True
    assert result.name == "Lake Geneva, Switzerland"
    assert result.kind == "water"


def test_unable_to_geocode_is_unknown():
    result = _parse_payload({"error": "Unable to geocode"})
    assert result.is_water is None
    assert result.name is None


def test_transport_error_becomes_provider_error():
    provider = NominatimGeocodingProvider(session=RaisingSession())
    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(provider.reverse_geocode(GeoCoordinate(46.45, 6.55)))
    assert excinfo.value.provider == "nominatim"


def test_factories_follow_config():
    config = Config({"geocoding": {"user_agent": "test-agent"}, "light_pollution": {"bortle": 4}})
    geocoder = get_geocoding_provider(config)
    assert isinstance(geocoder, NominatimGeocodingProvider)
    assert geocoder.user_agent == "test-agent"
    light = get_light_pollution_provider(config)
    assert isinstance(light, StaticLightPollutionProvider)
    assert asyncio.run(light.fetch_light_pollution(GeoCoordinate(0.0, 0.0))) == 4.0
    with pytest.raises(ValueError):
        get_geocoding_provider(Config({"geocoding": {"provider": "nope"}}))


@pytest.mark.integration
def test_live_nominatim_lake():
    async def scenario():
        provider = NominatimGeocodingProvider(user_agent="skyquality-tests")
        try:
            return await provider.reverse_geocode(GeoCoordinate(46.45, 6.55))
        finally:
            await provider.close()

    result = asyncio.run(scenario())
    assert result.is_water in (True, None)
