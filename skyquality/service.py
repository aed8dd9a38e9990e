from __future__ import annotations

import asyncio
import datetime
import logging
import time
from typing import Callable, Sequence

from skyquality import astro, filters, lightpollution, scoring
from skyquality.cache import RequestCoalescingCache, SiqsResultCache, make_key
from skyquality.config import Config
from skyquality.providers import (
    GeocodingProvider,
    LightPollutionProvider,
    WeatherProvider,
    get_geocoding_provider,
    get_light_pollution_provider,
    get_weather_provider,
)
from skyquality.types import (
    FilterMode,
    GeocodeResult,
    GeoCoordinate,
    LocationCandidate,
    SiqsResult,
    sanitize_coordinate,
)

logger = logging.getLogger(__name__)

FETCH_KEY_PLACES = 4
GEOCODE_KEY_PLACES = 6


class SkyQualityService:
    """Computes SIQS for a place and night, and filters candidate spots.

    Provider fetches go through coalescing caches, one per upstream, so
    concurrent requests for the same place trigger a single upstream call. Completed
    results are kept in a short-lived result cache keyed by place and date.
    """

    def __init__(
        self,
        config: Config | None = None,
        weather_provider: WeatherProvider | None = None,
        geocoding_provider: GeocodingProvider | None = None,
        light_pollution_provider: LightPollutionProvider | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or Config({})
        self.weather_provider = weather_provider or get_weather_provider(self.config)
        self.geocoding_provider = geocoding_provider or get_geocoding_provider(self.config)
        self.light_pollution_provider = light_pollution_provider or get_light_pollution_provider(self.config)
        # One coalescing cache per upstream, each with its own entry bound.
        self.weather_cache: RequestCoalescingCache = RequestCoalescingCache(
            max_entries=self.config.cache_max_entries, clock=clock
        )
        self.light_pollution_cache: RequestCoalescingCache = RequestCoalescingCache(
            max_entries=self.config.cache_max_entries, clock=clock
        )
        self.geocode_cache: RequestCoalescingCache = RequestCoalescingCache(
            max_entries=self.config.cache_max_entries, clock=clock
        )
        self.result_cache = SiqsResultCache(
            capacity=self.config.result_capacity, ttl_s=self.config.result_ttl_s, clock=clock
        )

    async def compute_siqs(
        self,
        coordinate: GeoCoordinate,
        date: datetime.date | datetime.datetime | None = None,
    ) -> SiqsResult:
        coordinate = sanitize_coordinate(coordinate.latitude_deg, coordinate.longitude_deg)
        if date is None:
            date = datetime.datetime.now(datetime.timezone.utc).date()
        key = make_key(coordinate, date)

        cached = self.result_cache.get_cached(key)
        if cached is not None:
            logger.debug("siqs result hit %s", key)
            return cached

        window = astro.compute_night_window(coordinate, date)
        weather, bortle = await asyncio.gather(
            self._weather(coordinate),
            self._light_pollution(coordinate),
        )

        moon = None
        if self.config.include_moon and not window.is_zero_length:
            midpoint = window.start_utc + window.duration / 2
            moon = astro.moon_illumination_fraction(midpoint)

        result = scoring.compute_siqs(
            coordinate,
            weather,
            window,
            lightpollution.estimate_from_bortle(bortle),
            moon_illumination=moon,
            viability_threshold=self.config.viability_threshold,
        )
        self.result_cache.set_cached(key, result)
        logger.info("SIQS %s = %.2f (%d factors)", key, result.score, len(result.factors))
        return result

    async def filter_locations(
        self,
        candidates: Sequence[LocationCandidate],
        reference: GeoCoordinate | None,
        radius_km: float,
        mode: FilterMode | str,
    ) -> list[LocationCandidate]:
        mode = FilterMode(mode)
        if reference is not None:
            reference = sanitize_coordinate(reference.latitude_deg, reference.longitude_deg)
        cap = self.config.filter_cap
        if mode is FilterMode.CERTIFIED:
            return filters.filter_locations(candidates, reference, radius_km, mode, cap=cap)

        _, other = filters.partition(candidates)
        pending = filters.within_radius(
            [c for c in filters.deduplicate(other) if c.coordinate.is_finite()],
            reference,
            radius_km,
        )

        # Classify in input order, one batch per remaining cap slot, and stop
        # once the cap is reached. Lookups never exceed cap plus the number of
        # candidates found to be water.
        accepted: list[LocationCandidate] = []
        while pending and len(accepted) < cap:
            room = cap - len(accepted)
            batch, pending = pending[:room], pending[room:]
            outcomes = await asyncio.gather(
                *(self._geocode(c.coordinate) for c in batch),
                return_exceptions=True,
            )
            for candidate, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.debug("water lookup failed for %s, keeping it: %r", candidate.id, outcome)
                elif isinstance(outcome, BaseException):
                    raise outcome
                elif outcome.is_water is True:
                    continue
                accepted.append(candidate)
        logger.debug("filter kept %d of %d candidates", len(accepted), len(candidates))
        return accepted

    def clear_caches(self) -> None:
        self.result_cache.clear()
        self.weather_cache.clear()
        self.light_pollution_cache.clear()
        self.geocode_cache.clear()

    async def close(self) -> None:
        for provider in (self.weather_provider, self.geocoding_provider, self.light_pollution_provider):
            await provider.close()

    async def _weather(self, coordinate: GeoCoordinate):
        key = f"weather:{coordinate.key(FETCH_KEY_PLACES)}"
        return await self.weather_cache.get(
            key, self.config.weather_ttl_s, lambda: self.weather_provider.fetch_weather(coordinate)
        )

    async def _light_pollution(self, coordinate: GeoCoordinate):
        key = f"lightpollution:{coordinate.key(FETCH_KEY_PLACES)}"
        return await self.light_pollution_cache.get(
            key,
            self.config.light_pollution_ttl_s,
            lambda: self.light_pollution_provider.fetch_light_pollution(coordinate),
        )

    async def _geocode(self, coordinate: GeoCoordinate) -> GeocodeResult:
        key = f"geocode:{coordinate.key(GEOCODE_KEY_PLACES)}"
        return await self.geocode_cache.get(
            key, self.config.geocode_ttl_s, lambda: self.geocoding_provider.reverse_geocode(coordinate)
        )
