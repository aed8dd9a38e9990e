import dataclasses
import logging
import math
from typing import Callable, Iterable, Sequence

from skyquality.types import FilterMode, GeoCoordinate, LocationCandidate

logger = logging.getLogger(__name__)

DEFAULT_CAP = 50
DEFAULT_MIN_DISTANCE_KM = 3.0
DEDUP_PLACES = 6
EARTH_RADIUS_KM = 6371.0088

WaterCheck = Callable[[GeoCoordinate], "bool | None"]


def haversine_km(a: GeoCoordinate, b: GeoCoordinate) -> float:
    lat1 = math.radians(a.latitude_deg)
    lat2 = math.radians(b.latitude_deg)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude_deg - a.longitude_deg)
    h = math.sin(dlat / 2.0) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def coordinate_key(coordinate: GeoCoordinate) -> tuple[float, float]:
    # + 0.0 folds -0.0 into 0.0 so both round to the same key.
    return (
        round(coordinate.latitude_deg, DEDUP_PLACES) + 0.0,
        round(coordinate.longitude_deg, DEDUP_PLACES) + 0.0,
    )


def dedup_key(candidate: LocationCandidate) -> tuple[float, float]:
    return coordinate_key(candidate.coordinate)


def partition(candidates: Iterable[LocationCandidate]) -> tuple[list[LocationCandidate], list[LocationCandidate]]:
    certified: list[LocationCandidate] = []
    other: list[LocationCandidate] = []
    for candidate in candidates:
        (certified if candidate.is_certified else other).append(candidate)
    return certified, other


def deduplicate(candidates: Iterable[LocationCandidate]) -> list[LocationCandidate]:
    seen: set[tuple[float, float]] = set()
    unique: list[LocationCandidate] = []
    for candidate in candidates:
        key = dedup_key(candidate)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def within_radius(
    candidates: Iterable[LocationCandidate],
    reference: GeoCoordinate | None,
    radius_km: float,
) -> list[LocationCandidate]:
    """Drop candidates farther than ``radius_km`` from ``reference``.

    Returns copies carrying the computed distance. Without a reference, or
    with a non-positive radius, candidates pass through unchanged.
    """
    if reference is None or radius_km <= 0:
        return list(candidates)
    kept: list[LocationCandidate] = []
    for candidate in candidates:
        distance = haversine_km(reference, candidate.coordinate)
        if distance <= radius_km:
            kept.append(dataclasses.replace(candidate, distance_km=distance))
    return kept


def filter_locations(
    candidates: Sequence[LocationCandidate],
    reference: GeoCoordinate | None,
    radius_km: float,
    mode: FilterMode | str,
    *,
    is_water: WaterCheck | None = None,
    cap: int = DEFAULT_CAP,
) -> list[LocationCandidate]:
    mode = FilterMode(mode)
    certified, other = partition(candidates)
    if mode is FilterMode.CERTIFIED:
        return deduplicate(certified)

    accepted: list[LocationCandidate] = []
    finite = [c for c in deduplicate(other) if c.coordinate.is_finite()]
    for candidate in within_radius(finite, reference, radius_km):
        if len(accepted) >= cap:
            break
        if is_water is not None and _classified_as_water(is_water, candidate):
            continue
        accepted.append(candidate)
    return accepted


def _classified_as_water(is_water: WaterCheck, candidate: LocationCandidate) -> bool:
    # Fail open: only an explicit True excludes a candidate.
    try:
        return is_water(candidate.coordinate) is True
    except Exception as e:
        logger.debug("water check failed for %s, keeping it: %r", candidate.id, e)
        return False


def sort_by_quality_and_distance(candidates: Iterable[LocationCandidate]) -> list[LocationCandidate]:
    def sort_key(c: LocationCandidate):
        distance = c.distance_km if c.distance_km is not None else math.inf
        return (0 if c.is_certified else 1, -(c.siqs or 0.0), distance)

    return sorted(candidates, key=sort_key)


def thin_by_min_distance(
    candidates: Iterable[LocationCandidate],
    min_distance_km: float = DEFAULT_MIN_DISTANCE_KM,
) -> list[LocationCandidate]:
    """Keep every certified candidate, and other candidates only when they
    are at least ``min_distance_km`` from everything already kept.

    Other candidates are considered best SIQS first.
    """
    certified, other = partition(candidates)
    kept = list(certified)
    for candidate in sort_by_quality_and_distance(other):
        if all(haversine_km(candidate.coordinate, k.coordinate) >= min_distance_km for k in kept):
            kept.append(candidate)
    return kept
