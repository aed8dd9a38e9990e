from __future__ import annotations

from collections import OrderedDict
import datetime
import logging
import time
from typing import Callable

from skyquality.types import CacheEntry, GeoCoordinate, SiqsResult

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_TTL_S = 300.0
KEY_PLACES = 4


def make_key(coordinate: GeoCoordinate, when: datetime.date | datetime.datetime) -> str:
    if isinstance(when, datetime.datetime):
        if when.tzinfo is not None:
            when = when.astimezone(datetime.timezone.utc)
        when = when.date()
    return f"{coordinate.key(KEY_PLACES)}@{when.isoformat()}"


class SiqsResultCache:
    """Bounded, TTL-expiring store of computed SIQS results.

    Eviction is first-in first-out: when full, the entry inserted earliest
    goes, regardless of how recently it was read. Reads never reorder entries,
    so this is not an LRU cache.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        ttl_s: float = DEFAULT_TTL_S,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._ttl_s = ttl_s
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[SiqsResult]] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get_cached(key) is not None

    def keys(self) -> list[str]:
        return list(self._entries)

    def get_cached(self, key: str) -> SiqsResult | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_live(self._clock()):
            logger.debug("siqs result expired %s", key)
            del self._entries[key]
            return None
        return entry.value

    def set_cached(self, key: str, result: SiqsResult) -> None:
        now = self._clock()
        # Replacing a key counts as a fresh insertion.
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=result, inserted_at=now, expires_at=now + self._ttl_s)
        while len(self._entries) > self._capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("siqs result evicted %s", evicted)

    def clear(self) -> None:
        self._entries.clear()
