from __future__ import annotations

import asyncio
from collections import OrderedDict
import logging
import time
from typing import Awaitable, Callable, Generic, TypeVar

from skyquality.types import CacheEntry

logger = logging.getLogger(__name__)

V = TypeVar("V")

Fetcher = Callable[[], Awaitable[V]]


class RequestCoalescingCache(Generic[V]):
    """Async value cache that allows at most one in-flight fetch per key.

    Concurrent callers for a key with no live value share one fetch task and
    all observe the same value or the same exception. Failures are never
    cached. The lookup, in-flight check and task creation in ``get`` contain no
    suspension point, which makes them atomic on a single event loop; the
    cache is not safe to share across threads or loops.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task] = {}
        self._max_entries = max_entries
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def peek(self, key: str) -> V | None:
        entry = self._live_entry(key)
        return None if entry is None else entry.value

    async def get(self, key: str, ttl_s: float, fetcher: Fetcher) -> V:
        entry = self._live_entry(key)
        if entry is not None:
            logger.debug("cache hit %s", key)
            return entry.value

        task = self._in_flight.get(key)
        if task is None:
            logger.debug("cache miss %s, starting fetch", key)
            task = asyncio.ensure_future(self._fetch(key, ttl_s, fetcher))
            task.add_done_callback(_retrieve_exception)
            self._in_flight[key] = task
        else:
            logger.debug("joining in-flight fetch for %s", key)
        # A cancelled waiter must not cancel the shared fetch.
        return await asyncio.shield(task)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop stored values. In-flight fetches still complete and store."""
        self._entries.clear()

    def _live_entry(self, key: str) -> CacheEntry[V] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_live(self._clock()):
            logger.debug("cache entry expired %s", key)
            del self._entries[key]
            return None
        return entry

    async def _fetch(self, key: str, ttl_s: float, fetcher: Fetcher) -> V:
        try:
            value = await fetcher()
        except BaseException as e:
            self._in_flight.pop(key, None)
            logger.debug("fetch failed for %s: %r", key, e)
            raise
        now = self._clock()
        self._store(key, CacheEntry(value=value, inserted_at=now, expires_at=now + ttl_s))
        self._in_flight.pop(key, None)
        return value

    def _store(self, key: str, entry: CacheEntry[V]) -> None:
        self._entries.pop(key, None)
        self._entries[key] = entry
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache evicted %s", evicted)


def _retrieve_exception(task: asyncio.Task) -> None:
    # Mark the outcome as retrieved so a failure whose waiters were all
    # cancelled is not reported as "never retrieved".
    if not task.cancelled():
        task.exception()
