import asyncio

import pytest

from skyquality.cache import RequestCoalescingCache
from skyquality.errors import ProviderError


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingFetcher:
    def __init__(self, value="value", error=None, delay_s=0.01):
        self.value = value
        self.error = error
        self.delay_s = delay_s
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.value


def test_concurrent_callers_share_one_fetch():
    cache = RequestCoalescingCache()
    fetcher = CountingFetcher(value={"cloud": 12})

    async def scenario():
        return await asyncio.gather(*(cache.get("weather:1.0000,2.0000", 60, fetcher) for _ in range(10)))

    results = asyncio.run(scenario())
    assert fetcher.calls == 1
    assert all(r is results[0] for r in results)
    assert not cache.in_flight("weather:1.0000,2.0000")


def test_failure_reaches_every_waiter_and_is_not_cached():
    cache = RequestCoalescingCache()
    fetcher = CountingFetcher(error=ProviderError("upstream down", provider="fake"))

    async def scenario():
        return await asyncio.gather(
            *(cache.get("k", 60, fetcher) for _ in range(10)),
            return_exceptions=True,
        )

    results = asyncio.run(scenario())
    assert fetcher.calls == 1
    assert len(results) == 10
    assert all(isinstance(r, ProviderError) for r in results)
    assert len(cache) == 0
    assert not cache.in_flight("k")

    fetcher.error = None
    assert asyncio.run(cache.get("k", 60, fetcher)) == "value"
    assert fetcher.calls == 2


def test_live_value_is_served_without_fetching():
    clock = FakeClock()
    cache = RequestCoalescingCache(clock=clock)
    fetcher = CountingFetcher(delay_s=0)

    asyncio.run(cache.get("k", 60, fetcher))
    clock.now += 59.9
    asyncio.run(cache.get("k", 60, fetcher))
    assert fetcher.calls == 1
    assert cache.peek("k") == "value"


def test_expired_value_is_refetched():
    clock = FakeClock()
    cache = RequestCoalescingCache(clock=clock)
    fetcher = CountingFetcher(delay_s=0)

    asyncio.run(cache.get("k", 60, fetcher))
    clock.now += 60.0
    assert cache.peek("k") is None
    asyncio.run(cache.get("k", 60, fetcher))
    assert fetcher.calls == 2


def test_max_entries_evicts_oldest_insertion():
    cache = RequestCoalescingCache(max_entries=2)

    async def scenario():
        for key in ("a", "b", "c"):
            await cache.get(key, 60, CountingFetcher(value=key, delay_s=0))

    asyncio.run(scenario())
    assert len(cache) == 2
    assert cache.peek("a") is None
    assert cache.peek("b") == "b"
    assert cache.peek("c") == "c"


def test_cancelled_waiter_does_not_cancel_shared_fetch():
    cache = RequestCoalescingCache()

    async def scenario():
        started = asyncio.Event()
        release = asyncio.Event()

        async def fetch():
            started.set()
            await release.wait()
            return 42

        first = asyncio.ensure_future(cache.get("k", 60, fetch))
        second = asyncio.ensure_future(cache.get("k", 60, fetch))
        await started.wait()
        first.cancel()
        release.set()
        assert await second == 42
        with pytest.raises(asyncio.CancelledError):
            await first

    asyncio.run(scenario())
    assert cache.peek("k") == 42


def test_invalidate_and_clear():
    cache = RequestCoalescingCache()
    asyncio.run(cache.get("a", 60, CountingFetcher(value=1, delay_s=0)))
    asyncio.run(cache.get("b", 60, CountingFetcher(value=2, delay_s=0)))
    cache.invalidate("a")
    assert cache.peek("a") is None
    assert cache.peek("b") == 2
    cache.clear()
    assert len(cache) == 0
