"""
Test suite for the RugSentry scan cache and single-flight deduplicator
"""

import asyncio

import pytest

from rugsentry.core.cache import ScanCache, make_key
from rugsentry.core.model import Target


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ScanCache(ttl=60, clock=clock)


@pytest.fixture
def key():
    return ("ethereum", "0x" + "ab" * 20, "standard")


def counting_factory(result="report", delay=0.0, error=None):
    calls = []

    async def factory():
        calls.append(1)
        if delay:
            await asyncio.sleep(delay)
        if error is not None:
            raise error
        return result

    return factory, calls


class TestCacheKey:
    """Test cache key normalisation"""

    def test_evm_address_case_folded(self):
        lower = Target.create("ethereum", "0x" + "ab" * 20)
        upper = Target.create("ethereum", "0x" + "AB" * 20)
        assert make_key(lower, "standard") == make_key(upper, "standard")

    def test_base58_address_case_sensitive(self):
        a = Target.create("solana", "RugPu11Mint8xVq3kZt7YhWn2JcDfE5gHsLpQrTuV9")
        b = Target.create("solana", "rugPu11Mint8xVq3kZt7YhWn2JcDfE5gHsLpQrTuV9")
        assert make_key(a, "standard") != make_key(b, "standard")

    def test_profile_part_of_key(self, eth_target):
        assert make_key(eth_target, "quick") != make_key(eth_target, "deep")


class TestScanCache:
    """Test TTL expiry and in-flight joining"""

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            ScanCache(ttl=0)

    @pytest.mark.asyncio
    async def test_hit_within_ttl(self, cache, clock, key):
        factory, calls = counting_factory()

        assert await cache.get_or_run(key, factory) == "report"
        clock.advance(59)
        assert await cache.get_or_run(key, factory) == "report"

        assert len(calls) == 1
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    @pytest.mark.asyncio
    async def test_expired_entry_reruns(self, cache, clock, key):
        factory, calls = counting_factory()

        await cache.get_or_run(key, factory)
        clock.advance(60)
        assert cache.get(key) is None
        assert len(cache) == 0

        await cache.get_or_run(key, factory)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_execution(self, cache, key):
        factory, calls = counting_factory(delay=0.05)

        results = await asyncio.gather(*(cache.get_or_run(key, factory) for _ in range(10)))

        assert results == ["report"] * 10
        assert len(calls) == 1
        assert cache.stats() == {"entries": 1, "inflight": 0, "hits": 0, "misses": 1, "joins": 9}

    @pytest.mark.asyncio
    async def test_inflight_state_visible(self, cache, key):
        release = asyncio.Event()

        async def factory():
            await release.wait()
            return "report"

        task = asyncio.ensure_future(cache.get_or_run(key, factory))
        await asyncio.sleep(0)
        assert cache.is_inflight(key)
        assert cache.get(key) is None

        release.set()
        assert await task == "report"
        assert not cache.is_inflight(key)
        assert cache.get(key) == "report"

    @pytest.mark.asyncio
    async def test_failure_propagates_and_is_not_cached(self, cache, key):
        factory, calls = counting_factory(delay=0.02, error=RuntimeError("boom"))

        results = await asyncio.gather(
            cache.get_or_run(key, factory),
            cache.get_or_run(key, factory),
            return_exceptions=True,
        )

        assert all(isinstance(r, RuntimeError) for r in results)
        assert len(calls) == 1
        assert len(cache) == 0
        assert not cache.is_inflight(key)

        ok_factory, ok_calls = counting_factory()
        assert await cache.get_or_run(key, ok_factory) == "report"
        assert len(ok_calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_run(self, cache, key):
        release = asyncio.Event()

        async def factory():
            await release.wait()
            return "report"

        first = asyncio.ensure_future(cache.get_or_run(key, factory))
        second = asyncio.ensure_future(cache.get_or_run(key, factory))
        await asyncio.sleep(0)

        first.cancel()
        release.set()

        assert await second == "report"
        with pytest.raises(asyncio.CancelledError):
            await first
        assert cache.get(key) == "report"

    @pytest.mark.asyncio
    async def test_last_cancelled_caller_cancels_shared_run(self, cache, key):
        started, cancelled = asyncio.Event(), asyncio.Event()

        async def factory():
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return "report"

        first = asyncio.ensure_future(cache.get_or_run(key, factory))
        second = asyncio.ensure_future(cache.get_or_run(key, factory))
        await asyncio.wait_for(started.wait(), timeout=1)

        first.cancel()
        await asyncio.sleep(0.01)
        assert not cancelled.is_set()
        assert cache.is_inflight(key)

        second.cancel()
        await asyncio.wait_for(cancelled.wait(), timeout=1)
        for caller in (first, second):
            with pytest.raises(asyncio.CancelledError):
                await caller
        assert not cache.is_inflight(key)
        assert len(cache) == 0

        factory_after, calls = counting_factory()
        assert await cache.get_or_run(key, factory_after) == "report"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_distinct_keys_run_independently(self, cache):
        factory, calls = counting_factory()
        await cache.get_or_run(("ethereum", "a", "standard"), factory)
        await cache.get_or_run(("ethereum", "a", "deep"), factory)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self, cache, key):
        factory, _ = counting_factory()
        await cache.get_or_run(key, factory)

        assert cache.invalidate(key) is True
        assert cache.invalidate(key) is False

        await cache.get_or_run(key, factory)
        cache.clear()
        assert len(cache) == 0
