"""
Unit tests for InMemoryResultCache

Tests TTL expiry (driven by FakeClock), bound enforcement, prefix
invalidation, shape check and the sweep task
"""

import pytest

from core.models.indicators import QueryResult
from core.models.market_data import InstrumentInfo, Period
from providers.memory.result_cache import InMemoryResultCache
from tests.fakes import FakeClock


def result(instrument: str = "600000") -> QueryResult:
    return QueryResult(instrument=instrument, period=Period.DAY)


@pytest.mark.unit
class TestInMemoryResultCache:
    @pytest.mark.asyncio
    async def test_hit_before_ttl_miss_after(self):
        """Test entry served until its TTL elapses, then treated as absent"""
        clock = FakeClock()
        cache = InMemoryResultCache(default_ttl=300, clock=clock)
        await cache.set("kline:600000:day", result())

        clock.set(299)
        assert await cache.get("kline:600000:day") == result()

        clock.set(300)
        assert await cache.get("kline:600000:day") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_reference_ttl(self):
        clock = FakeClock()
        cache = InMemoryResultCache(default_ttl=300, reference_ttl=1800, clock=clock)
        await cache.set("ref:instrument:600000", InstrumentInfo(code="600000"), reference=True)

        clock.set(1000)
        assert await cache.get("ref:instrument:600000") is not None

        clock.set(1800)
        assert await cache.get("ref:instrument:600000") is None

    @pytest.mark.asyncio
    async def test_explicit_ttl_overrides_default(self):
        clock = FakeClock()
        cache = InMemoryResultCache(clock=clock)
        await cache.set("k", result(), ttl=10)

        clock.set(10)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_set_replaces_entry(self):
        clock = FakeClock()
        cache = InMemoryResultCache(clock=clock)
        await cache.set("k", result("A"))
        clock.set(200)
        await cache.set("k", result("B"))

        clock.set(400)
        cached = await cache.get("k")

        assert cached.instrument == "B"
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_corrupt_payload_evicted_as_miss(self, caplog):
        """Test a payload of the wrong shape is never returned"""
        cache = InMemoryResultCache(clock=FakeClock())
        await cache.set("k", {"bars": "not a result"})

        assert await cache.get("k") is None
        assert len(cache) == 0
        assert "Corrupt cache entry k" in caplog.text

    @pytest.mark.asyncio
    async def test_bound_sweeps_expired_first(self):
        clock = FakeClock()
        cache = InMemoryResultCache(default_ttl=100, max_entries=2, clock=clock)
        await cache.set("old", result(), ttl=10)
        await cache.set("a", result())

        clock.set(50)
        await cache.set("b", result())

        # "old" was expired, so nothing live had to go
        assert await cache.get("a") is not None
        assert await cache.get("b") is not None
        assert cache.evictions == 0

    @pytest.mark.asyncio
    async def test_bound_evicts_oldest(self):
        cache = InMemoryResultCache(max_entries=2, clock=FakeClock())
        await cache.set("a", result())
        await cache.set("b", result())
        await cache.set("c", result())

        assert await cache.get("a") is None
        assert await cache.get("b") is not None
        assert await cache.get("c") is not None
        assert cache.evictions == 1

    @pytest.mark.asyncio
    async def test_invalidate_prefix(self):
        cache = InMemoryResultCache(clock=FakeClock())
        await cache.set("kline:600000:day::", result())
        await cache.set("kline:600000:week::", result())
        await cache.set("kline:000001:day::", result("000001"))

        removed = await cache.invalidate_prefix("kline:600000:")

        assert removed == 2
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_invalidate_single_key(self):
        cache = InMemoryResultCache(clock=FakeClock())
        await cache.set("k", result())

        assert await cache.invalidate("k") is True
        assert await cache.invalidate("k") is False

    @pytest.mark.asyncio
    async def test_sweep_task_runs_on_interval(self):
        """Test the periodic sweep removes expired entries without reads"""
        clock = FakeClock()
        cache = InMemoryResultCache(default_ttl=30, sweep_interval=60, clock=clock)
        await cache.start()
        await cache.set("k", result())

        await clock.advance(60)

        assert len(cache) == 0
        await cache.close()

    @pytest.mark.asyncio
    async def test_stats(self):
        cache = InMemoryResultCache(clock=FakeClock())
        await cache.set("k", result())
        await cache.get("k")
        await cache.get("missing")

        stats = cache.get_stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["entries"] == 1

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            InMemoryResultCache(default_ttl=0)
        with pytest.raises(ValueError):
            InMemoryResultCache(max_entries=0)
