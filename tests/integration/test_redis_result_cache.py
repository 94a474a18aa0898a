"""
Integration test for the Redis result cache (TIER 2)

Verifies payloads survive a real round trip through Redis and that
instrument invalidation only touches that instrument's keys.
"""

from datetime import date

import pytest

from core.models.indicators import IndicatorKind, IndicatorPoint, IndicatorSeries, QueryResult
from core.models.market_data import Bar, InstrumentInfo, Period
from core.utils.cache_keys import build_query_key, instrument_prefix, reference_key


def weekly_result(instrument: str) -> QueryResult:
    return QueryResult(
        instrument=instrument,
        period=Period.WEEK,
        bars=(Bar(time=date(2024, 1, 5), open=10, high=11, low=9, close=10.5, volume=500),),
        indicators={
            "sma5": IndicatorSeries(
                id="sma5",
                kind=IndicatorKind.SMA,
                points=(IndicatorPoint(time=date(2024, 1, 5), value=10.5),),
            )
        },
    )


@pytest.mark.integration
async def test_query_result_round_trip(redis_cache):
    key = build_query_key("600000", Period.WEEK, None, [])
    result = weekly_result("600000")

    assert await redis_cache.set(key, result)

    assert await redis_cache.get(key) == result
    assert await redis_cache.client.ttl(key) <= 300


@pytest.mark.integration
async def test_reference_ttl(redis_cache):
    key = reference_key("info", "600000")

    await redis_cache.set(key, InstrumentInfo(code="600000", sector="Banking"), reference=True)

    assert (await redis_cache.get(key)).sector == "Banking"
    assert 300 < await redis_cache.client.ttl(key) <= 1800


@pytest.mark.integration
async def test_invalidate_instrument(redis_cache):
    keep = build_query_key("000001", Period.WEEK, None, [])
    drop = build_query_key("600000", Period.WEEK, None, [])
    await redis_cache.set(keep, weekly_result("000001"))
    await redis_cache.set(drop, weekly_result("600000"))

    removed = await redis_cache.invalidate_prefix(instrument_prefix("600000"))

    assert removed == 1
    assert await redis_cache.get(drop) is None
    assert await redis_cache.get(keep) is not None


@pytest.mark.integration
async def test_corrupt_entry_is_evicted(redis_cache):
    key = build_query_key("600000", Period.MONTH, None, [])
    await redis_cache.client.set(key, "{not json")

    assert await redis_cache.get(key) is None
    assert await redis_cache.client.exists(key) == 0
