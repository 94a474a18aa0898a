"""
Pytest configuration for integration tests

Integration tests talk to a real Redis on localhost. REDIS_TEST_URL
overrides the default; tests are skipped when the server is unreachable.
"""

import os

import pytest

from providers.opensource.redis_client import RedisResultCache

REDIS_TEST_URL = os.getenv("REDIS_TEST_URL", "redis://localhost:6379/15")


@pytest.fixture
async def redis_cache():
    cache = RedisResultCache(url=REDIS_TEST_URL)
    try:
        await cache.start()
    except Exception as e:
        await cache.close()
        pytest.skip(f"Redis not available at {REDIS_TEST_URL}: {e}")

    await cache.clear()
    try:
        yield cache
    finally:
        await cache.clear()
        await cache.close()
