"""
Pytest configuration for test suite

Markers:
- unit: Fast unit tests (no external dependencies)
- integration: Integration tests (requires Docker services)
"""

from unittest.mock import MagicMock

import pytest

from tests.fakes import FakeBarSource, FakeClock, FakeTransport


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Fast unit tests (no dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (requires Docker)"
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def bar_source():
    return FakeBarSource()


@pytest.fixture
def mock_settings():
    """Settings with the shipped services.yaml defaults"""
    settings = MagicMock()
    settings.BAR_SOURCE_PAGE_SIZE = 1000
    settings.FEED_WS_URL = "ws://feed.test/realtime"
    settings.STREAM_PING_INTERVAL_SECONDS = 30
    settings.STREAM_CONNECT_TIMEOUT_SECONDS = 5
    settings.STREAM_BASE_DELAY_MS = 1000
    settings.STREAM_MAX_DELAY_MS = 16000
    settings.STREAM_MAX_RECONNECT_ATTEMPTS = 5
    settings.CACHE_DEFAULT_TTL_SECONDS = 300
    settings.CACHE_REFERENCE_TTL_SECONDS = 1800
    settings.CACHE_SWEEP_INTERVAL_SECONDS = 60
    settings.CACHE_MAX_ENTRIES = 512
    settings.DEFAULT_INDICATORS = ["sma5", "sma10", "sma20", "macd"]
    return settings
