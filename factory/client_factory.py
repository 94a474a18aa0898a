"""
Client factory - Auto-create collaborators based on configuration

Dependency injection pattern: services depend on interfaces, the
factory picks implementations from settings
"""

import logging

from config.settings import get_settings
from core.interfaces.cache import BaseResultCache
from core.interfaces.market_data import BaseBarSource
from core.interfaces.streaming import BaseFeedTransport
from core.utils.clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)


def create_result_cache(clock: Clock = SYSTEM_CLOCK) -> BaseResultCache:
    """
    Create result cache based on CACHE_BACKEND config

    Returns:
        BaseResultCache: InMemoryResultCache (memory) or RedisResultCache (redis)

    Examples:
        >>> # services.yaml: cache.backend=memory
        >>> cache = create_result_cache()  # Returns InMemoryResultCache
        >>>
        >>> # services.yaml: cache.backend=redis
        >>> cache = create_result_cache()  # Returns RedisResultCache
    """
    settings = get_settings()
    backend = settings.CACHE_BACKEND.lower()

    if backend == "memory":
        from providers.memory.result_cache import InMemoryResultCache

        logger.info("✓ Creating InMemoryResultCache")
        return InMemoryResultCache(
            default_ttl=settings.CACHE_DEFAULT_TTL_SECONDS,
            reference_ttl=settings.CACHE_REFERENCE_TTL_SECONDS,
            sweep_interval=settings.CACHE_SWEEP_INTERVAL_SECONDS,
            max_entries=settings.CACHE_MAX_ENTRIES,
            clock=clock,
        )

    elif backend == "redis":
        from providers.opensource.redis_client import RedisResultCache

        logger.info("✓ Creating RedisResultCache")
        return RedisResultCache()

    else:
        raise ValueError(f"Unsupported cache backend: {backend}. Supported: memory, redis")


def create_bar_source() -> BaseBarSource:
    """
    Create bar source

    Currently always returns HttpBarSource

    Returns:
        BaseBarSource: aiohttp client for the K-line query API
    """
    from providers.http.bar_source import HttpBarSource

    logger.info("Creating HttpBarSource")
    return HttpBarSource()


def create_feed_transport() -> BaseFeedTransport:
    """
    Create live feed transport

    Currently always returns WebsocketFeedTransport
    """
    from providers.websocket.feed import WebsocketFeedTransport

    logger.info("Creating WebsocketFeedTransport")
    return WebsocketFeedTransport()


def create_query_service(clock: Clock = SYSTEM_CLOCK):
    """
    Wire a QueryService from settings

    Example:
        >>> service = create_query_service()
        >>> await service.start()
        >>> result = await service.query("600000", "week")
        >>> await service.close()
    """
    from services.query_service.service import QueryService

    return QueryService(
        bar_source=create_bar_source(),
        cache=create_result_cache(clock),
        transport=create_feed_transport(),
        clock=clock,
    )
