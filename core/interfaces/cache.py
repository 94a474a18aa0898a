from abc import ABC, abstractmethod

from core.models.cache import CachedPayload


class BaseResultCache(ABC):
    """
    Abstract interface for the query result cache

    Entries are immutable payloads (QueryResult or InstrumentInfo)
    replaced wholesale (last writer wins per key). Nothing is returned
    past its TTL.

    Implementations:
    - InMemoryResultCache (providers/memory/result_cache.py)
    - RedisResultCache (providers/opensource/redis_client.py)
    """

    @abstractmethod
    async def start(self) -> None:
        """Start background maintenance (connection, expiry sweep)"""

    @abstractmethod
    async def get(self, key: str) -> CachedPayload | None:
        """
        Get payload by key

        Args:
            key: Cache key (see core/utils/cache_keys.py)

        Returns:
            Payload, or None if missing, expired or corrupt
        """

    @abstractmethod
    async def set(
        self,
        key: str,
        payload: CachedPayload,
        ttl: float | None = None,
        reference: bool = False,
    ) -> bool:
        """
        Store payload

        Args:
            key: Cache key
            payload: Result to store
            ttl: Explicit TTL in seconds (overrides the defaults)
            reference: Use the long reference-data TTL instead of the default

        Returns:
            True if stored
        """

    @abstractmethod
    async def invalidate(self, key: str) -> bool:
        """
        Remove one key

        Returns:
            True if an entry was removed
        """

    @abstractmethod
    async def invalidate_prefix(self, prefix: str) -> int:
        """
        Remove every key starting with prefix

        Returns:
            Number of entries removed
        """

    @abstractmethod
    async def clear(self) -> None:
        """Remove all entries"""

    @abstractmethod
    async def close(self) -> None:
        """Stop background maintenance and release resources"""
