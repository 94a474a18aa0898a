"""
Redis implementation of the result cache

Shares computed results across processes with server-side TTL
"""

import json
import logging
import math

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from config.settings import get_settings
from core.errors import CacheCorruptionError
from core.interfaces.cache import BaseResultCache
from core.models.cache import PAYLOAD_TYPES, CachedPayload
from core.utils.cache_keys import KEY_PREFIX, REFERENCE_PREFIX

logger = logging.getLogger(__name__)


class RedisResultCache(BaseResultCache):
    """
    Redis implementation

    Features:
    - Server-side expiry (SET ... EX ttl)
    - Tagged JSON payloads validated with pydantic on read
    - Prefix invalidation via SCAN (non-blocking)
    """

    def __init__(
        self,
        url: str | None = None,
        default_ttl: float | None = None,
        reference_ttl: float | None = None,
        client: Redis | None = None,
    ):
        self.settings = get_settings()
        self.url = url or self.settings.redis_url
        self.default_ttl = default_ttl or self.settings.CACHE_DEFAULT_TTL_SECONDS
        self.reference_ttl = reference_ttl or self.settings.CACHE_REFERENCE_TTL_SECONDS
        self.client: Redis | None = client

    async def start(self) -> None:
        """Connect to Redis"""
        try:
            if self.client is None:
                self.client = Redis.from_url(self.url, decode_responses=True)
            # Test connection
            await self.client.ping()
            logger.info(
                f"✓ Connected to Redis: {self.settings.REDIS_HOST}:{self.settings.REDIS_PORT}"
            )
        except Exception as e:
            logger.error(f"✗ Failed to connect to Redis: {e}")
            raise

    async def get(self, key: str) -> CachedPayload | None:
        """Get payload by key; corrupt entries and Redis errors are reported as a miss"""
        if not self.client:
            raise RuntimeError("Redis client not connected")

        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.error(f"✗ Redis GET error, treating {key} as a miss: {e}")
            return None

        if raw is None:
            return None

        try:
            return self._decode(key, raw)
        except CacheCorruptionError as e:
            logger.warning(f"⚠️ {e.message}, evicted")
            await self.client.delete(key)
            return None

    async def set(
        self,
        key: str,
        payload: CachedPayload,
        ttl: float | None = None,
        reference: bool = False,
    ) -> bool:
        """Store payload with EX = ttl (rounded up to whole seconds); False if Redis fails"""
        if not self.client:
            raise RuntimeError("Redis client not connected")

        if ttl is None:
            ttl = self.reference_ttl if reference else self.default_ttl

        try:
            result = await self.client.set(key, self._encode(payload), ex=max(1, math.ceil(ttl)))
            return bool(result)
        except RedisError as e:
            logger.error(f"✗ Redis SET error, {key} not cached: {e}")
            return False

    async def invalidate(self, key: str) -> bool:
        if not self.client:
            raise RuntimeError("Redis client not connected")

        try:
            return await self.client.delete(key) > 0
        except Exception as e:
            logger.error(f"✗ Redis DELETE error: {e}")
            raise

    async def invalidate_prefix(self, prefix: str) -> int:
        if not self.client:
            raise RuntimeError("Redis client not connected")

        keys = [key async for key in self.client.scan_iter(match=f"{prefix}*")]
        if not keys:
            return 0

        try:
            return await self.client.delete(*keys)
        except Exception as e:
            logger.error(f"✗ Redis DELETE error: {e}")
            raise

    async def clear(self) -> None:
        """Remove every result and reference key (never FLUSHDB)"""
        await self.invalidate_prefix(f"{KEY_PREFIX}:")
        await self.invalidate_prefix(f"{REFERENCE_PREFIX}:")

    async def close(self) -> None:
        """Close connection"""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("✓ Redis connection closed")

    @staticmethod
    def _encode(payload: CachedPayload) -> str:
        for tag, model in PAYLOAD_TYPES.items():
            if isinstance(payload, model):
                return json.dumps({"type": tag, "data": payload.model_dump(mode="json")})
        raise TypeError(f"Unsupported cache payload: {type(payload).__name__}")

    @staticmethod
    def _decode(key: str, raw: str) -> CachedPayload:
        try:
            envelope = json.loads(raw)
            model = PAYLOAD_TYPES[envelope["type"]]
            return model.model_validate(envelope["data"])
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise CacheCorruptionError(key, str(e)) from e
