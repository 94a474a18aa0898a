"""
In-process implementation of the result cache

TTL cache keyed by query shape, read through an injectable Clock
"""

import asyncio
import contextlib
import logging
from collections import OrderedDict

from core.errors import CacheCorruptionError
from core.interfaces.cache import BaseResultCache
from core.models.cache import CacheEntry, CachedPayload
from core.utils.clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)


class InMemoryResultCache(BaseResultCache):
    """
    In-memory result cache

    Features:
    - Default TTL (300s) and reference TTL (1800s) per entry
    - Lazy expiry on read plus a periodic sweep task (every 60s)
    - Bounded size: expired entries are swept first, then the
      oldest-inserted entry is evicted
    - Shape check on read: a corrupt payload is evicted and reported as a miss
    """

    def __init__(
        self,
        default_ttl: float = 300,
        reference_ttl: float = 1800,
        sweep_interval: float = 60,
        max_entries: int = 512,
        clock: Clock = SYSTEM_CLOCK,
    ):
        if default_ttl <= 0 or reference_ttl <= 0:
            raise ValueError("Cache TTLs must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self.default_ttl = default_ttl
        self.reference_ttl = reference_ttl
        self.sweep_interval = sweep_interval
        self.max_entries = max_entries
        self.clock = clock

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._sweep_task: asyncio.Task | None = None

        # Stats
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    async def start(self) -> None:
        """Spawn the periodic sweep task"""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.info(f"✓ Result cache started (sweep every {self.sweep_interval}s)")

    async def get(self, key: str) -> CachedPayload | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if entry.is_expired(self.clock.now()):
            del self._entries[key]
            self.misses += 1
            return None

        if not entry.has_valid_shape():
            del self._entries[key]
            self.misses += 1
            error = CacheCorruptionError(key, f"unexpected payload type {type(entry.payload).__name__}")
            logger.warning(f"⚠️ {error.message}, evicted")
            return None

        self.hits += 1
        return entry.payload

    async def set(
        self,
        key: str,
        payload: CachedPayload,
        ttl: float | None = None,
        reference: bool = False,
    ) -> bool:
        if ttl is None:
            ttl = self.reference_ttl if reference else self.default_ttl

        # Replace wholesale; re-inserting moves the key to the newest position
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, payload=payload, created_at=self.clock.now(), ttl=ttl)
        self._enforce_bound()
        return True

    async def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for k in keys:
            del self._entries[k]
        if keys:
            logger.debug(f"Invalidated {len(keys)} entries with prefix {prefix}")
        return len(keys)

    async def clear(self) -> None:
        self._entries.clear()

    async def close(self) -> None:
        """Cancel the sweep task and drop all entries"""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        self._entries.clear()
        logger.info("✓ Result cache closed")

    def sweep(self) -> int:
        """
        Remove every expired entry

        Returns:
            Number of entries removed
        """
        now = self.clock.now()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, int]:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

    def _enforce_bound(self) -> None:
        if len(self._entries) <= self.max_entries:
            return

        self.sweep()
        while len(self._entries) > self.max_entries:
            key, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug(f"Evicted oldest cache entry {key}")

    async def _sweep_loop(self) -> None:
        while True:
            await self.clock.sleep(self.sweep_interval)
            removed = self.sweep()
            if removed:
                logger.debug(f"Swept {removed} expired cache entries")
