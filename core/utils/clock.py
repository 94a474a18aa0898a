"""
Clock abstraction

Cache TTLs and stream backoff/keepalive read time and sleep through a
Clock so tests can drive them without real timers.
"""

import asyncio
import time


class Clock:
    """Monotonic wall clock backed by asyncio.sleep"""

    def now(self) -> float:
        """Current reading in seconds (monotonic)"""
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


SYSTEM_CLOCK = Clock()
