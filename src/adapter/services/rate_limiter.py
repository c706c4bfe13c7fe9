"""Token bucket rate limiter

One instance is shared by every outbound generation call in the process.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class TokenBucketRateLimiter:
    """
    Fixed-window token bucket

    The bucket holds ``capacity`` tokens and is refilled to full every
    ``refill_interval`` seconds. Waiters are served in arrival order.
    """

    def __init__(
        self,
        capacity: int = 20,
        refill_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_interval <= 0:
            raise ValueError("refill_interval must be positive")

        self.capacity = capacity
        self.refill_interval = refill_interval
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._window_start = clock()
        self._lock = asyncio.Lock()

    @property
    def available(self) -> int:
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, waiting for the next refill if the bucket is empty"""
        async with self._lock:
            while True:
                self._refill()
                if self._tokens > 0:
                    self._tokens -= 1
                    return

                wait = self._window_start + self.refill_interval - self._clock()
                logger.debug(f"Rate limit reached, waiting {wait:.3f}s for refill")
                await self._sleep(max(wait, 0.0))

    def _refill(self) -> None:
        elapsed = self._clock() - self._window_start
        if elapsed >= self.refill_interval:
            windows = int(elapsed // self.refill_interval)
            self._window_start += windows * self.refill_interval
            self._tokens = self.capacity
