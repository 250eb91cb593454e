"""Async token-bucket limiter shared by every oracle call.

Manifesto:
    Dictionary scrapers and language-model endpoints ban clients that burst.
    A fixed sleep between tokens keeps the average down but does nothing for
    the several oracle calls one token can trigger; the bucket bounds the
    actual call rate while still allowing a short burst.

ARCHITECTURE
────────────
::

    AsyncTokenBucket(rate, capacity)
      ├── acquire(tokens=1, block=True)  ── wait outside the lock, then retry
      ├── get_wait_time(tokens=1)        ── seconds until tokens are available
      └── available_tokens               ── current level after refill

Example::

    limiter = AsyncTokenBucket(rate=5, capacity=5)
    await limiter.acquire()
    answer = await oracle.lookup(word)

Tags:
    lexispine, oracles, rate-limit, token-bucket, asyncio

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class AsyncTokenBucket:
    """Token bucket rate limiter for coroutines.

    Tokens are added at a fixed rate up to capacity. The bucket starts full.

    Attributes:
        rate: Tokens added per second
        capacity: Maximum tokens (burst size)
    """

    rate: float
    capacity: float
    clock: Callable[[], float] = time.monotonic

    _tokens: float = field(default=0.0, init=False)
    _last_update: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self):
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")
        if self.capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {self.capacity}")
        self._tokens = self.capacity
        self._last_update = self.clock()

    def _refill(self) -> None:
        now = self.clock()
        elapsed = now - self._last_update
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._last_update = now

    def _wait_time(self, tokens: int) -> float:
        if self._tokens >= tokens:
            return 0.0
        return (tokens - self._tokens) / self.rate

    async def acquire(self, tokens: int = 1, block: bool = True) -> bool:
        """Take ``tokens`` from the bucket.

        Returns False only when ``block`` is False and the bucket is short.
        """
        if tokens > self.capacity:
            raise ValueError(f"cannot acquire {tokens} tokens from a bucket of {self.capacity}")
        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return True
                if not block:
                    return False
                wait = self._wait_time(tokens)
            # Sleep without holding the lock
            await asyncio.sleep(wait)

    def get_wait_time(self, tokens: int = 1) -> float:
        """Seconds until ``tokens`` are available (0 if available now)."""
        self._refill()
        return self._wait_time(tokens)

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens


__all__ = ["AsyncTokenBucket"]
