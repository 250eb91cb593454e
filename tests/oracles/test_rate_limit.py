"""Tests for the async token bucket."""

import asyncio

import pytest

from lexispine.oracles.rate_limit import AsyncTokenBucket


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestAsyncTokenBucket:
    def test_starts_full(self):
        bucket = AsyncTokenBucket(rate=2, capacity=4, clock=FakeClock())
        assert bucket.available_tokens == 4

    @pytest.mark.parametrize("rate,capacity", [(0, 1), (-1, 1), (1, 0.5)])
    def test_rejects_bad_parameters(self, rate, capacity):
        with pytest.raises(ValueError):
            AsyncTokenBucket(rate=rate, capacity=capacity)

    @pytest.mark.asyncio
    async def test_non_blocking_acquire(self):
        bucket = AsyncTokenBucket(rate=1, capacity=2, clock=FakeClock())
        assert await bucket.acquire(block=False)
        assert await bucket.acquire(block=False)
        assert not await bucket.acquire(block=False)

    @pytest.mark.asyncio
    async def test_refills_over_time(self):
        clock = FakeClock()
        bucket = AsyncTokenBucket(rate=2, capacity=2, clock=clock)
        await bucket.acquire(2)
        assert bucket.get_wait_time() == pytest.approx(0.5)
        clock.now = 0.5
        assert bucket.available_tokens == pytest.approx(1)
        clock.now = 10
        assert bucket.available_tokens == 2

    @pytest.mark.asyncio
    async def test_more_than_capacity(self):
        bucket = AsyncTokenBucket(rate=1, capacity=1)
        with pytest.raises(ValueError):
            await bucket.acquire(2)

    @pytest.mark.asyncio
    async def test_blocking_acquire_waits(self):
        bucket = AsyncTokenBucket(rate=50, capacity=1)
        await bucket.acquire()
        loop = asyncio.get_running_loop()
        started = loop.time()
        await bucket.acquire()
        assert loop.time() - started >= 0.01
