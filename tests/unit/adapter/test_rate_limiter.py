"""Unit tests for TokenBucketRateLimiter"""

import asyncio
import pytest

from src.adapter.services.rate_limiter import TokenBucketRateLimiter


class FakeClock:
    """Manual clock; sleeping advances time"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.mark.asyncio
class TestTokenBucketRateLimiter:
    async def test_burst_up_to_capacity_does_not_wait(self, clock):
        limiter = TokenBucketRateLimiter(capacity=3, refill_interval=1.0, clock=clock, sleep=clock.sleep)

        for _ in range(3):
            await limiter.acquire()

        assert clock.sleeps == []
        assert limiter.available == 0

    async def test_empty_bucket_waits_for_refill(self, clock):
        limiter = TokenBucketRateLimiter(capacity=2, refill_interval=1.0, clock=clock, sleep=clock.sleep)
        await limiter.acquire()
        await limiter.acquire()
        clock.now = 0.25

        await limiter.acquire()

        assert clock.sleeps == [pytest.approx(0.75)]
        assert limiter.available == 1

    async def test_bucket_refills_to_capacity_not_beyond(self, clock):
        limiter = TokenBucketRateLimiter(capacity=2, refill_interval=1.0, clock=clock, sleep=clock.sleep)
        await limiter.acquire()
        clock.now = 5.5

        assert limiter.available == 2

    async def test_waiters_are_served_in_order(self, clock):
        limiter = TokenBucketRateLimiter(capacity=1, refill_interval=1.0, clock=clock, sleep=clock.sleep)
        served = []

        async def take(name):
            await limiter.acquire()
            served.append(name)

        await asyncio.gather(take("a"), take("b"), take("c"))

        assert served == ["a", "b", "c"]
        assert len(clock.sleeps) == 2


class TestConfiguration:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(capacity=0)

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(refill_interval=0)
