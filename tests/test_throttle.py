"""Tests for the broadcast token bucket."""

import pytest

from omnichat.campaigns.throttle import TokenBucket


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestTokenBucket:
    async def test_burst_is_free(self, clock):
        bucket = TokenBucket(rate=10, capacity=5, clock=clock, sleep=clock.sleep)

        for _ in range(5):
            assert await bucket.acquire() == 0.0
        assert clock.sleeps == []

    async def test_waits_for_refill_when_empty(self, clock):
        bucket = TokenBucket(rate=10, capacity=2, clock=clock, sleep=clock.sleep)
        await bucket.acquire()
        await bucket.acquire()

        waited = await bucket.acquire()

        assert waited == pytest.approx(0.1)
        assert clock.sleeps == [pytest.approx(0.1)]

    async def test_refill_is_capped_at_capacity(self, clock):
        bucket = TokenBucket(rate=10, capacity=3, clock=clock, sleep=clock.sleep)
        await bucket.acquire()
        clock.now += 100

        assert bucket.tokens == 3

    async def test_sustained_rate(self, clock):
        bucket = TokenBucket(rate=50, capacity=1, clock=clock, sleep=clock.sleep)

        for _ in range(51):
            await bucket.acquire()

        # First token is free, the next 50 take a second at 50/s
        assert clock.now == pytest.approx(1.0)

    async def test_one_sleep_per_wait_despite_clock_drift(self):
        drifting = FakeClock()

        async def short_sleep(seconds: float) -> None:
            drifting.sleeps.append(seconds)
            drifting.now += seconds * (1 - 1e-12)

        bucket = TokenBucket(rate=50, capacity=1, clock=drifting, sleep=short_sleep)

        for _ in range(5):
            await bucket.acquire()

        assert len(drifting.sleeps) == 4
        assert bucket.tokens >= 0.0

    @pytest.mark.parametrize("rate,capacity", [(0, 1), (-1, 1), (1, 0)])
    def test_invalid_configuration(self, rate, capacity):
        with pytest.raises(ValueError):
            TokenBucket(rate=rate, capacity=capacity)

    async def test_cannot_acquire_more_than_capacity(self, clock):
        bucket = TokenBucket(rate=1, capacity=2, clock=clock, sleep=clock.sleep)
        with pytest.raises(ValueError):
            await bucket.acquire(3)
