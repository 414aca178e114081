"""Tests for the token-bucket rate limiter."""

import time

import pytest

from wikicrawl.core import RateLimiter


class TestAcquire:
    async def test_burst_then_wait(self):
        """Two tokens are free; the third waits for a refill."""
        limiter = RateLimiter(max_tokens=2, refill_rate=10)

        assert await limiter.acquire() == 0.0
        assert await limiter.acquire() == 0.0

        start = time.monotonic()
        waited = await limiter.acquire()
        elapsed = time.monotonic() - start

        assert waited > 0
        assert elapsed >= 0.05

    async def test_paces_sequential_requests(self):
        """With a one-token bucket, requests are spaced by the refill rate."""
        limiter = RateLimiter(max_tokens=1, refill_rate=20)

        start = time.monotonic()
        for _ in range(3):
            await limiter.acquire()
        elapsed = time.monotonic() - start

        # first is free, next two wait ~50ms each
        assert elapsed >= 0.08

    async def test_rejects_oversized_request(self):
        """Asking for more than the bucket holds can never succeed."""
        limiter = RateLimiter(max_tokens=2, refill_rate=1)
        with pytest.raises(ValueError):
            await limiter.acquire(3)


class TestTryAcquire:
    def test_consumes_until_empty(self, clock):
        """try_acquire succeeds while tokens remain."""
        limiter = RateLimiter(max_tokens=2, refill_rate=1, clock=clock)
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

    def test_refills_over_time(self, clock):
        """Tokens come back at refill_rate per second."""
        limiter = RateLimiter(max_tokens=2, refill_rate=1, clock=clock)
        limiter.try_acquire(2)
        assert limiter.try_acquire() is False

        clock.advance(1.0)
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False

    def test_refill_is_capped(self, clock):
        """Idle time never overfills the bucket."""
        limiter = RateLimiter(max_tokens=3, refill_rate=5, clock=clock)
        limiter.try_acquire(3)
        clock.advance(100.0)
        assert limiter.get_tokens() == 3.0

    def test_invalid_configuration(self):
        """Non-positive capacity or rate is rejected."""
        with pytest.raises(ValueError):
            RateLimiter(max_tokens=0, refill_rate=1)
        with pytest.raises(ValueError):
            RateLimiter(max_tokens=1, refill_rate=0)
