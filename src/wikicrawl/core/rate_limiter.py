"""Token-bucket rate limiter."""

import asyncio
import time
from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)


class RateLimiter:
    """Token bucket refilled lazily from elapsed time.

    ``max_tokens`` bounds the burst size and ``refill_rate`` is in tokens
    per second. Waiters are served one at a time, in arrival order.
    """

    def __init__(
        self,
        max_tokens: float = 10,
        refill_rate: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_tokens <= 0 or refill_rate <= 0:
            raise ValueError("max_tokens and refill_rate must be positive")
        self.max_tokens = float(max_tokens)
        self.refill_rate = float(refill_rate)
        self._clock = clock
        self._tokens = float(max_tokens)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.max_tokens, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    def _check(self, tokens: float) -> None:
        if tokens <= 0:
            raise ValueError("tokens must be positive")
        if tokens > self.max_tokens:
            raise ValueError(f"cannot acquire {tokens} tokens from a bucket of {self.max_tokens:g}")

    async def acquire(self, tokens: float = 1) -> float:
        """Wait until ``tokens`` are available and take them.

        Returns the number of seconds spent waiting.
        """
        self._check(tokens)
        async with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return 0.0

            wait_time = (tokens - self._tokens) / self.refill_rate
            logger.debug("rate_limit_wait", wait=round(wait_time, 3))
            await asyncio.sleep(wait_time)

            self._refill()
            self._tokens -= tokens
            return wait_time

    def try_acquire(self, tokens: float = 1) -> bool:
        """Take ``tokens`` if available right now."""
        self._check(tokens)
        self._refill()
        if self._tokens >= tokens:
            self._tokens -= tokens
            return True
        return False

    def get_tokens(self) -> float:
        """Tokens currently available."""
        self._refill()
        return self._tokens
