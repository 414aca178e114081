"""
Circuit breaker guarding calls to the upstream.

Stops calling a failing upstream for ``reset_timeout`` seconds, then probes
it in HALF_OPEN until ``success_threshold`` calls in a row succeed.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

import structlog

from ..errors import CircuitOpenError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Failing, rejecting calls
    HALF_OPEN = "HALF_OPEN"  # Probing for recovery


def count_all(error: BaseException) -> bool:
    return True


class CircuitBreaker:
    """Three-state failure guard shared by every caller of one upstream.

    All state changes happen under a single asyncio lock; the protected
    call itself runs outside it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        success_threshold: int = 3,
        is_failure: Callable[[BaseException], bool] = count_all,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.success_threshold = success_threshold
        self._is_failure = is_failure
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    async def call(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` through the breaker.

        Errors rejected by ``is_failure`` still propagate, but the upstream
        did answer, so they are recorded as successes. Trial calls in HALF_OPEN
        that end in such errors therefore count toward closing the breaker.
        """
        await self._before_call()
        try:
            result = await fn()
        except Exception as e:
            if self._is_failure(e):
                await self._on_failure()
            else:
                await self._on_success()
            raise
        await self._on_success()
        return result

    async def _before_call(self) -> None:
        async with self._lock:
            if self._state is not CircuitState.OPEN:
                return
            elapsed = self._clock() - (self._last_failure_time or 0.0)
            if elapsed > self.reset_timeout:
                logger.info("circuit_half_open")
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
                return
            raise CircuitOpenError(retry_after=self.reset_timeout - elapsed)

    async def _on_success(self) -> None:
        async with self._lock:
            self._failure_count = 0
            if self._state is CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    logger.info("circuit_closed", successes=self._success_count)
                    self._state = CircuitState.CLOSED
                    self._success_count = 0

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state is CircuitState.HALF_OPEN:
                logger.warning("circuit_reopened")
                self._state = CircuitState.OPEN
                self._success_count = 0
            elif self._state is CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                logger.warning("circuit_opened", failures=self._failure_count)
                self._state = CircuitState.OPEN

    def get_stats(self) -> dict[str, Any]:
        """Current state for monitoring."""
        return {
            "state": self._state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "last_failure_time": self._last_failure_time,
        }

    async def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        async with self._lock:
            logger.info("circuit_reset")
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._last_failure_time = None
