"""Retry with exponential backoff and jitter."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from ..errors import ContentNotReadyError, NetworkError, TransientNetworkError, UpstreamStatusError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RetryCondition = Callable[[BaseException], bool]

JITTER_RATIO = 0.25


def network_and_server_errors(error: BaseException) -> bool:
    """Retry transport failures, 5xx/429 responses and not-ready placeholders."""
    if isinstance(error, UpstreamStatusError):
        return error.retryable
    if isinstance(error, (TransientNetworkError, ContentNotReadyError)):
        return True
    return isinstance(error, (asyncio.TimeoutError, ConnectionError))


def temporary_errors(error: BaseException) -> bool:
    """Retry only timeouts, rate limiting and gateway errors."""
    if isinstance(error, UpstreamStatusError):
        return error.status_code in (429, 502, 503, 504)
    if isinstance(error, NetworkError):
        return isinstance(error, TransientNetworkError) and "timeout" in str(error).lower()
    return isinstance(error, asyncio.TimeoutError)


def never(error: BaseException) -> bool:
    return False


def always(error: BaseException) -> bool:
    return True


@dataclass
class RetryPolicy:
    """Backoff parameters. Delays are in seconds."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: bool = True
    retry_condition: RetryCondition = field(default=always)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def compute_delay(self, attempt: int, rng: random.Random | None = None) -> float:
        """Delay to sleep after failed attempt number ``attempt`` (1-based)."""
        delay = min(self.max_delay, self.base_delay * self.backoff_factor ** (attempt - 1))
        if self.jitter:
            uniform = (rng or random).uniform
            delay += delay * JITTER_RATIO * uniform(-1.0, 1.0)
        return max(0.0, delay)

    def wait(self, retry_state: RetryCallState) -> float:
        """tenacity wait strategy backed by compute_delay."""
        return self.compute_delay(retry_state.attempt_number)

    def should_retry(self, error: BaseException) -> bool:
        # Cancellation and interpreter exits are never retried
        return isinstance(error, Exception) and self.retry_condition(error)


def _log_scheduled(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception()
    logger.warning(
        "retry_scheduled",
        attempt=retry_state.attempt_number,
        delay=round(retry_state.next_action.sleep, 3),
        error=str(error),
    )


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``fn`` until it succeeds, attempts run out, or an error is not retryable.

    The last error is re-raised unchanged.
    """
    policy = policy or RetryPolicy()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=policy.wait,
        retry=retry_if_exception(policy.should_retry),
        before_sleep=_log_scheduled,
        reraise=True,
        sleep=sleep,
    )
    attempts = 0

    async def attempt() -> T:
        nonlocal attempts
        attempts += 1
        return await fn()

    try:
        result = await retrying(attempt)
    except Exception as e:
        logger.error(
            "retry_exhausted" if attempts >= policy.max_attempts else "retry_not_retryable",
            attempt=attempts,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    if attempts > 1:
        logger.info("retry_succeeded", attempt=attempts)
    return result


class RetryExecutor:
    """Runs callables under a fixed RetryPolicy."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        return await retry(fn, self.policy, sleep=self._sleep)
