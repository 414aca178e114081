"""Fetcher decorators that add pacing, retries and circuit breaking.

Each decorator wraps another Fetcher and is itself a Fetcher. The stack is
always assembled in the same order by ``build_guarded_fetcher``:

    CircuitBreakerFetcher
      -> RetryingFetcher
        -> RateLimitedFetcher
          -> ReadinessCheckingFetcher
            -> network fetcher

so one breaker call covers every retry attempt, and every attempt waits
for a rate-limiter token.
"""

from ..errors import ContentNotReadyError, UpstreamStatusError
from ..extract import contains_loading_indicators
from .circuit_breaker import CircuitBreaker
from .protocols import Fetcher, Response
from .rate_limiter import RateLimiter
from .retry import RetryExecutor


class ReadinessCheckingFetcher:
    """Rejects the upstream's "still generating" placeholder pages."""

    def __init__(self, inner: Fetcher):
        self.inner = inner

    async def fetch(self, url: str) -> Response:
        response = await self.inner.fetch(url)
        if contains_loading_indicators(response.text):
            raise ContentNotReadyError(f"Content for {url} is still being generated", details={"url": url})
        return response


class RateLimitedFetcher:
    """Takes one token from the limiter before each request."""

    def __init__(self, inner: Fetcher, limiter: RateLimiter):
        self.inner = inner
        self.limiter = limiter

    async def fetch(self, url: str) -> Response:
        await self.limiter.acquire()
        return await self.inner.fetch(url)


class RetryingFetcher:
    """Retries the inner fetch according to the executor's policy."""

    def __init__(self, inner: Fetcher, executor: RetryExecutor):
        self.inner = inner
        self.executor = executor

    async def fetch(self, url: str) -> Response:
        return await self.executor.run(lambda: self.inner.fetch(url))


class CircuitBreakerFetcher:
    """Routes the inner fetch through a shared circuit breaker."""

    def __init__(self, inner: Fetcher, breaker: CircuitBreaker):
        self.inner = inner
        self.breaker = breaker

    async def fetch(self, url: str) -> Response:
        return await self.breaker.call(lambda: self.inner.fetch(url))


def is_upstream_failure(error: BaseException) -> bool:
    """Client errors say nothing about upstream health; everything else does."""
    return not (isinstance(error, UpstreamStatusError) and error.is_client_error)


def build_guarded_fetcher(
    network: Fetcher,
    limiter: RateLimiter,
    executor: RetryExecutor,
    breaker: CircuitBreaker,
) -> CircuitBreakerFetcher:
    """Compose the resilience stack around ``network`` in its fixed order."""
    paced = RateLimitedFetcher(ReadinessCheckingFetcher(network), limiter)
    return CircuitBreakerFetcher(RetryingFetcher(paced, executor), breaker)
