"""Core crawler components."""

from .circuit_breaker import CircuitBreaker, CircuitState
from .fetcher import HttpFetcher
from .guarded import (
    CircuitBreakerFetcher,
    RateLimitedFetcher,
    ReadinessCheckingFetcher,
    RetryingFetcher,
    build_guarded_fetcher,
    is_upstream_failure,
)
from .protocols import Fetcher, Response
from .queue import ConcurrencyQueue, TaskOutcome, process_concurrently, process_concurrently_settled
from .rate_limiter import RateLimiter
from .retry import (
    RetryExecutor,
    RetryPolicy,
    always,
    network_and_server_errors,
    never,
    retry,
    temporary_errors,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerFetcher",
    "CircuitState",
    "ConcurrencyQueue",
    "Fetcher",
    "HttpFetcher",
    "RateLimitedFetcher",
    "RateLimiter",
    "ReadinessCheckingFetcher",
    "Response",
    "RetryExecutor",
    "RetryPolicy",
    "RetryingFetcher",
    "TaskOutcome",
    "always",
    "build_guarded_fetcher",
    "is_upstream_failure",
    "network_and_server_errors",
    "never",
    "process_concurrently",
    "process_concurrently_settled",
    "retry",
    "temporary_errors",
]
