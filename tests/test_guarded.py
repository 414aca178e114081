"""Tests for the composed resilience stack."""

import pytest
from conftest import ROOT_URL, FakeClock, StubFetcher, no_sleep, wiki_html

from wikicrawl.core import (
    CircuitBreaker,
    CircuitState,
    RateLimiter,
    Response,
    RetryExecutor,
    RetryPolicy,
    build_guarded_fetcher,
    is_upstream_failure,
    network_and_server_errors,
)
from wikicrawl.errors import (
    CircuitOpenError,
    ContentNotReadyError,
    TransientNetworkError,
    UpstreamStatusError,
)

LOADING_HTML = "<html><body><div>Loading...</div></body></html>"


class ScriptedFetcher:
    """Plays back a fixed sequence of errors and HTML bodies."""

    def __init__(self, script: list):
        self.script = list(script)
        self.calls = 0

    async def fetch(self, url: str) -> Response:
        self.calls += 1
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return Response(url=url, status=200, content=step.encode(), headers={})


def build(network, clock=None, max_attempts=3, failure_threshold=5, max_tokens=100):
    clock = clock or FakeClock()
    limiter = RateLimiter(max_tokens=max_tokens, refill_rate=1, clock=clock)
    breaker = CircuitBreaker(
        failure_threshold=failure_threshold,
        reset_timeout=60.0,
        is_failure=is_upstream_failure,
        clock=clock,
    )
    executor = RetryExecutor(
        RetryPolicy(max_attempts=max_attempts, jitter=False, retry_condition=network_and_server_errors),
        sleep=no_sleep,
    )
    return build_guarded_fetcher(network, limiter, executor, breaker), limiter, breaker


class TestGuardedFetcher:
    async def test_success_passes_through(self):
        """A healthy upstream is fetched once."""
        network = StubFetcher({ROOT_URL: wiki_html("Overview")})
        fetcher, _, breaker = build(network)

        response = await fetcher.fetch(ROOT_URL)

        assert "Overview" in response.text
        assert network.calls == [ROOT_URL]
        assert breaker.state is CircuitState.CLOSED

    async def test_retries_then_succeeds(self):
        """Transient failures are retried inside one breaker call."""
        network = ScriptedFetcher([
            TransientNetworkError("reset"),
            UpstreamStatusError(503, ROOT_URL),
            wiki_html("Overview"),
        ])
        fetcher, _, breaker = build(network)

        response = await fetcher.fetch(ROOT_URL)

        assert "Overview" in response.text
        assert network.calls == 3
        assert breaker.get_stats()["failure_count"] == 0

    async def test_exhausted_retries_count_as_one_failure(self):
        """The breaker sees one failure per fully retried request."""
        network = ScriptedFetcher([TransientNetworkError("down")])
        fetcher, _, breaker = build(network, max_attempts=3)

        with pytest.raises(TransientNetworkError):
            await fetcher.fetch(ROOT_URL)

        assert network.calls == 3
        assert breaker.get_stats()["failure_count"] == 1

    async def test_every_attempt_takes_a_token(self):
        """Retries are paced by the rate limiter too."""
        network = ScriptedFetcher([TransientNetworkError("down")])
        fetcher, limiter, _ = build(network, max_attempts=3, max_tokens=10)

        with pytest.raises(TransientNetworkError):
            await fetcher.fetch(ROOT_URL)

        assert limiter.get_tokens() == pytest.approx(7.0)

    async def test_loading_placeholder_is_retried(self):
        """A "still generating" page is retried until real content arrives."""
        network = ScriptedFetcher([LOADING_HTML, wiki_html("Overview")])
        fetcher, _, _ = build(network)

        response = await fetcher.fetch(ROOT_URL)

        assert "Overview" in response.text
        assert network.calls == 2

    async def test_loading_placeholder_exhausts(self):
        """A page that never finishes generating surfaces ContentNotReadyError."""
        network = ScriptedFetcher([LOADING_HTML])
        fetcher, _, _ = build(network, max_attempts=2)

        with pytest.raises(ContentNotReadyError):
            await fetcher.fetch(ROOT_URL)
        assert network.calls == 2

    async def test_client_error_not_retried_or_counted(self):
        """A 404 fails immediately and leaves the breaker closed."""
        network = ScriptedFetcher([UpstreamStatusError(404, ROOT_URL)])
        fetcher, _, breaker = build(network, failure_threshold=1)

        with pytest.raises(UpstreamStatusError):
            await fetcher.fetch(ROOT_URL)

        assert network.calls == 1
        assert breaker.state is CircuitState.CLOSED

    async def test_open_breaker_skips_network(self):
        """Once open, requests fail fast without touching the network."""
        network = ScriptedFetcher([UpstreamStatusError(500, ROOT_URL)])
        fetcher, _, breaker = build(network, max_attempts=1, failure_threshold=2)

        for _ in range(2):
            with pytest.raises(UpstreamStatusError):
                await fetcher.fetch(ROOT_URL)
        assert breaker.state is CircuitState.OPEN

        with pytest.raises(CircuitOpenError):
            await fetcher.fetch(ROOT_URL)
        assert network.calls == 2


class TestIsUpstreamFailure:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (UpstreamStatusError(404, ROOT_URL), False),
            (UpstreamStatusError(403, ROOT_URL), False),
            (UpstreamStatusError(429, ROOT_URL), True),
            (UpstreamStatusError(502, ROOT_URL), True),
            (TransientNetworkError("reset"), True),
        ],
    )
    def test_classification(self, error, expected):
        """Only upstream health problems count against the breaker."""
        assert is_upstream_failure(error) is expected
