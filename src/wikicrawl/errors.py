"""Exception hierarchy for crawl, fetch and cache failures."""

from typing import Any


class WikiCrawlError(Exception):
    """Base error carrying a stable machine-readable code."""

    code = "WIKICRAWL_ERROR"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class ValidationError(WikiCrawlError):
    """Invalid repository reference or URL."""

    code = "VALIDATION_ERROR"


class NetworkError(WikiCrawlError):
    """Base class for failures talking to the upstream."""

    code = "NETWORK_ERROR"
    retryable = False


class TransientNetworkError(NetworkError):
    """Timeout, reset or refused connection."""

    retryable = True


class UpstreamStatusError(NetworkError):
    """The upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str, reason: str = ""):
        message = f"HTTP {status_code} for {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"status_code": status_code, "url": url})
        self.status_code = status_code
        self.url = url

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500 and self.status_code != 429

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code >= 500 or self.status_code == 429


class ContentNotReadyError(NetworkError):
    """The upstream served a placeholder while it is still generating the page."""

    retryable = True


class TaskTimeoutError(WikiCrawlError):
    """A queued task did not settle within its deadline."""

    code = "TASK_TIMEOUT"

    def __init__(self, timeout: float):
        super().__init__(f"Task timed out after {timeout:g}s")
        self.timeout = timeout


class CircuitOpenError(WikiCrawlError):
    """Calls are being rejected until the breaker's reset window elapses."""

    code = "CIRCUIT_OPEN"

    def __init__(self, retry_after: float):
        super().__init__(f"Circuit breaker is OPEN, retry in {retry_after:.1f}s")
        self.retry_after = retry_after


class CacheIOError(WikiCrawlError):
    """Reading or writing a persisted cache entry failed."""

    code = "CACHE_IO_ERROR"


class ContentError(WikiCrawlError):
    """The crawl produced nothing worth returning."""

    code = "CONTENT_ERROR"
