"""Repository documentation retrieval in aggregate or pages mode."""

import time

import structlog

from .cache import CacheStore
from .config import CrawlerSettings
from .core import (
    CircuitBreaker,
    ConcurrencyQueue,
    HttpFetcher,
    RateLimiter,
    RetryExecutor,
    RetryPolicy,
    build_guarded_fetcher,
    is_upstream_failure,
    network_and_server_errors,
)
from .crawl import Crawler
from .models import CrawlResult, Page
from .page_fetcher import PageFetcher
from .urls import RepositoryRef

logger = structlog.get_logger(__name__)

RESULT_CACHE_TTL = 60 * 60
PAGE_SEPARATOR = "\n\n---\n\n"


def aggregate_pages(pages: list[Page]) -> str:
    """Join pages into one markdown document, in discovery order."""
    return PAGE_SEPARATOR.join(f"# {page.title}\n\n{page.content}" for page in pages)


class WikiService:
    """Crawls a repository's wiki, consulting the result cache first."""

    def __init__(
        self,
        crawler: Crawler,
        cache: CacheStore | None = None,
        result_ttl: float = RESULT_CACHE_TTL,
        closers: list | None = None,
    ):
        self.crawler = crawler
        self.cache = cache
        self.result_ttl = result_ttl
        self._closers = closers or []

    async def __aenter__(self) -> "WikiService":
        if self.cache is not None:
            self.cache.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self.cache is not None:
            await self.cache.close()
        for closer in self._closers:
            await closer()

    async def fetch_aggregated(self, repository: RepositoryRef, max_depth: int) -> CrawlResult:
        """All pages joined into a single markdown document."""
        key = f"aggregated:{repository.name}:{max_depth}"

        async def build() -> CrawlResult:
            pages = await self.crawler.crawl(repository.root_url, max_depth)
            return CrawlResult(
                repository=repository.name,
                mode="aggregate",
                content=aggregate_pages(pages),
                page_count=len(pages),
            )

        return await self._cached(key, repository, max_depth, build)

    async def fetch_pages(self, repository: RepositoryRef, max_depth: int) -> CrawlResult:
        """The structured page list."""
        key = f"pages:{repository.name}:{max_depth}"

        async def build() -> CrawlResult:
            pages = await self.crawler.crawl(repository.root_url, max_depth)
            return CrawlResult(
                repository=repository.name,
                mode="pages",
                pages=pages,
                page_count=len(pages),
            )

        return await self._cached(key, repository, max_depth, build)

    async def _cached(self, key, repository, max_depth, build) -> CrawlResult:
        with structlog.contextvars.bound_contextvars(repository=repository.name):
            if self.cache is not None:
                cached = await self.cache.get(key)
                if cached is not None:
                    try:
                        result = CrawlResult.from_dict(cached)
                    except (KeyError, TypeError, ValueError) as e:
                        logger.warning("result_cache_entry_invalid", key=key, error=str(e))
                    else:
                        logger.info("result_cache_hit", mode=result.mode, max_depth=max_depth)
                        return result

            start = time.monotonic()
            result = await build()
            logger.info(
                "crawl_completed",
                mode=result.mode,
                page_count=result.page_count,
                elapsed=round(time.monotonic() - start, 3),
            )

            if self.cache is not None:
                await self.cache.set(key, result.to_dict(), self.result_ttl)
            return result


def build_service(settings: CrawlerSettings) -> WikiService:
    """Wire every component from settings. The only place settings are read."""
    cache = None
    if settings.cache_enabled:
        cache = CacheStore(
            cache_dir=settings.cache_dir,
            default_ttl=settings.cache_default_ttl,
            cleanup_interval=settings.cache_cleanup_interval,
        )

    network = HttpFetcher(
        timeout=settings.timeout,
        user_agent=settings.user_agent,
        max_connections=settings.max_connections,
        max_keepalive_connections=settings.max_keepalive_connections,
    )
    fetcher = build_guarded_fetcher(
        network,
        limiter=RateLimiter(
            max_tokens=settings.rate_limit_tokens,
            refill_rate=settings.rate_limit_refill_rate,
        ),
        executor=RetryExecutor(RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            backoff_factor=settings.retry_backoff_factor,
            jitter=settings.retry_jitter,
            retry_condition=network_and_server_errors,
        )),
        breaker=CircuitBreaker(
            failure_threshold=settings.breaker_failure_threshold,
            reset_timeout=settings.breaker_reset_timeout,
            success_threshold=settings.breaker_success_threshold,
            is_failure=is_upstream_failure,
        ),
    )

    crawler = Crawler(
        page_fetcher=PageFetcher(fetcher, cache=cache, page_ttl=settings.cache_page_ttl),
        queue=ConcurrencyQueue(max_concurrent=settings.max_concurrent, timeout=settings.task_timeout),
        batch_size=settings.batch_size,
        max_pages=settings.max_pages,
    )
    return WikiService(crawler, cache=cache, result_ttl=settings.cache_result_ttl, closers=[network.close])
