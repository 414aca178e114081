"""Fetches, parses and caches one documentation page."""

from collections.abc import Callable

import structlog

from .cache import CacheStore
from .core.protocols import Fetcher
from .extract import extract_page
from .links import extract_links
from .models import Page

logger = structlog.get_logger(__name__)

PAGE_CACHE_TTL = 30 * 60

LinkExtractor = Callable[[str, str, str], list[str]]
PageParser = Callable[[str, str], tuple[str, str]]


class PageFetcher:
    """Cache lookup, then a guarded network fetch, then parse and cache.

    ``fetcher`` is expected to be the fully composed resilience stack; this
    class adds no retry or pacing of its own.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        cache: CacheStore | None = None,
        page_ttl: float = PAGE_CACHE_TTL,
        link_extractor: LinkExtractor = extract_links,
        parser: PageParser = extract_page,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.page_ttl = page_ttl
        self.link_extractor = link_extractor
        self.parser = parser

    @staticmethod
    def cache_key(url: str) -> str:
        return f"page:{url}"

    async def fetch_page(self, url: str, depth: int, scope_url: str) -> Page:
        """Return the page at ``url`` discovered at ``depth``.

        Links are restricted to pages under ``scope_url``.
        """
        if self.cache is not None:
            cached = await self.cache.get(self.cache_key(url))
            if cached is not None:
                try:
                    page = Page.from_dict(cached)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("page_cache_entry_invalid", url=url, error=str(e))
                else:
                    logger.debug("page_cache_hit", url=url, depth=depth)
                    return page.at_depth(depth)

        logger.debug("page_fetch", url=url, depth=depth)
        response = await self.fetcher.fetch(url)
        html = response.text

        title, content = self.parser(html, url)
        links = self.link_extractor(html, scope_url, response.url)
        page = Page(url=url, title=title, content=content, depth=depth, links=tuple(links))

        if self.cache is not None:
            await self.cache.set(self.cache_key(url), page.to_dict(), self.page_ttl)
        return page
