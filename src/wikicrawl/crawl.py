"""Breadth-first crawl of one repository's page tree."""

import structlog

from .core.queue import ConcurrencyQueue
from .errors import ContentError, TaskTimeoutError
from .frontier import CrawlTask, Frontier, PageGraph
from .links import in_scope, normalize_url
from .models import Page
from .page_fetcher import PageFetcher

logger = structlog.get_logger(__name__)

MAX_PAGES = 100
BATCH_SIZE = 5


class Crawler:
    """Crawls from a root URL, one concurrent batch at a time.

    The frontier and visited set are only touched here, between batches;
    worker tasks only fetch. Pages are collected in dispatch order, so the
    result order does not depend on which fetch finishes first.
    """

    def __init__(
        self,
        page_fetcher: PageFetcher,
        queue: ConcurrencyQueue,
        batch_size: int = BATCH_SIZE,
        max_pages: int = MAX_PAGES,
    ):
        self.page_fetcher = page_fetcher
        self.queue = queue
        self.batch_size = batch_size
        self.max_pages = max_pages

    async def crawl(self, root_url: str, max_depth: int) -> list[Page]:
        """Fetch ``root_url`` and the pages it links to, up to ``max_depth`` hops.

        Individual page failures are logged and skipped. Raises ContentError
        if not a single page could be fetched.
        """
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")

        root_url = normalize_url(root_url)
        frontier = Frontier(max_depth=max_depth)
        graph = PageGraph()
        frontier.add(CrawlTask(url=root_url, depth=0))
        root_error: BaseException | None = None

        logger.info("crawl_started", root_url=root_url, max_depth=max_depth)

        while frontier and len(graph) < self.max_pages:
            limit = min(self.batch_size, self.max_pages - len(graph))
            batch = frontier.next_batch(limit)
            if not batch:
                continue

            outcomes = await self.queue.add_all_settled([
                lambda task=task: self.page_fetcher.fetch_page(task.url, task.depth, root_url)
                for task in batch
            ])

            for task, outcome in zip(batch, outcomes):
                if not outcome.fulfilled:
                    if task.url == root_url:
                        root_error = outcome.error
                    self._log_failure(task, outcome.error)
                    continue

                page = outcome.value
                links = [link for link in page.links if in_scope(link, root_url)]
                graph.add(task.url, page, links)

                if task.depth < max_depth:
                    frontier.add_many([CrawlTask(url=link, depth=task.depth + 1) for link in links])

        pages = graph.pages()
        logger.info("crawl_finished", root_url=root_url, page_count=len(pages), **frontier.stats())

        if not any(page.content.strip() for page in pages):
            raise ContentError(
                f"No substantial content found at {root_url}",
                details={"url": root_url},
            ) from root_error
        return pages

    def _log_failure(self, task: CrawlTask, error: BaseException | None) -> None:
        if isinstance(error, TaskTimeoutError):
            logger.warning("page_dropped_timeout", url=task.url, depth=task.depth, timeout=error.timeout)
        else:
            logger.warning(
                "page_fetch_failed",
                url=task.url,
                depth=task.depth,
                error=str(error),
                error_type=type(error).__name__,
            )
