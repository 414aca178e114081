"""Breadth-first URL frontier and the page arena built from it."""

from collections import deque
from dataclasses import dataclass

from .models import Page


@dataclass(frozen=True)
class CrawlTask:
    """A URL to crawl at a given link depth."""
    url: str
    depth: int


class Frontier:
    """FIFO of pending tasks plus the set of URLs already dispatched.

    Only the crawl loop touches a Frontier, between batches, so it needs
    no locking.
    """

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        self._queue: deque[CrawlTask] = deque()
        self._visited: set[str] = set()

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def add(self, task: CrawlTask) -> bool:
        """Queue a task. Returns False if its URL was already dispatched."""
        if task.url in self._visited:
            return False
        self._queue.append(task)
        return True

    def add_many(self, tasks: list[CrawlTask]) -> int:
        """Queue multiple tasks. Returns count of tasks queued."""
        return sum(1 for task in tasks if self.add(task))

    def next_batch(self, limit: int) -> list[CrawlTask]:
        """Pop up to ``limit`` dispatchable tasks and mark their URLs visited.

        Tasks whose URL is already visited or whose depth exceeds
        ``max_depth`` are discarded. Marking happens here, before any fetch
        starts, so a URL queued twice is dispatched once.
        """
        batch: list[CrawlTask] = []
        while self._queue and len(batch) < limit:
            task = self._queue.popleft()
            if task.url in self._visited or task.depth > self.max_depth:
                continue
            self._visited.add(task.url)
            batch.append(task)
        return batch

    def is_seen(self, url: str) -> bool:
        """Check if URL was already dispatched."""
        return url in self._visited

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._visited)

    def stats(self) -> dict:
        return {"pending": len(self._queue), "visited": len(self._visited)}


class PageGraph:
    """Pages keyed by normalized URL, in discovery order.

    Edges are lists of URL keys, never page references, so a cyclic link
    structure produces no reference cycles.
    """

    def __init__(self):
        self._pages: dict[str, Page] = {}
        self._edges: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, url: str) -> bool:
        return url in self._pages

    def add(self, key: str, page: Page, links: list[str]) -> None:
        self._pages[key] = page
        self._edges[key] = list(links)

    def get(self, key: str) -> Page | None:
        return self._pages.get(key)

    def links_from(self, key: str) -> list[str]:
        return list(self._edges.get(key, ()))

    def pages(self) -> list[Page]:
        return list(self._pages.values())
