"""Tests for the crawl frontier and page graph."""

from wikicrawl.frontier import CrawlTask, Frontier, PageGraph
from wikicrawl.models import Page


def page(url: str) -> Page:
    return Page(url=url, title=url, content="text", depth=0)


class TestFrontier:
    def test_fifo_order(self):
        """Tasks come out in the order they went in."""
        frontier = Frontier(max_depth=2)
        frontier.add_many([CrawlTask("a", 0), CrawlTask("b", 1), CrawlTask("c", 1)])
        assert [t.url for t in frontier.next_batch(10)] == ["a", "b", "c"]

    def test_batch_limit(self):
        """next_batch never returns more than the limit."""
        frontier = Frontier(max_depth=1)
        frontier.add_many([CrawlTask(str(i), 1) for i in range(7)])

        assert len(frontier.next_batch(5)) == 5
        assert len(frontier) == 2
        assert len(frontier.next_batch(5)) == 2
        assert not frontier

    def test_dispatched_urls_are_not_requeued(self):
        """A URL is dispatched at most once."""
        frontier = Frontier(max_depth=3)
        frontier.add(CrawlTask("a", 0))
        frontier.next_batch(1)

        assert frontier.add(CrawlTask("a", 1)) is False
        assert frontier.is_seen("a")
        assert not frontier

    def test_duplicates_within_queue_dispatch_once(self):
        """Two queued copies of one URL yield a single task."""
        frontier = Frontier(max_depth=3)
        frontier.add_many([CrawlTask("a", 1), CrawlTask("a", 2), CrawlTask("b", 1)])

        batch = frontier.next_batch(5)

        assert batch == [CrawlTask("a", 1), CrawlTask("b", 1)]

    def test_drops_tasks_beyond_max_depth(self):
        """Tasks deeper than max_depth are never dispatched."""
        frontier = Frontier(max_depth=1)
        frontier.add_many([CrawlTask("deep", 2), CrawlTask("ok", 1)])

        assert frontier.next_batch(5) == [CrawlTask("ok", 1)]
        assert not frontier.is_seen("deep")

    def test_stats(self):
        """Stats report pending and visited counts."""
        frontier = Frontier(max_depth=1)
        frontier.add_many([CrawlTask("a", 0), CrawlTask("b", 1)])
        frontier.next_batch(1)

        assert frontier.stats() == {"pending": 1, "visited": 1}
        assert frontier.visited == frozenset({"a"})


class TestPageGraph:
    def test_discovery_order(self):
        """pages() follows insertion order."""
        graph = PageGraph()
        for url in ("root", "b", "a"):
            graph.add(url, page(url), [])

        assert [p.url for p in graph.pages()] == ["root", "b", "a"]
        assert len(graph) == 3

    def test_cycles_are_plain_keys(self):
        """A cycle is just URL keys pointing back at each other."""
        graph = PageGraph()
        graph.add("root", page("root"), ["child"])
        graph.add("child", page("child"), ["root"])

        assert graph.links_from("child") == ["root"]
        assert graph.get(graph.links_from("child")[0]).url == "root"
        assert "child" in graph
        assert graph.links_from("missing") == []
        assert graph.get("missing") is None
