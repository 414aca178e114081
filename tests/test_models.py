"""Tests for the data model."""

from wikicrawl.models import CacheEntry, CrawlResult, Page


class TestPage:
    def test_at_depth(self):
        """at_depth returns a re-stamped copy and leaves the original alone."""
        page = Page(url="u", title="t", content="c", depth=2, links=("a",))
        moved = page.at_depth(1)

        assert moved.depth == 1
        assert page.depth == 2
        assert moved.links == ("a",)
        assert page.at_depth(2) is page

    def test_from_dict_tolerates_missing_optional_fields(self):
        """Links and fetched_at are optional in stored pages."""
        page = Page.from_dict({"url": "u", "title": "t", "content": "c", "depth": "1"})
        assert page.depth == 1
        assert page.links == ()
        assert page.fetched_at


class TestCrawlResult:
    def test_aggregate_dict_omits_pages(self):
        """Only the populated payload is serialized."""
        data = CrawlResult(repository="acme/widget", mode="aggregate", page_count=1, content="# x").to_dict()
        assert "pages" not in data
        assert data["content"] == "# x"

    def test_pages_restored_as_page_objects(self):
        """Stored page dicts come back as Page instances."""
        result = CrawlResult(
            repository="acme/widget",
            mode="pages",
            page_count=1,
            pages=[Page(url="u", title="t", content="c", depth=0)],
        )
        restored = CrawlResult.from_dict(result.to_dict())
        assert restored.pages == result.pages
        assert restored.content is None


class TestCacheEntry:
    def test_expiry_boundary(self):
        """An entry is still fresh at exactly its TTL."""
        entry = CacheEntry(data=1, timestamp=100.0, ttl=10.0, key="k")
        assert not entry.is_expired(110.0)
        assert entry.is_expired(110.5)
