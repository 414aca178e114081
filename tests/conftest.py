"""Shared fixtures and fakes."""

import pytest

from wikicrawl.core import Response

ROOT_URL = "https://deepwiki.com/acme/widget"


class FakeClock:
    """Manually advanced clock for time-dependent components."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class StubFetcher:
    """In-memory Fetcher: serves HTML by URL, or raises the configured error."""

    def __init__(self, pages: dict[str, str] | None = None, errors: dict[str, Exception] | None = None):
        self.pages = pages or {}
        self.errors = errors or {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> Response:
        self.calls.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url not in self.pages:
            raise KeyError(url)
        return Response(url=url, status=200, content=self.pages[url].encode(), headers={})


def wiki_html(title: str, links: list[str] = (), body: str = "Documentation text for this page.") -> str:
    anchors = "".join(f'<li><a href="{link}">{link}</a></li>' for link in links)
    return (
        f"<html><head><title>{title}</title></head><body>"
        f"<main><h1>{title}</h1><p>{body}</p><ul>{anchors}</ul></main>"
        f"</body></html>"
    )


async def no_sleep(delay: float):
    return None


@pytest.fixture
def clock():
    return FakeClock()
