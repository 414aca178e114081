"""Crawl data model: pages, crawl results and cache entries."""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Page:
    """A single fetched documentation page.

    ``links`` holds the normalized URLs of same-repository pages this page
    points to; pages reference each other only through these keys.
    """

    url: str
    title: str
    content: str
    depth: int
    fetched_at: str = field(default_factory=utc_now)
    links: tuple[str, ...] = ()

    def at_depth(self, depth: int) -> "Page":
        """Return a copy of this page discovered at ``depth``."""
        if depth == self.depth:
            return self
        return replace(self, depth=depth)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["links"] = list(self.links)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Page":
        return cls(
            url=data["url"],
            title=data["title"],
            content=data["content"],
            depth=int(data["depth"]),
            fetched_at=data.get("fetched_at") or utc_now(),
            links=tuple(data.get("links") or ()),
        )


@dataclass
class CrawlResult:
    """Terminal output of one crawl, in aggregate or pages mode."""

    repository: str
    mode: Literal["aggregate", "pages"]
    page_count: int
    content: str | None = None
    pages: list[Page] | None = None
    fetched_at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "repository": self.repository,
            "mode": self.mode,
            "page_count": self.page_count,
            "fetched_at": self.fetched_at,
        }
        if self.content is not None:
            data["content"] = self.content
        if self.pages is not None:
            data["pages"] = [page.to_dict() for page in self.pages]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CrawlResult":
        pages = data.get("pages")
        return cls(
            repository=data["repository"],
            mode=data["mode"],
            page_count=int(data["page_count"]),
            content=data.get("content"),
            pages=[Page.from_dict(p) for p in pages] if pages is not None else None,
            fetched_at=data.get("fetched_at") or utc_now(),
        )


@dataclass
class CacheEntry:
    """A cached value with its own time-to-live (seconds)."""

    data: Any
    timestamp: float
    ttl: float
    key: str

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            data=data["data"],
            timestamp=float(data["timestamp"]),
            ttl=float(data["ttl"]),
            key=data["key"],
        )
