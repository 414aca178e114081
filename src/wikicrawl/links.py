"""Same-repository link extraction."""

from urllib.parse import parse_qsl, urldefrag, urlencode, urljoin, urlparse, urlunparse

from selectolax.lexbor import LexborHTMLParser

SKIPPED_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")


def normalize_url(url: str) -> str:
    """Normalize URL for deduplication (remove fragment, sort query params)."""
    parsed = urlparse(url)

    query_params = parse_qsl(parsed.query)
    sorted_query = urlencode(sorted(query_params))

    # Remove trailing slash except for root
    path = parsed.path.rstrip("/") or "/"

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.params,
        sorted_query,
        "",
    ))


def in_scope(url: str, scope_url: str) -> bool:
    """Is ``url`` the scope page itself or a page below it on the same host?"""
    target = urlparse(url)
    scope = urlparse(scope_url)
    if target.scheme not in ("http", "https"):
        return False
    if target.netloc.lower() != scope.netloc.lower():
        return False
    scope_path = scope.path.rstrip("/")
    target_path = target.path.rstrip("/")
    return target_path == scope_path or target_path.startswith(scope_path + "/")


def extract_links(html: str, scope_url: str, base_url: str | None = None) -> list[str]:
    """Return normalized in-scope links from ``html`` in document order.

    Relative hrefs resolve against ``base_url`` (the page's own URL), which
    defaults to ``scope_url``. Duplicates are collapsed.
    """
    if not html:
        return []

    base = base_url or scope_url
    links: dict[str, None] = {}
    for node in LexborHTMLParser(html).css("a[href]"):
        href = (node.attributes.get("href") or "").strip()
        if not href or href.lower().startswith(SKIPPED_PREFIXES):
            continue

        if href.startswith("//"):
            href = urlparse(base).scheme + ":" + href

        absolute_url, _ = urldefrag(urljoin(base, href))
        if not in_scope(absolute_url, scope_url):
            continue
        links[normalize_url(absolute_url)] = None

    return list(links)
