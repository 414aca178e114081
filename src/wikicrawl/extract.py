"""Page content extraction using selectolax.

Turns a raw wiki page into a title and markdown-like text: unsafe and
non-content markup is stripped, then headings, lists, code and links are
rewritten as markdown.
"""

import re
from urllib.parse import urlparse

from selectolax.lexbor import LexborHTMLParser, LexborNode

CONTENT_SELECTOR = ".wiki-content, .content, main, article, .markdown-body, #content"

REMOVE_SELECTORS = [
    "script",
    "style",
    "noscript",
    "iframe",
    "nav, header, footer",
    ".nav, .navbar, .navigation, .menu",
    ".sidebar, .advertisement, .ads, .social-share",
    '[class*="nav"], [class*="menu"], [class*="sidebar"]',
]

URL_ATTRIBUTES = ("href", "src")

COMMENT_TAG = "-comment"

LOADING_PATTERNS = [
    re.compile(r"loading", re.IGNORECASE),
    re.compile(r"please wait", re.IGNORECASE),
    re.compile(r"processing", re.IGNORECASE),
    re.compile(r"generating", re.IGNORECASE),
    re.compile(r"spinner", re.IGNORECASE),
    re.compile(r"loader", re.IGNORECASE),
    re.compile(r"content-loading", re.IGNORECASE),
    re.compile(r"repository is being processed", re.IGNORECASE),
    re.compile(r"documentation is being generated", re.IGNORECASE),
]

# Placeholder pages are small; real pages mentioning "loading" are not.
LOADING_PAGE_MAX_SIZE = 5000


def contains_loading_indicators(html: str) -> bool:
    """Heuristic: is this the upstream's "still generating" placeholder?"""
    if len(html) >= LOADING_PAGE_MAX_SIZE:
        return False
    return any(pattern.search(html) for pattern in LOADING_PATTERNS)


def _remove_all(tree: LexborHTMLParser, selector: str) -> None:
    # Re-query after every removal; nested matches die with their parent.
    node = tree.css_first(selector)
    while node is not None:
        node.decompose()
        node = tree.css_first(selector)


def _replace_all(tree: LexborHTMLParser, selector: str, render) -> None:
    node = tree.css_first(selector)
    while node is not None:
        rendered = render(node)
        if rendered:
            node.replace_with(rendered)
        else:
            node.decompose()
        node = tree.css_first(selector)


def _clean_text(node: LexborNode) -> str:
    return " ".join(node.text().split())


def sanitize_tree(tree: LexborHTMLParser) -> LexborHTMLParser:
    """Strip comments, non-content elements and unsafe attributes in place."""
    if tree.root is not None:
        comments = [node for node in tree.root.traverse() if node.tag == COMMENT_TAG]
        for node in comments:
            node.decompose()

    for selector in REMOVE_SELECTORS:
        _remove_all(tree, selector)

    for node in tree.css("*"):
        attrs = node.attrs
        for name in list(attrs.keys()):
            value = attrs[name] or ""
            if name.lower().startswith("on"):
                del attrs[name]
            elif name.lower() in URL_ATTRIBUTES and value.strip().lower().startswith("javascript:"):
                del attrs[name]
    return tree


def _render_list(node: LexborNode) -> str:
    ordered = node.tag == "ol"
    lines = []
    for index, item in enumerate(node.css("li"), 1):
        prefix = f"{index}." if ordered else "-"
        lines.append(f"{prefix} {_clean_text(item)}")
    return "\n" + "\n".join(lines) + "\n\n"


def _render_link(node: LexborNode) -> str:
    text = _clean_text(node)
    href = node.attributes.get("href")
    if text and href:
        return f"[{text}]({href})"
    return text


def _render_paragraph(node: LexborNode) -> str:
    text = _clean_text(node)
    return f"{text}\n\n" if text else ""


def html_to_markdown(html: str) -> str:
    """Sanitize ``html`` and convert it to markdown-like text."""
    if not html:
        return ""

    tree = sanitize_tree(LexborHTMLParser(html))

    _replace_all(tree, "pre", lambda node: f"\n```\n{node.text().strip()}\n```\n\n")
    _replace_all(tree, "code", lambda node: f"`{node.text().strip()}`")
    _replace_all(tree, "a", _render_link)
    for level in range(1, 7):
        prefix = "#" * level
        _replace_all(tree, f"h{level}", lambda node, p=prefix: f"\n{p} {_clean_text(node)}\n\n")
    _replace_all(tree, "p", _render_paragraph)
    _replace_all(tree, "ul, ol", _render_list)

    root = tree.body or tree.root
    text = root.text() if root is not None else ""
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n\s*\n\s*\n+", "\n\n", text)
    return text.strip()


def extract_title(tree: LexborHTMLParser, url: str) -> str:
    """First <h1>, else <title>, else the last path segment of ``url``."""
    for selector in ("h1", "title"):
        node = tree.css_first(selector)
        if node is not None:
            text = _clean_text(node)
            if text:
                return text
    segments = [part for part in urlparse(url).path.split("/") if part]
    return segments[-1] if segments else "Untitled"


def extract_main_html(tree: LexborHTMLParser) -> str:
    """HTML of the main content container, falling back to <body>."""
    node = tree.css_first(CONTENT_SELECTOR)
    if node is None:
        node = tree.body
    return node.html if node is not None and node.html else ""


def extract_page(html: str, url: str) -> tuple[str, str]:
    """Return ``(title, markdown content)`` for a raw page."""
    tree = LexborHTMLParser(html)
    title = extract_title(tree, url)
    content = html_to_markdown(extract_main_html(tree))
    return title, content
