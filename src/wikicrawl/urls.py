"""Repository reference parsing and URL validation."""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from .errors import ValidationError

NAME_PATTERN = re.compile(r"[A-Za-z0-9._-]+")

DEFAULT_BASE_URL = "https://deepwiki.com"
DEFAULT_ALLOWED_DOMAINS = ("deepwiki.com",)


@dataclass(frozen=True)
class RepositoryRef:
    """A repository whose documentation tree is crawled."""

    owner: str
    repo: str
    base_url: str = DEFAULT_BASE_URL

    @property
    def name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def root_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.owner}/{self.repo}"


def parse_repository(
    value: str,
    base_url: str = DEFAULT_BASE_URL,
    allowed_domains: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_DOMAINS,
) -> RepositoryRef:
    """Parse ``owner/repo`` or a full wiki URL into a RepositoryRef."""
    value = value.strip()
    if value.startswith(("http://", "https://")):
        url = value
    elif "/" in value:
        url = f"{base_url.rstrip('/')}/{value.strip('/')}"
    else:
        raise ValidationError(
            f"Invalid repository reference. Expected 'owner/repo' or a URL, got: {value}"
        )

    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if not is_url_allowed(url, allowed_domains):
        raise ValidationError(
            f"Domain not allowed: {host or value}. Allowed: {', '.join(allowed_domains)}"
        )

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        raise ValidationError(f"Expected {base_url}/owner/repo, got: {url}")

    owner, repo = parts[0], parts[1]
    for label, name in (("owner", owner), ("repository", repo)):
        if not NAME_PATTERN.fullmatch(name):
            raise ValidationError(
                f"Invalid {label} name: {name}. Use letters, digits, dots, hyphens and underscores."
            )

    return RepositoryRef(owner=owner, repo=repo, base_url=f"{parsed.scheme}://{parsed.netloc}")


def is_url_allowed(url: str, allowed_domains: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_DOMAINS) -> bool:
    """Check that ``url`` is http(s) and points at an allowed domain."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    return (parsed.hostname or "").lower() in allowed_domains
