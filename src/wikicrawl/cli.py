"""CLI interface using typer."""

import asyncio
import json
import sys
from enum import Enum

import typer

from .cache import CacheStore
from .config import settings
from .errors import WikiCrawlError
from .logging import configure_logging
from .models import CrawlResult
from .service import build_service
from .urls import parse_repository

app = typer.Typer(
    name="wikicrawl",
    help="Fetch repository documentation wikis with caching and retries",
    no_args_is_help=True,
)
cache_app = typer.Typer(help="Inspect and maintain the page cache", no_args_is_help=True)
app.add_typer(cache_app, name="cache")


class Mode(str, Enum):
    aggregate = "aggregate"
    pages = "pages"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
    json_logs: bool = typer.Option(settings.log_json, "--json-logs", help="Log as JSON lines"),
):
    configure_logging("DEBUG" if verbose else settings.log_level, json_output=json_logs)


async def _fetch(repository: str, mode: Mode, max_depth: int) -> CrawlResult:
    ref = parse_repository(repository, settings.base_url, settings.allowed_domains)
    async with build_service(settings) as service:
        if mode is Mode.aggregate:
            return await service.fetch_aggregated(ref, max_depth)
        return await service.fetch_pages(ref, max_depth)


@app.command()
def fetch(
    repository: str = typer.Argument(..., help="owner/repo or a full wiki URL"),
    mode: Mode = typer.Option(Mode.aggregate, "--mode", "-m", help="aggregate or pages"),
    max_depth: int = typer.Option(settings.default_max_depth, "--max-depth", "-d", min=0, help="Maximum link depth"),
    output: str = typer.Option(None, "-o", "--output", help="Output file (markdown or JSONL)"),
    no_content: bool = typer.Option(False, "--no-content", help="Omit page bodies in pages mode"),
):
    """Fetch documentation for a repository."""
    from .output import write_result

    try:
        result = asyncio.run(_fetch(repository, mode, max_depth))
    except WikiCrawlError as e:
        typer.echo(f"Error [{e.code}]: {e}", err=True)
        raise typer.Exit(code=1)

    if output:
        count = write_result(result, output, include_content=not no_content)
        typer.echo(f"Saved {count} pages to {output}")
    elif result.mode == "aggregate":
        sys.stdout.write((result.content or "") + "\n")
    else:
        data = result.to_dict()
        if no_content:
            for page in data["pages"]:
                del page["content"]
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _cache() -> CacheStore:
    return CacheStore(
        cache_dir=settings.cache_dir,
        default_ttl=settings.cache_default_ttl,
        cleanup_interval=settings.cache_cleanup_interval,
    )


@cache_app.command("stats")
def cache_stats():
    """Show cache statistics."""
    stats = asyncio.run(_cache().get_stats())
    for name, value in stats.items():
        typer.echo(f"{name}: {value}")


@cache_app.command("cleanup")
def cache_cleanup():
    """Remove expired cache entries."""
    removed = asyncio.run(_cache().cleanup())
    typer.echo(f"Removed {removed} expired entries")


@cache_app.command("clear")
def cache_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete every cache entry."""
    if not yes:
        typer.confirm(f"Delete everything under {settings.cache_dir}?", abort=True)
    asyncio.run(_cache().clear())
    typer.echo("Cache cleared")


@app.command()
def version():
    """Show version."""
    from . import __version__

    typer.echo(f"wikicrawl {__version__}")


if __name__ == "__main__":
    app()
