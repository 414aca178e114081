"""Configuration using pydantic-settings."""

from pydantic_settings import BaseSettings


class CrawlerSettings(BaseSettings):
    """Crawler configuration."""

    # Upstream
    base_url: str = "https://deepwiki.com"
    allowed_domains: list[str] = ["deepwiki.com"]
    user_agent: str = "WikiCrawl/0.1 (+https://github.com/wikicrawl)"
    timeout: float = 30.0
    max_connections: int = 100
    max_keepalive_connections: int = 20

    # Crawl
    default_max_depth: int = 1
    max_pages: int = 100
    batch_size: int = 5

    # Concurrency queue
    max_concurrent: int = 5
    task_timeout: float = 30.0

    # Token bucket
    rate_limit_tokens: int = 10
    rate_limit_refill_rate: float = 2.0

    # Retry
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_backoff_factor: float = 2.0
    retry_jitter: bool = True

    # Circuit breaker
    breaker_failure_threshold: int = 5
    breaker_reset_timeout: float = 60.0
    breaker_success_threshold: int = 3

    # Cache
    cache_enabled: bool = True
    cache_dir: str = ".cache"
    cache_default_ttl: float = 24 * 60 * 60
    cache_result_ttl: float = 60 * 60
    cache_page_ttl: float = 30 * 60
    cache_cleanup_interval: float = 60 * 60

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "WIKICRAWL_"}


settings = CrawlerSettings()
