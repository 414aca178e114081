"""Two-tier cache: an in-memory map in front of hashed JSON files on disk.

Entries carry their own TTL. Expiry is checked lazily on every read and
proactively by a periodic cleanup sweep. Disk failures never propagate to
callers: they are logged and degrade to a cache miss.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import shutil
import tempfile
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from .errors import CacheIOError
from .models import CacheEntry

logger = structlog.get_logger(__name__)

DEFAULT_TTL = 24 * 60 * 60
DEFAULT_CLEANUP_INTERVAL = 60 * 60


class CacheStore:
    """Memory + file cache with per-entry TTL and background cleanup."""

    def __init__(
        self,
        cache_dir: str | Path = ".cache",
        default_ttl: float = DEFAULT_TTL,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir)
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: asyncio.Task | None = None
        self.hits = 0
        self.misses = 0

    async def __aenter__(self) -> "CacheStore":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @staticmethod
    def hash_key(key: str) -> str:
        """SHA-256 hex digest of a logical key."""
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def path_for(self, key: str) -> Path:
        """File path for a logical key: ``xx/yy/<rest>.json`` under the cache root."""
        digest = self.hash_key(key)
        return self.cache_dir / digest[:2] / digest[2:4] / f"{digest[4:]}.json"

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss or an expired entry."""
        cache_key = self.hash_key(key)
        now = self._clock()

        entry = self._memory.get(cache_key)
        if entry is not None:
            if not entry.is_expired(now):
                self.hits += 1
                logger.debug("cache_hit", key=key, tier="memory")
                return entry.data
            await self.delete(key)
            self.misses += 1
            logger.debug("cache_expired", key=key)
            return None

        try:
            entry = await asyncio.to_thread(self._read_file, self.path_for(key))
        except CacheIOError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            entry = None

        if entry is None:
            self.misses += 1
            logger.debug("cache_miss", key=key)
            return None

        if entry.is_expired(now):
            await self.delete(key)
            self.misses += 1
            logger.debug("cache_expired", key=key)
            return None

        self._memory[cache_key] = entry
        self.hits += 1
        logger.debug("cache_hit", key=key, tier="file")
        return entry.data

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` in both tiers. Never raises."""
        cache_key = self.hash_key(key)
        entry = CacheEntry(
            data=value,
            timestamp=self._clock(),
            ttl=ttl if ttl is not None else self.default_ttl,
            key=cache_key,
        )
        self._memory[cache_key] = entry

        try:
            async with self._lock:
                await asyncio.to_thread(self._write_file, self.path_for(key), entry)
            logger.debug("cache_set", key=key, ttl=entry.ttl)
        except CacheIOError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    async def delete(self, key: str) -> None:
        """Remove ``key`` from both tiers."""
        self._memory.pop(self.hash_key(key), None)
        path = self.path_for(key)
        async with self._lock:
            try:
                await asyncio.to_thread(path.unlink, missing_ok=True)
            except OSError as e:
                logger.warning("cache_delete_failed", key=key, error=str(e))

    async def clear(self) -> None:
        """Drop every entry in both tiers."""
        self._memory.clear()
        async with self._lock:
            try:
                await asyncio.to_thread(shutil.rmtree, self.cache_dir, ignore_errors=True)
                await asyncio.to_thread(self.cache_dir.mkdir, parents=True, exist_ok=True)
                logger.info("cache_cleared", cache_dir=str(self.cache_dir))
            except OSError as e:
                logger.warning("cache_clear_failed", error=str(e))

    async def cleanup(self) -> int:
        """Remove expired entries from both tiers. Returns the number removed."""
        now = self._clock()
        removed = 0

        for cache_key, entry in list(self._memory.items()):
            if entry.is_expired(now):
                del self._memory[cache_key]
                removed += 1

        async with self._lock:
            removed += await asyncio.to_thread(self._sweep_files, now)

        if removed:
            logger.info("cache_cleanup_completed", removed=removed)
        return removed

    async def get_stats(self) -> dict[str, Any]:
        """Entry counts, disk usage, age range and hit/miss counters."""
        stats = await asyncio.to_thread(self._scan_files)
        stats.update(
            memory_entries=len(self._memory),
            hits=self.hits,
            misses=self.misses,
        )
        return stats

    def start(self) -> None:
        """Start the periodic cleanup task on the running event loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def close(self) -> None:
        """Stop the periodic cleanup task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            try:
                await self.cleanup()
            except Exception:
                logger.exception("cache_cleanup_failed")

    # File tier. These run in worker threads.

    def _read_file(self, path: Path) -> CacheEntry | None:
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheIOError(f"Cannot read {path}: {e}") from e

        try:
            return CacheEntry.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            # Corrupt entry: drop it and report a miss
            logger.warning("cache_entry_corrupt", path=str(path), error=str(e))
            try:
                path.unlink(missing_ok=True)
            except OSError as unlink_error:
                logger.warning("cache_unlink_failed", path=str(path), error=str(unlink_error))
            return None

    def _write_file(self, path: Path, entry: CacheEntry) -> None:
        try:
            payload = json.dumps(entry.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheIOError(f"Cannot serialize cache entry: {e}") from e

        tmp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            raise CacheIOError(f"Cannot write {path}: {e}") from e

    def _cache_files(self) -> list[Path]:
        if not self.cache_dir.is_dir():
            return []
        return [p for p in self.cache_dir.glob("*/*/*.json") if p.is_file()]

    def _sweep_files(self, now: float) -> int:
        removed = 0
        for path in self._cache_files():
            try:
                entry = CacheEntry.from_dict(json.loads(path.read_text(encoding="utf-8")))
                expired = entry.is_expired(now)
            except (OSError, ValueError, KeyError, TypeError):
                expired = True
            if expired:
                try:
                    path.unlink(missing_ok=True)
                    removed += 1
                except OSError as e:
                    logger.warning("cache_unlink_failed", path=str(path), error=str(e))
        return removed

    def _scan_files(self) -> dict[str, Any]:
        file_entries = 0
        total_size = 0
        oldest: float | None = None
        newest: float | None = None

        for path in self._cache_files():
            try:
                total_size += path.stat().st_size
                entry = CacheEntry.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError, TypeError):
                continue
            file_entries += 1
            oldest = entry.timestamp if oldest is None else min(oldest, entry.timestamp)
            newest = entry.timestamp if newest is None else max(newest, entry.timestamp)

        return {
            "file_entries": file_entries,
            "total_size": total_size,
            "oldest_entry": _iso(oldest),
            "newest_entry": _iso(newest),
        }


def _iso(timestamp: float | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
