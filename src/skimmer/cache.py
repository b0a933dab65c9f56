"""SQLite page cache with TTL expiry and count-bounded eviction.

All cache operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as cache miss by callers),
write failures are logged and ignored (fetched content is still returned).
Only ``open_cache`` raises, when the store cannot be opened at startup.

Every operation holds one ``asyncio.Lock`` so the count-then-evict-then-write
sequence of ``put`` is never interleaved with another writer.
"""

from __future__ import annotations

import asyncio
import math
import time
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from skimmer.errors import CacheError
from skimmer.models.site import CacheMode

if TYPE_CHECKING:
    from skimmer.models.site import CacheConfig

log = structlog.get_logger()

_CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS cache (
    url    TEXT PRIMARY KEY,
    html   TEXT NOT NULL,
    expiry INTEGER NOT NULL
)
"""

_CREATE_EXPIRY_INDEX = "CREATE INDEX IF NOT EXISTS idx_cache_expiry ON cache(expiry)"


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def retained_count(config: CacheConfig) -> int:
    """Rows kept after an eviction pass: ``ceil(max_size * (100 - cull) / 100)``."""
    return math.ceil(config.max_size * (100 - config.cull_percent) / 100)


class ContentCache:
    """SQLite-backed URL to HTML cache implementing CacheProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_CACHE_TABLE)
        await self._db.execute(_CREATE_EXPIRY_INDEX)
        await self._db.commit()

    async def close(self) -> None:
        await self._db.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, url: str, config: CacheConfig) -> str | None:
        """Return cached HTML, or ``None`` on miss, expiry, read failure or a non-reading mode."""
        if not config.mode.reads:
            return None
        async with self._lock:
            try:
                cursor = await self._db.execute(
                    "SELECT html, expiry FROM cache WHERE url = ?", (url,)
                )
                row = await cursor.fetchone()
                if row is None:
                    log.debug("cache_miss", url=url)
                    return None

                html, expiry = row
                if expiry <= now_ms():
                    log.debug("cache_expired", url=url)
                    await self._db.execute("DELETE FROM cache WHERE url = ?", (url,))
                    await self._db.commit()
                    return None

                log.debug("cache_hit", url=url)
                return html
            except aiosqlite.Error:
                log.warning("cache_read_error", url=url, exc_info=True)
                return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def put(self, url: str, html: str, config: CacheConfig) -> None:
        """Store HTML for ``url``, evicting the oldest rows first if full. Non-fatal on failure."""
        if not config.mode.writes:
            return
        async with self._lock:
            try:
                cursor = await self._db.execute("SELECT COUNT(*) FROM cache")
                (count,) = await cursor.fetchone()
                if count >= config.max_size:
                    excess = count - retained_count(config)
                    if excess > 0:
                        await self._db.execute(
                            "DELETE FROM cache WHERE rowid IN ("
                            "SELECT rowid FROM cache ORDER BY expiry ASC, rowid ASC LIMIT ?)",
                            (excess,),
                        )
                        log.debug("cache_evicted", rows=excess)

                await self._db.execute(
                    "INSERT INTO cache (url, html, expiry) VALUES (?, ?, ?) "
                    "ON CONFLICT(url) DO UPDATE SET html = excluded.html, expiry = excluded.expiry",
                    (url, html, now_ms() + config.ttl_ms),
                )
                await self._db.commit()
            except aiosqlite.Error:
                log.warning("cache_write_error", url=url, exc_info=True)

    async def remove(self, url: str, config: CacheConfig) -> None:
        """Purge one entry. No-op when the mode never writes."""
        if config.mode in (CacheMode.READ, CacheMode.NEVER):
            return
        async with self._lock:
            try:
                await self._db.execute("DELETE FROM cache WHERE url = ?", (url,))
                await self._db.commit()
                log.debug("cache_removed", url=url)
            except aiosqlite.Error:
                log.warning("cache_remove_error", url=url, exc_info=True)

    async def clear(self) -> None:
        async with self._lock:
            try:
                await self._db.execute("DELETE FROM cache")
                await self._db.commit()
                log.info("cache_cleared")
            except aiosqlite.Error:
                log.warning("cache_clear_error", exc_info=True)


async def open_cache(db_path: str) -> ContentCache:
    """Open (creating if needed) the cache database. Raises CacheError on failure."""
    path = Path(db_path).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(path))
    except (OSError, aiosqlite.Error) as exc:
        raise CacheError(f"Could not open cache at {path}: {exc}") from exc

    cache = ContentCache(db)
    try:
        await cache.init_db()
    except aiosqlite.Error as exc:
        await db.close()
        raise CacheError(f"Could not initialise cache at {path}: {exc}") from exc
    return cache
