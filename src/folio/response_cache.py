"""SQLite HTTP response cache.

Stores rendered pages keyed by request path. The freshness checker calls
``invalidate`` when a page's template changed; the set provider calls
``cleanup`` whenever the listing is recomputed.

All cache operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as cache miss by callers),
write failures are logged and ignored (the rendered page is still returned).
Infrastructure errors never cross the ResponseCache class boundary.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog

from folio.models.cache import ResponseCacheEntry

log = structlog.get_logger()

_CREATE_RESPONSE_TABLE = """
CREATE TABLE IF NOT EXISTS response_cache (
    key           TEXT PRIMARY KEY,
    body          TEXT NOT NULL,
    content_type  TEXT NOT NULL,
    last_modified TEXT,
    stored_at     TEXT NOT NULL,
    expires_at    TEXT NOT NULL
)
"""

_CREATE_RESPONSE_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_response_expires ON response_cache(expires_at)"
)


class ResponseCache:
    """SQLite-backed response cache implementing ResponseCacheProtocol."""

    def __init__(self, db: aiosqlite.Connection, *, cleanup_grace_days: int = 7) -> None:
        self._db = db
        self._cleanup_grace = timedelta(days=cleanup_grace_days)

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_RESPONSE_TABLE)
        await self._db.execute(_CREATE_RESPONSE_INDEX)
        await self._db.commit()

    async def get(self, key: str) -> ResponseCacheEntry | None:
        """Read a stored response. Returns ``None`` on cache miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT key, body, content_type, last_modified, stored_at, expires_at "
                "FROM response_cache WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            expires_at = datetime.fromisoformat(row[5])
            return ResponseCacheEntry(
                key=row[0],
                body=row[1],
                content_type=row[2],
                last_modified=datetime.fromisoformat(row[3]) if row[3] else None,
                stored_at=datetime.fromisoformat(row[4]),
                expires_at=expires_at,
                stale=datetime.now(UTC) > expires_at,
            )
        except aiosqlite.Error:
            log.warning("response_cache_read_error", key=key, exc_info=True)
            return None

    async def set(
        self,
        key: str,
        body: str,
        ttl_hours: int,
        *,
        content_type: str = "text/html; charset=utf-8",
        last_modified: datetime | None = None,
    ) -> None:
        """Store a rendered response. Non-fatal on failure."""
        try:
            now = datetime.now(UTC)
            expires_at = now + timedelta(hours=ttl_hours)
            await self._db.execute(
                "INSERT OR REPLACE INTO response_cache "
                "(key, body, content_type, last_modified, stored_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    key,
                    body,
                    content_type,
                    last_modified.isoformat() if last_modified else None,
                    now.isoformat(),
                    expires_at.isoformat(),
                ),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("response_cache_write_error", key=key, exc_info=True)

    async def invalidate(self, key: str) -> None:
        """Drop the stored response for ``key``. Non-fatal on failure."""
        try:
            await self._db.execute("DELETE FROM response_cache WHERE key = ?", (key,))
            await self._db.commit()
            log.info("response_cache_invalidated", key=key)
        except aiosqlite.Error:
            log.warning("response_cache_invalidate_error", key=key, exc_info=True)

    async def cleanup(self) -> None:
        """Delete entries expired longer ago than the grace period. Non-fatal on failure."""
        try:
            cutoff = (datetime.now(UTC) - self._cleanup_grace).isoformat()
            cursor = await self._db.execute(
                "DELETE FROM response_cache WHERE expires_at < ?", (cutoff,)
            )
            deleted = cursor.rowcount
            await self._db.commit()
            log.info("response_cache_cleanup_complete", deleted=deleted)
        except aiosqlite.Error:
            log.warning("response_cache_cleanup_error", exc_info=True)
