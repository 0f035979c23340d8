"""
Persistent key-value store for cache entries.

A single SQLite table keyed by cache key, with an index on expires_at so
expiry sweeps and stats stay cheap as the table grows.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from remote_caching.config import IN_MEMORY_DATABASE_PATH
from remote_caching.exceptions import NotInitializedError
from remote_caching.logging import get_logger
from remote_caching.types import CacheEntry, CachingStats

logger = get_logger(__name__)


class CacheStore:
    """SQLite-backed store of CacheEntry rows.

    One connection is opened by init() and shared by every operation until
    close(). aiosqlite runs statements on a single worker thread, so
    concurrent coroutines are serialized at the connection.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Initialize cache store.

        Args:
            db_path: Database file path, or ":memory:" for an ephemeral store.
        """
        self.db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        """Whether init() has been called and close() has not."""
        return self._db is not None

    @property
    def is_in_memory(self) -> bool:
        """Whether the store is backed by an in-memory database."""
        return self.db_path == IN_MEMORY_DATABASE_PATH

    async def init(self) -> None:
        """Open the database and create the schema if needed."""
        if not self.is_in_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row

        try:
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    key TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    expires_at INTEGER NOT NULL
                )
            """)
            await self._db.execute(
                "CREATE INDEX IF NOT EXISTS idx_cache_expires_at ON cache(expires_at)"
            )
            await self._db.commit()
        except BaseException:
            # the connection's worker thread keeps the process alive until closed
            await self._db.close()
            self._db = None
            raise

        logger.debug("Cache store initialized", db_path=self.db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise NotInitializedError(
                "CacheStore not initialized. Call init() first.",
                context={"db_path": self.db_path},
            )
        return self._db

    async def get(self, key: str) -> CacheEntry | None:
        """Look up the entry for a key.

        Expiry is not checked here; callers decide what to do with stale rows.

        Args:
            key: The cache key.

        Returns:
            The stored entry, or None if there is no row for the key.
        """
        db = self._conn()

        async with db.execute(
            "SELECT key, data, created_at, expires_at FROM cache WHERE key = ?",
            (key,),
        ) as cursor:
            row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_entry(row)

    async def upsert(self, entry: CacheEntry) -> None:
        """Insert an entry, replacing any existing row with the same key.

        Args:
            entry: The entry to write.
        """
        db = self._conn()

        await db.execute(
            """
            INSERT OR REPLACE INTO cache (key, data, created_at, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (entry.key, entry.payload, entry.created_at, entry.expires_at),
        )
        await db.commit()

    async def delete(self, key: str) -> bool:
        """Delete the entry for a key.

        Returns:
            True if a row was removed.
        """
        db = self._conn()

        cursor = await db.execute("DELETE FROM cache WHERE key = ?", (key,))
        await db.commit()
        return cursor.rowcount > 0

    async def delete_all(self) -> int:
        """Delete every entry.

        Returns:
            Number of rows removed.
        """
        db = self._conn()

        cursor = await db.execute("DELETE FROM cache")
        await db.commit()
        return cursor.rowcount

    async def delete_expired(self, now_ms: int) -> int:
        """Delete every entry that expired before ``now_ms``.

        Returns:
            Number of rows removed.
        """
        db = self._conn()

        cursor = await db.execute("DELETE FROM cache WHERE expires_at < ?", (now_ms,))
        await db.commit()
        return cursor.rowcount

    async def count(self) -> int:
        """Get total count of entries, expired ones included."""
        db = self._conn()

        async with db.execute("SELECT COUNT(*) FROM cache") as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def stats(self, now_ms: int) -> CachingStats:
        """Compute statistics about the stored entries.

        Args:
            now_ms: Reference time for counting expired entries.

        Returns:
            CachingStats with row count, payload bytes and expired count.
        """
        db = self._conn()

        # LENGTH() of a BLOB counts bytes; of TEXT it counts characters
        async with db.execute(
            """
            SELECT COUNT(*), COALESCE(SUM(LENGTH(CAST(data AS BLOB))), 0)
            FROM cache
            """
        ) as cursor:
            row = await cursor.fetchone()
            total_entries, total_size = (row[0], row[1]) if row else (0, 0)

        async with db.execute(
            "SELECT COUNT(*) FROM cache WHERE expires_at < ?", (now_ms,)
        ) as cursor:
            row = await cursor.fetchone()
            expired_entries = row[0] if row else 0

        return CachingStats(
            total_entries=total_entries,
            total_size_bytes=total_size,
            expired_entries=expired_entries,
        )

    def _row_to_entry(self, row: aiosqlite.Row) -> CacheEntry:
        """Convert a database row to CacheEntry dataclass."""
        return CacheEntry(
            key=row["key"],
            payload=row["data"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )
