"""
Cache engine for remote calls.

RemoteCaching wraps an expensive or rate-limited async producer: it returns a
stored result while one is valid, otherwise awaits the producer, persists its
result and returns it. The cache is an optimization only. Encoding and
decoding problems degrade to fetching fresh data; they never fail a call.

Usage:
    cache = RemoteCaching()
    await cache.init(default_cache_duration=timedelta(minutes=30))

    profile = await cache.call(
        "user_profile",
        fetch_user_profile,
        from_json=UserProfile.model_validate,
    )

    await cache.dispose()
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, TypeVar

from remote_caching.config import Settings, get_settings
from remote_caching.exceptions import (
    DeserializationError,
    InvalidArgumentsError,
    NotInitializedError,
    SerializationError,
)
from remote_caching.logging import cache_context, enable_verbose_logging, get_logger
from remote_caching.serialization import decode, encode, resolve_strategy
from remote_caching.store import CacheStore
from remote_caching.types import (
    CacheEntry,
    CachingStats,
    DecodeStrategy,
    Expiry,
    now_ms,
    resolve_expiry,
)

logger = get_logger(__name__)

T = TypeVar("T")

_MISS = object()


class RemoteCaching:
    """Expiration-aware persistent cache for results of remote calls.

    Construct one per process and hand it to whoever needs it. init() opens
    the store and dispose() closes it; the object can be initialized again
    after disposal.

    Concurrent calls for the same missing key are not coalesced: each one
    awaits its producer and the last write wins.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Create an uninitialized cache.

        Args:
            settings: Defaults for init() options. Loaded from the
                environment on first init() when omitted.
        """
        self._settings = settings
        self._store: CacheStore | None = None
        self._default_cache_duration = timedelta(hours=1)
        self._verbose_mode = False
        self._initialized = False
        self._lifecycle_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def default_cache_duration(self) -> timedelta:
        return self._default_cache_duration

    @property
    def verbose_mode(self) -> bool:
        return self._verbose_mode

    @property
    def database_path(self) -> str | None:
        return self._store.db_path if self._store else None

    async def __aenter__(self) -> RemoteCaching:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()

    async def init(
        self,
        *,
        default_cache_duration: timedelta | None = None,
        verbose_mode: bool | None = None,
        database_path: str | None = None,
    ) -> None:
        """Open the store and remove entries that expired while it was closed.

        Calling init() on an initialized cache does nothing, even when the
        options differ.

        Args:
            default_cache_duration: Lifetime of entries written without an
                explicit expiry.
            verbose_mode: Log hits, misses, fetches and writes.
            database_path: SQLite file, or ":memory:" for an ephemeral cache.

        Raises:
            InvalidArgumentsError: If default_cache_duration is not positive.
        """
        async with self._lifecycle_lock:
            if self._initialized:
                return

            settings = self._settings or get_settings()

            duration = (
                default_cache_duration
                if default_cache_duration is not None
                else settings.default_cache_duration
            )
            if not isinstance(duration, timedelta) or duration <= timedelta(0):
                raise InvalidArgumentsError(
                    "default_cache_duration must be a positive timedelta",
                    context={"default_cache_duration": duration},
                )

            store = CacheStore(database_path or settings.database_path)
            await store.init()

            self._store = store
            self._default_cache_duration = duration
            self._verbose_mode = (
                verbose_mode if verbose_mode is not None else settings.verbose_mode
            )
            self._initialized = True
            if self._verbose_mode:
                enable_verbose_logging()

            removed = await store.delete_expired(now_ms())
            self._trace(
                "Remote cache initialized",
                db_path=store.db_path,
                default_cache_duration=str(duration),
                expired_removed=removed,
            )

    async def dispose(self) -> None:
        """Close the store. The cache may be initialized again afterwards."""
        async with self._lifecycle_lock:
            if self._store is not None:
                await self._store.close()
                self._store = None
            self._initialized = False

    def _require_store(self, operation: str) -> CacheStore:
        if not self._initialized or self._store is None:
            raise NotInitializedError(
                "RemoteCaching must be initialized before use. Call init() first.",
                context={"operation": operation},
            )
        return self._store

    def _trace(self, msg: str, **kwargs: Any) -> None:
        if self._verbose_mode:
            logger.info(msg, **kwargs)

    async def call(
        self,
        key: str,
        remote: Callable[[], Awaitable[T]],
        *,
        from_json: Callable[[Any], T] | None = None,
        target_type: Any = None,
        cache_duration: timedelta | None = None,
        cache_expiring: datetime | None = None,
        force_refresh: bool = False,
    ) -> T:
        """Return the cached result for key, or fetch, store and return it.

        Args:
            key: Cache key chosen by the caller.
            remote: Zero-argument async producer of a fresh value.
            from_json: Rebuilds the result from decoded JSON. Required for
                anything but primitive JSON results.
            target_type: Declared result type, checked against from_json.
            cache_duration: Lifetime of the stored result.
            cache_expiring: Absolute expiry of the stored result.
            force_refresh: Skip the cache read; the fresh result is still stored.

        Returns:
            The cached value, or the value produced by remote().

        Raises:
            NotInitializedError: If init() has not been called.
            InvalidArgumentsError: If both cache_duration and cache_expiring
                are given, the key is empty, or a non-primitive target_type
                has no from_json.
            Exception: Anything raised by remote(), unchanged.
        """
        store = self._require_store("call")

        if not isinstance(key, str) or not key:
            raise InvalidArgumentsError(
                "Cache key must be a non-empty string", context={"key": key}
            )
        if cache_duration is not None and cache_expiring is not None:
            raise InvalidArgumentsError(
                "Provide either cache_duration or cache_expiring, not both",
                context={"key": key},
            )
        if cache_duration is not None and not isinstance(cache_duration, timedelta):
            raise InvalidArgumentsError(
                "cache_duration must be a timedelta",
                context={"key": key, "cache_duration": type(cache_duration).__name__},
            )
        if cache_expiring is not None and not isinstance(cache_expiring, datetime):
            raise InvalidArgumentsError(
                "cache_expiring must be a datetime",
                context={"key": key, "cache_expiring": type(cache_expiring).__name__},
            )

        strategy = resolve_strategy(from_json, target_type)
        expiry = resolve_expiry(cache_duration, cache_expiring, self._default_cache_duration)

        with cache_context(cache_key=key, operation="call"):
            if not force_refresh:
                cached = await self._read(store, key, strategy)
                if cached is not _MISS:
                    return cached

            value = await remote()
            self._trace("Fetched from remote")

            await self._write(store, key, value, expiry, strategy)
            return value

    async def _read(self, store: CacheStore, key: str, strategy: DecodeStrategy) -> Any:
        """Return the decoded cached value, or _MISS."""
        entry = await store.get(key)
        if entry is None:
            self._trace("Cache miss")
            return _MISS

        if entry.is_expired(now_ms()):
            self._trace("Cached data expired", expires_at=entry.expires_at)
            await store.delete(key)
            return _MISS

        try:
            value = decode(entry.payload, strategy)
        except DeserializationError as e:
            logger.warning("Ignoring cached data that failed to deserialize", error=str(e))
            return _MISS

        self._trace("Cache hit")
        return value

    async def _write(
        self,
        store: CacheStore,
        key: str,
        value: Any,
        expiry: Expiry,
        strategy: DecodeStrategy,
    ) -> None:
        try:
            payload = encode(value, strategy)
        except SerializationError as e:
            logger.error("Not caching value that failed to serialize", error=str(e))
            return

        if self._store is not store:
            # dispose() ran while remote() was pending
            logger.warning("Cache disposed during remote call, result not stored")
            return

        created_at = now_ms()
        await store.upsert(
            CacheEntry(
                key=key,
                payload=payload,
                created_at=created_at,
                expires_at=expiry.resolve(created_at),
            )
        )
        self._trace("Data cached", size_bytes=len(payload.encode("utf-8")))

    async def clear_cache(self) -> None:
        """Delete every cached entry. Does nothing before init()."""
        if not self._initialized or self._store is None:
            return
        with cache_context(operation="clear"):
            removed = await self._store.delete_all()
            self._trace("Cache cleared", removed=removed)

    async def clear_cache_for_key(self, key: str) -> None:
        """Delete the entry for key, if any. Does nothing before init()."""
        if not self._initialized or self._store is None:
            return
        with cache_context(cache_key=key, operation="clear"):
            removed = await self._store.delete(key)
            self._trace("Cache entry cleared", removed=removed)

    async def get_cache_stats(self) -> CachingStats:
        """Compute statistics about the current cache contents.

        Raises:
            NotInitializedError: If init() has not been called.
        """
        store = self._require_store("get_cache_stats")
        return await store.stats(now_ms())
