"""
Core types for remote caching.

This module defines the data structures shared by the store and the engine:
- CacheEntry: one persisted row
- CachingStats: derived statistics about the store
- Expiry variants (CacheDuration, CacheExpiring, DefaultExpiry) resolved once
  per call into an absolute epoch-millisecond timestamp
- Decoding strategies (Passthrough, Reconstruct) for the read path
- Helpers for timestamps
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    """Convert a datetime to integer milliseconds since the Unix epoch.

    Naive datetimes are interpreted as local time, matching datetime.timestamp().
    """
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds back to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return to_epoch_ms(utc_now())


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cached row.

    Timestamps are epoch milliseconds, as stored in SQLite.
    """

    key: str
    payload: str  # JSON text
    created_at: int
    expires_at: int

    def is_expired(self, at_ms: int) -> bool:
        """Whether the entry is no longer valid for reads at ``at_ms``."""
        return self.expires_at <= at_ms

    @property
    def size_bytes(self) -> int:
        """Size of the payload in UTF-8 bytes."""
        return len(self.payload.encode("utf-8"))


@dataclass(frozen=True)
class CachingStats:
    """Statistics about the current state of the cache.

    Computed live from the store. ``total_entries`` includes expired rows that
    have not been cleaned up yet.
    """

    total_entries: int
    total_size_bytes: int
    expired_entries: int

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"CachingStats(total_entries={self.total_entries}, "
            f"total_size_bytes={self.total_size_bytes}, "
            f"expired_entries={self.expired_entries})"
        )


# Expiry variants


@dataclass(frozen=True)
class CacheDuration:
    """Entry expires a relative duration after it is written."""

    duration: timedelta

    def resolve(self, written_at_ms: int) -> int:
        return written_at_ms + int(self.duration.total_seconds() * 1000)


@dataclass(frozen=True)
class CacheExpiring:
    """Entry expires at an absolute moment."""

    expires_at: datetime

    def resolve(self, written_at_ms: int) -> int:
        return to_epoch_ms(self.expires_at)


@dataclass(frozen=True)
class DefaultExpiry:
    """No per-call expiry; the engine's default duration applies."""

    default_duration: timedelta

    def resolve(self, written_at_ms: int) -> int:
        return CacheDuration(self.default_duration).resolve(written_at_ms)


Expiry = Union[CacheDuration, CacheExpiring, DefaultExpiry]


# Decoding strategies


@dataclass(frozen=True)
class Passthrough:
    """Return the decoded JSON value as-is.

    Only valid for primitive JSON results. When ``target_type`` is set the
    decoded value must be an instance of it.
    """

    target_type: type | tuple[type, ...] | None = None


@dataclass(frozen=True)
class Reconstruct(Generic[T]):
    """Rebuild the result from decoded JSON with a caller-supplied function."""

    from_json: Callable[[Any], T]


DecodeStrategy = Union[Passthrough, Reconstruct]


def resolve_expiry(
    cache_duration: timedelta | None,
    cache_expiring: datetime | None,
    default_duration: timedelta,
) -> Expiry:
    """Collapse the per-call expiry options into a single variant.

    Callers must have rejected the case where both options are set.
    """
    if cache_duration is not None:
        return CacheDuration(cache_duration)
    if cache_expiring is not None:
        return CacheExpiring(cache_expiring)
    return DefaultExpiry(default_duration)
