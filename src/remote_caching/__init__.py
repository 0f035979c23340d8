"""
Persistent, expiration-aware caching for results of remote calls.

Quick start:
    from remote_caching import RemoteCaching

    async with RemoteCaching() as cache:
        data = await cache.call(
            "cache_key",
            fetch_data,
            from_json=MyData.from_json,
        )
"""

from remote_caching.config import Settings, get_in_memory_database_path, get_settings
from remote_caching.engine import RemoteCaching
from remote_caching.exceptions import (
    DeserializationError,
    InvalidArgumentsError,
    NotInitializedError,
    RemoteCachingError,
    SerializationError,
)
from remote_caching.types import CachingStats

__version__ = "0.1.0"

__all__ = [
    "CachingStats",
    "DeserializationError",
    "InvalidArgumentsError",
    "NotInitializedError",
    "RemoteCaching",
    "RemoteCachingError",
    "SerializationError",
    "Settings",
    "get_in_memory_database_path",
    "get_settings",
    "__version__",
]
