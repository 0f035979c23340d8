"""
Exception hierarchy for remote caching.

All exceptions inherit from RemoteCachingError, which carries optional
structured context for logging and debugging.

Only contract violations (NotInitializedError, InvalidArgumentsError) reach
callers of RemoteCaching.call(). SerializationError and DeserializationError
are raised by the serialization boundary and recovered inside the engine.
"""

from __future__ import annotations

from typing import Any


class RemoteCachingError(Exception):
    """Base exception for all remote caching errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotInitializedError(RemoteCachingError, RuntimeError):
    """Raised when the cache is used before init() or after dispose().

    Context should include:
        - operation: The operation that was attempted
    """

    pass


class InvalidArgumentsError(RemoteCachingError, ValueError):
    """Raised when a call is made with malformed options.

    Examples:
        - Both cache_duration and cache_expiring supplied
        - A collection target type requested without a from_json reconstructor
        - An empty cache key
    """

    pass


class SerializationError(RemoteCachingError):
    """Raised when a value cannot be encoded to a JSON payload.

    Context should include:
        - value_type: The type name of the value that failed to encode
    """

    pass


class DeserializationError(RemoteCachingError):
    """Raised when a stored payload cannot be decoded or reconstructed.

    Context should include:
        - stage: "decode" (text to JSON) or "reconstruct" (JSON to target type)
    """

    pass
