"""
Serialization boundary between application values and stored payloads.

Two independent fallible conversions:
- encode(): value -> JSON text. Failure raises SerializationError.
- decode(): JSON text -> generic structure -> target value via a
  DecodeStrategy. Failure in either step raises DeserializationError.

Encoding uses orjson, which natively handles dicts, lists, tuples, primitives,
dataclasses, datetimes, enums and UUIDs. Other objects are encoded through
their ``to_json()`` or ``to_dict()`` method, or pydantic ``model_dump()``.
NaN and infinity have no JSON form (orjson writes them as null), so values
containing them are rejected.

Under a Passthrough strategy the decoded JSON is handed back as-is, so only
values that survive the round trip unchanged are encoded: None, bool, int,
float, str, and lists and string-keyed dicts of those.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import math
import typing
from types import UnionType
from typing import Any, Callable

import orjson

from remote_caching.exceptions import (
    DeserializationError,
    InvalidArgumentsError,
    SerializationError,
)
from remote_caching.types import DecodeStrategy, Passthrough, Reconstruct

PRIMITIVE_TYPES: tuple[type, ...] = (str, int, float, bool, type(None))

_COLLECTION_TYPES: tuple[type, ...] = (
    collections.abc.Mapping,
    collections.abc.Sequence,
    collections.abc.Set,
)


def _check_finite(value: Any) -> None:
    """Raise ValueError if a NaN or infinity is nested anywhere in value."""
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{value!r} has no JSON representation")
    elif isinstance(value, dict):
        for item in value.values():
            _check_finite(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_finite(item)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        for field in dataclasses.fields(value):
            _check_finite(getattr(value, field.name))


def is_plain_json(value: Any) -> bool:
    """Whether value decodes back from JSON as an equal value of the same type."""
    # exact types: str enums and namedtuples decode as their base type
    value_type = type(value)
    if value_type in PRIMITIVE_TYPES:
        return True
    if value_type is list:
        return all(is_plain_json(item) for item in value)
    if value_type is dict:
        return all(type(k) is str and is_plain_json(v) for k, v in value.items())
    return False


def _default(obj: Any) -> Any:
    """orjson fallback for objects it cannot encode natively."""
    for method in ("to_json", "to_dict"):
        convert = getattr(obj, method, None)
        if callable(convert):
            converted = convert()
            _check_finite(converted)
            return converted

    model_dump = getattr(obj, "model_dump", None)
    if callable(model_dump):
        dumped = model_dump(mode="json")
        _check_finite(dumped)
        return dumped

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode(value: Any, strategy: DecodeStrategy | None = None) -> str:
    """Encode a value to JSON text.

    Args:
        value: The value returned by a remote producer.
        strategy: How the payload will be decoded. Passthrough only accepts
            plain JSON values.

    Returns:
        UTF-8 JSON text.

    Raises:
        SerializationError: If the value (or anything nested in it) cannot be
            encoded, or would come back as a different type under Passthrough.
    """
    if isinstance(strategy, Passthrough) and not is_plain_json(value):
        raise SerializationError(
            "A from_json reconstructor is required to cache non-JSON values",
            context={"value_type": type(value).__name__},
        )

    try:
        _check_finite(value)
        return orjson.dumps(value, default=_default).decode("utf-8")
    except Exception as e:
        raise SerializationError(
            f"Failed to encode value: {e}",
            context={"value_type": type(value).__name__},
        ) from e


def decode(payload: str, strategy: DecodeStrategy) -> Any:
    """Decode stored JSON text and rebuild the caller's value.

    Args:
        payload: JSON text read from the store.
        strategy: How to turn the decoded structure into the result.

    Returns:
        The reconstructed value.

    Raises:
        DeserializationError: If the payload is not valid JSON, the
            reconstructor raises, or a passthrough type check fails.
    """
    try:
        decoded = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise DeserializationError(
            f"Stored payload is not valid JSON: {e}", context={"stage": "decode"}
        ) from e

    if isinstance(strategy, Reconstruct):
        try:
            return strategy.from_json(decoded)
        except Exception as e:
            raise DeserializationError(
                f"from_json failed: {e}", context={"stage": "reconstruct"}
            ) from e

    if strategy.target_type is not None and not _matches(decoded, strategy.target_type):
        raise DeserializationError(
            f"Decoded {type(decoded).__name__} does not match "
            f"{_type_name(strategy.target_type)}",
            context={"stage": "reconstruct"},
        )
    return decoded


def _matches(value: Any, target: type | tuple[type, ...]) -> bool:
    targets = target if isinstance(target, tuple) else (target,)
    for t in targets:
        if t is bool:
            if isinstance(value, bool):
                return True
        elif t is int:
            if isinstance(value, int) and not isinstance(value, bool):
                return True
        elif t is float:
            # 1.0 round-trips as 1.0, but producers sometimes return ints
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return True
        elif isinstance(value, t):
            return True
    return False


def _type_name(target: type | tuple[type, ...]) -> str:
    if isinstance(target, tuple):
        return " | ".join(t.__name__ for t in target)
    return target.__name__


def _is_collection(target: Any) -> bool:
    origin = typing.get_origin(target) or target
    if not isinstance(origin, type) or origin in (str, bytes, bytearray):
        return False
    return issubclass(origin, _COLLECTION_TYPES)


def _primitive_union(target: Any) -> tuple[type, ...] | None:
    """Return the member types of a Union/Optional made only of primitives."""
    if typing.get_origin(target) not in (typing.Union, UnionType):
        return None
    args = typing.get_args(target)
    if all(arg in PRIMITIVE_TYPES for arg in args):
        return tuple(args)
    return None


def resolve_strategy(
    from_json: Callable[[Any], Any] | None,
    target_type: Any = None,
) -> DecodeStrategy:
    """Pick the decoding strategy for a call.

    Args:
        from_json: Optional reconstructor supplied by the caller.
        target_type: Optional declared result type.

    Returns:
        Reconstruct when a reconstructor is given, Passthrough otherwise.

    Raises:
        InvalidArgumentsError: If target_type is a collection or other
            composite type and no reconstructor was supplied.
    """
    if from_json is not None:
        if not callable(from_json):
            raise InvalidArgumentsError(
                "from_json must be callable",
                context={"from_json": type(from_json).__name__},
            )
        return Reconstruct(from_json)

    if target_type is None or target_type is Any:
        return Passthrough()

    if target_type in PRIMITIVE_TYPES:
        return Passthrough(target_type)

    members = _primitive_union(target_type)
    if members is not None:
        return Passthrough(members)

    if _is_collection(target_type):
        raise InvalidArgumentsError(
            "A from_json reconstructor is required for collection results",
            context={"target_type": repr(target_type)},
        )

    raise InvalidArgumentsError(
        "A from_json reconstructor is required for non-primitive results",
        context={"target_type": repr(target_type)},
    )
