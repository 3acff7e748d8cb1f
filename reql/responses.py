"""Typed shapes of common server results."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from typing_extensions import NotRequired, TypedDict

_COUNT_FIELDS = ("inserted", "errors", "updated", "skipped", "replaced", "unchanged", "deleted")


class WriteResponse(TypedDict):
    """Summary returned by insert, update, replace and delete."""

    inserted: int
    errors: int
    updated: int
    skipped: int
    replaced: int
    unchanged: int
    deleted: int
    generated_keys: NotRequired[List[str]]
    first_error: NotRequired[str]
    old_val: NotRequired[Any]
    new_val: NotRequired[Any]


def write_response(value: Any) -> WriteResponse:
    """Normalize a write result: counters become ints and missing ones zero.

    Numbers arrive from the server as floats.
    """
    if not isinstance(value, Mapping):
        raise TypeError("write response must be an object")
    result: Dict[str, Any] = dict(value)
    for field in _COUNT_FIELDS:
        count = result.get(field, 0)
        if not isinstance(count, (int, float)) or isinstance(count, bool):
            raise TypeError(f"write response field '{field}' must be a number")
        result[field] = int(count)
    keys = result.get("generated_keys")
    if keys is not None and not isinstance(keys, list):
        raise TypeError("generated_keys must be a list when present")
    first_error = result.get("first_error")
    if first_error is not None and not isinstance(first_error, str):
        raise TypeError("first_error must be a string when present")
    return result  # type: ignore[return-value]


__all__ = ["WriteResponse", "write_response"]
