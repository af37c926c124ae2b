"""Canonical payload value crossing component boundaries.

Events and payloads are JSON values: objects, arrays, strings, numbers,
booleans and ``null``.  Components convert their native types at the
boundary with ``to_payload``.
"""

from __future__ import annotations

from typing import Any

from pydantic import JsonValue
from pydantic_core import to_jsonable_python

Payload = JsonValue


def to_payload(value: Any) -> Payload:
    """Convert *value* (models, datetimes, tuples, sets...) into a JSON value."""
    return to_jsonable_python(value)


def is_batch(value: Any) -> bool:
    """Whether *value* is a sequence of items to emit individually."""
    return isinstance(value, (list, tuple))


def is_empty(value: Any) -> bool:
    """``None`` and empty batches end a pipeline."""
    return value is None or (is_batch(value) and not value)
