"""Shared helpers for turning loosely shaped payloads into sink fields."""

from __future__ import annotations

import json
from typing import Any

from dromedary.models.payload import to_payload


def as_list(value: Any) -> list[str]:
    """Normalize ``None`` / scalar / sequence into a list of strings."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v not in (None, "")]
    return [str(value)]


def coalesce(*values: Any) -> Any:
    """Return the first value that is neither ``None`` nor empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def payload_field(payload: Any, name: str) -> Any:
    """Read *name* from a mapping payload; other payloads have no fields."""
    if isinstance(payload, dict):
        return payload.get(name)
    return None


def render_payload(payload: Any) -> str:
    """Pretty JSON rendering used when a payload carries no text of its own."""
    if isinstance(payload, str):
        return payload
    return json.dumps(to_payload(payload), indent=2, sort_keys=True)
