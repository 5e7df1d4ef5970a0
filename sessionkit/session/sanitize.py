"""Scrubbing data before it goes into a session."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from .errors import SessionDataError

MAX_DEPTH = 10
MAX_SIZE = 1024 * 1024  # bytes of JSON
DEPTH_EXCEEDED = "[Max Depth Exceeded]"


def sanitize_session_data(
    data: Any,
    *,
    remove_keys: Iterable[str] = (),
    max_depth: int = MAX_DEPTH,
    max_size: int = MAX_SIZE,
) -> Any:
    """Return a JSON-safe deep copy of ``data`` without the ``remove_keys``.

    Keys are dropped at every level, inside lists too. Values nested deeper
    than ``max_depth`` are replaced by ``"[Max Depth Exceeded]"``. Anything
    other than a dict or list is returned as is.

    Raises:
        SessionDataError: if the JSON encoding is over ``max_size`` bytes.
    """
    if not isinstance(data, (dict, list)):
        return data

    encoded = json.dumps(data)
    size = len(encoded.encode("utf-8"))
    if size > max_size:
        raise SessionDataError(f"Session data too large: {size} bytes")

    dropped = frozenset(remove_keys)

    def clean(value: Any, depth: int) -> Any:
        if depth > max_depth:
            return DEPTH_EXCEEDED
        if isinstance(value, list):
            return [clean(item, depth + 1) for item in value]
        if isinstance(value, dict):
            return {k: clean(v, depth + 1) for k, v in value.items() if k not in dropped}
        return value

    return clean(json.loads(encoded), 0)
