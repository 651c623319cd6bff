"""Helpers for compact debug logging of snapshots.

Snapshots routinely carry thousands of beatmap items. Logging them verbatim
would flood DEBUG output, so payloads pass through :func:`summarize_for_log`
first.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def summarize_for_log(
    value: Any,
    *,
    max_string: int = 256,
    max_items: int = 8,
    _depth: int = 0,
) -> Any:
    """Return a size-bounded copy of *value* suitable for debug logs."""
    if _depth > 8:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        return {
            str(k): summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, Sequence):
        if len(value) > max_items:
            return f"<{type(value).__name__}:{len(value)} items>"
        return [summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1) for v in value]

    return repr(value)
