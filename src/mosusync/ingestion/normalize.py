"""Normalization helpers.

Centralizes defensive parsing of raw bridge snapshots. Every helper here is
total: malformed input degrades to a default, nothing is raised.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any, TypeVar

from mosusync._constants import DONE_IDS_KEY, ITEMS_CHANGED_KEYS, ITEMS_KEY, TODO_IDS_KEY
from mosusync.state.models import (
    DEFAULT_SETTINGS,
    DEFAULT_VIEW_STATE,
    SortDirection,
    SortMode,
    SortState,
    SrFilter,
    ViewMode,
    ViewState,
)

TEnum = TypeVar("TEnum", bound=StrEnum)


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(result):
        return None
    return result


def non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def to_enum(enum_cls: type[TEnum], value: Any, default: TEnum) -> TEnum:
    if not isinstance(value, str) or not value:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return default


def is_sequence(value: Any) -> bool:
    """Return True for the JSON-array shapes a snapshot may carry."""
    return isinstance(value, (list, tuple))


def _mapping_or_empty(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def read_items_changed(raw: Mapping[str, Any]) -> bool:
    """Read the sender's intent flag.

    Only an explicit boolean ``False`` means "unchanged"; a missing flag, or
    one of any other type, means "changed".
    """
    for key in ITEMS_CHANGED_KEYS:
        if key in raw:
            return raw[key] is not False
    return True


def merge_settings(value: Any) -> dict[str, Any]:
    """Shallow-merge incoming settings over :data:`DEFAULT_SETTINGS`."""
    merged = dict(DEFAULT_SETTINGS)
    for key, setting in _mapping_or_empty(value).items():
        merged[str(key)] = setting
    return merged


def normalize_sort_state(value: Any) -> SortState:
    raw = _mapping_or_empty(value)
    default = DEFAULT_VIEW_STATE.sort_state
    return SortState(
        mode=to_enum(SortMode, raw.get("mode"), default.mode),
        direction=to_enum(SortDirection, raw.get("direction"), default.direction),
    )


def normalize_sr_filter(value: Any) -> SrFilter:
    raw = _mapping_or_empty(value)
    default = DEFAULT_VIEW_STATE.sr_filter
    low = safe_float(raw.get("min"))
    high = safe_float(raw.get("max"))
    return SrFilter(
        min=default.min if low is None else low,
        max=default.max if high is None else high,
    )


def normalize_view_state(raw: Mapping[str, Any]) -> ViewState:
    """Build a complete view state, defaulting each field independently."""
    default = DEFAULT_VIEW_STATE
    render_ids = raw.get("itemsToRenderIds")
    return ViewState(
        view_mode=to_enum(ViewMode, raw.get("viewMode"), default.view_mode),
        sort_state=normalize_sort_state(raw.get("sortState")),
        search_query=non_empty_str(raw.get("searchQuery")) or "",
        sr_filter=normalize_sr_filter(raw.get("srFilter")),
        settings=MappingProxyType(merge_settings(raw.get("settings"))),
        effective_mapper_name=non_empty_str(raw.get("effectiveMapperName")) or "",
        items_to_render_ids=render_ids if is_sequence(render_ids) else (),
    )


@dataclasses.dataclass(frozen=True)
class NormalizedSnapshot:
    """A raw snapshot after boundary normalization.

    Collection candidates are ``None`` when the snapshot did not carry an
    array for that field; the reconciler substitutes its remembered value.
    Arrays are kept as the very objects received.
    """

    items: Any | None
    todo_ids: Any | None
    done_ids: Any | None
    items_changed: bool
    view: ViewState


def normalize_snapshot(raw: Any) -> NormalizedSnapshot | None:
    """Normalize a raw snapshot; returns ``None`` when *raw* is not an object."""
    if not isinstance(raw, Mapping):
        return None

    def candidate(key: str) -> Any | None:
        value = raw.get(key)
        return value if is_sequence(value) else None

    return NormalizedSnapshot(
        items=candidate(ITEMS_KEY),
        todo_ids=candidate(TODO_IDS_KEY),
        done_ids=candidate(DONE_IDS_KEY),
        items_changed=read_items_changed(raw),
        view=normalize_view_state(raw),
    )
