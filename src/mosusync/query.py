"""List queries over beatmap items.

Items are opaque mappings received from the backend; every field is read
defensively. These helpers back the derived stores in
:mod:`mosusync.state.views`.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from mosusync.ingestion.normalize import is_sequence, safe_float
from mosusync.state.models import SortDirection, SortMode, ViewMode

Item = Mapping[str, Any]

_SEARCH_FIELDS: tuple[str, ...] = (
    "title",
    "titleUnicode",
    "artist",
    "artistUnicode",
    "creator",
    "version",
    "beatmapSetID",
)


@dataclasses.dataclass(frozen=True)
class TabStats:
    all: int = 0
    todo: int = 0
    completed: int = 0


@dataclasses.dataclass(frozen=True)
class SongGroup:
    key: str
    items: list[Item]


def _field(item: Any, key: str) -> Any:
    return item.get(key) if isinstance(item, Mapping) else None


def _lower(value: Any) -> str:
    return str(value).lower() if value else ""


def _number(value: Any) -> float:
    parsed = safe_float(value)
    return parsed if parsed is not None else 0.0


def _sequence(value: Any) -> Sequence[Any]:
    return value if is_sequence(value) else ()


def normalize_mapper_needles(effective_mapper_name: Any) -> list[str]:
    """Split a comma-separated mapper list into lowercase search needles."""
    text = effective_mapper_name if isinstance(effective_mapper_name, str) else ""
    return [name.strip().lower() for name in text.split(",") if name.strip()]


def is_guest_difficulty_item(item: Item, *, ignore_guest_difficulties: bool, mapper_needles: Sequence[str]) -> bool:
    """Return True for a guest difficulty inside one of the mappers' sets.

    A guest difficulty is named after its author (``"Someone's Insane"``);
    difficulties named after the mapper themself are kept.
    """
    if not ignore_guest_difficulties or not mapper_needles:
        return False

    creator = _lower(_field(item, "creator"))
    version = _lower(_field(item, "version"))
    for mapper in mapper_needles:
        if mapper not in creator:
            continue
        if f"{mapper}'s" in version or f"{mapper}s'" in version:
            continue
        if "'s" in version or "s'" in version:
            return True
    return False


def _name_key(item: Item) -> str:
    return f"{_field(item, 'artist') or ''} - {_field(item, 'title') or ''}".lower()


def _difficulty_key(item: Item) -> tuple[str, str, str]:
    difficulty = _field(item, "difficultyName") or _field(item, "version") or ""
    return str(difficulty).lower(), _name_key(item), str(_field(item, "creator") or "").lower()


def _game_mode(item: Item) -> int:
    # osu! game modes 0-3; anything unparsable counts as standard.
    value = safe_float(_field(item, "mode"))
    if value is None or math.isinf(value):
        return 0
    return min(max(math.floor(value), 0), 3)


def sort_items(items: Iterable[Item], mode: SortMode, direction: SortDirection) -> list[Item]:
    """Return a new sorted list; ties keep their incoming order."""
    reverse = direction != SortDirection.ASC
    if mode == SortMode.NAME:
        return sorted(items, key=_name_key, reverse=reverse)
    if mode == SortMode.DIFFICULTY:
        return sorted(items, key=_difficulty_key, reverse=reverse)
    if mode == SortMode.MODE:
        # Songs within one game mode stay alphabetical in both directions.
        by_name = sorted(items, key=_name_key)
        return sorted(by_name, key=_game_mode, reverse=reverse)

    field_name = {
        SortMode.DATE_MODIFIED: "dateModified",
        SortMode.PROGRESS: "progress",
        SortMode.STAR_RATING: "starRating",
    }.get(mode, "dateAdded")
    return sorted(items, key=lambda item: _number(_field(item, field_name)), reverse=reverse)


def _matches_search(item: Item, needle: str) -> bool:
    for key in _SEARCH_FIELDS:
        value = _field(item, key)
        if value and needle in str(value).lower():
            return True
    return False


def filter_items(items: Sequence[Item], query: str, sr_min: float, sr_max: float) -> Sequence[Item]:
    """Apply the free-text search and the star rating range.

    ``sr_max >= 10`` removes the upper bound.
    """
    filtered: Sequence[Item] = items
    needle = query.strip().lower()
    if needle:
        filtered = [item for item in filtered if _matches_search(item, needle)]

    if sr_min == 0 and sr_max >= 10:
        return filtered

    def in_range(item: Item) -> bool:
        rating = _number(_field(item, "starRating"))
        if sr_max >= 10:
            return rating >= sr_min
        return sr_min <= rating <= sr_max

    return [item for item in filtered if in_range(item)]


def build_item_map(items: Iterable[Any]) -> dict[Any, Item]:
    return {_field(item, "id"): item for item in items if isinstance(item, Mapping)}


def compute_tab_stats(
    items: Sequence[Any],
    todo_ids: Sequence[Any],
    done_ids: Sequence[Any],
    *,
    effective_mapper_name: str = "",
    ignore_guest_difficulties: bool = False,
) -> TabStats:
    """Count visible items per tab, honouring the guest difficulty filter."""
    needles = normalize_mapper_needles(effective_mapper_name)

    def visible(item: Any) -> bool:
        return isinstance(item, Mapping) and not is_guest_difficulty_item(
            item,
            ignore_guest_difficulties=ignore_guest_difficulties,
            mapper_needles=needles,
        )

    item_map = build_item_map(_sequence(items))
    return TabStats(
        all=sum(1 for item in _sequence(items) if visible(item)),
        todo=sum(1 for item_id in _sequence(todo_ids) if visible(item_map.get(item_id))),
        completed=sum(1 for item_id in _sequence(done_ids) if visible(item_map.get(item_id))),
    )


def group_key(item: Item) -> str:
    artist = _field(item, "artistUnicode") or _field(item, "artist") or ""
    title = _field(item, "titleUnicode") or _field(item, "title") or ""
    creator = _field(item, "creator") or ""
    return f"{str(artist).lower()}||{str(title).lower()}||{str(creator).lower()}"


def group_items_by_song(items: Iterable[Item]) -> list[SongGroup]:
    """Group items sharing artist, title and creator, in first-seen order."""
    groups: dict[str, list[Item]] = {}
    for item in items:
        groups.setdefault(group_key(item), []).append(item)
    return [SongGroup(key=key, items=members) for key, members in groups.items()]


def compute_grouped_items_for_view(
    items_for_view: Iterable[Item],
    *,
    view_mode: ViewMode,
    group_maps_by_song: bool,
) -> list[SongGroup]:
    """Song groups for the visible items; empty unless grouping applies.

    Grouping only applies to the ``all`` view.
    """
    if not group_maps_by_song or view_mode != ViewMode.ALL:
        return []
    return group_items_by_song(items_for_view)


@dataclasses.dataclass(frozen=True)
class _ViewInputs:
    view_mode: ViewMode
    sort_mode: SortMode
    sort_direction: SortDirection
    search: str
    sr_min: float
    sr_max: float
    mapper: str
    ignore_guests: bool


class ItemsForViewCache:
    """Memoized computation of the items visible in the current view.

    Cache hits are decided by identity of the three collection sequences plus
    equality of a handful of scalar view inputs, so a hit never walks the
    collection.
    """

    def __init__(self) -> None:
        self._inputs: _ViewInputs | None = None
        self._sources: tuple[Any, Any, Any] | None = None
        self._result: list[Item] = []

    def compute(
        self,
        items: Sequence[Any],
        todo_ids: Sequence[Any],
        done_ids: Sequence[Any],
        *,
        view_mode: ViewMode = ViewMode.ALL,
        sort_mode: SortMode = SortMode.DATE_ADDED,
        sort_direction: SortDirection = SortDirection.DESC,
        search: str = "",
        sr_min: float = 0.0,
        sr_max: float = 10.0,
        mapper: str = "",
        ignore_guests: bool = False,
    ) -> list[Item]:
        inputs = _ViewInputs(view_mode, sort_mode, sort_direction, search, sr_min, sr_max, mapper, ignore_guests)
        sources = (items, todo_ids, done_ids)
        if (
            self._sources is not None
            and self._inputs == inputs
            and all(cached is current for cached, current in zip(self._sources, sources, strict=True))
        ):
            return self._result

        needles = normalize_mapper_needles(mapper)

        def visible(item: Any) -> bool:
            return isinstance(item, Mapping) and not is_guest_difficulty_item(
                item,
                ignore_guest_difficulties=ignore_guests,
                mapper_needles=needles,
            )

        if view_mode in (ViewMode.TODO, ViewMode.COMPLETED):
            item_map = build_item_map(_sequence(items))
            ids = _sequence(todo_ids) if view_mode == ViewMode.TODO else _sequence(done_ids)
            looked_up = (item_map.get(item_id) for item_id in ids)
            result = [item for item in looked_up if visible(item)]
        else:
            candidates = [item for item in _sequence(items) if visible(item)]
            result = sort_items(filter_items(candidates, search, sr_min, sr_max), sort_mode, sort_direction)

        self._inputs = inputs
        self._sources = sources
        self._result = result
        return result
