"""Derived views over the collection and view stores.

Each view is a :class:`DerivedStore`. Views that only depend on the
collection never recompute on filter/sort changes, and the memoized ones hand
back the same object when their inputs are unchanged, so their own
subscribers are not notified.
"""

from __future__ import annotations

from typing import Any

from mosusync.query import (
    ItemsForViewCache,
    SongGroup,
    TabStats,
    build_item_map,
    compute_grouped_items_for_view,
    compute_tab_stats,
)
from mosusync.state.models import CollectionState, ViewMode, ViewState
from mosusync.state.store import DerivedStore, ReadableStore

_NO_GROUPS: list[SongGroup] = []


class CoreStateViews:
    def __init__(
        self,
        collection_store: ReadableStore[CollectionState],
        view_store: ReadableStore[ViewState],
    ) -> None:
        self._items_cache = ItemsForViewCache()
        self._last_grouped: tuple[list[Any], list[SongGroup]] | None = None
        self._last_stats: TabStats | None = None

        self.core_state: DerivedStore[dict[str, Any]] = DerivedStore(
            [collection_store, view_store],
            lambda collection, view: {**collection.to_wire(), **view.to_wire()},
            name="core_state",
        )
        self.item_map: DerivedStore[dict[Any, Any]] = DerivedStore(
            [collection_store],
            lambda collection: build_item_map(collection.items),
            name="item_map",
        )
        self.tab_stats: DerivedStore[TabStats] = DerivedStore(
            [collection_store, view_store],
            self._tab_stats,
            name="tab_stats",
        )
        self.items_for_view: DerivedStore[list[Any]] = DerivedStore(
            [collection_store, view_store],
            self._items_for_view,
            name="items_for_view",
        )
        self.grouped_items_for_view: DerivedStore[list[SongGroup]] = DerivedStore(
            [collection_store, view_store],
            self._grouped_items_for_view,
            name="grouped_items_for_view",
        )

    def _tab_stats(self, collection: CollectionState, view: ViewState) -> TabStats:
        stats = compute_tab_stats(
            collection.items,
            collection.todo_ids,
            collection.done_ids,
            effective_mapper_name=view.effective_mapper_name,
            ignore_guest_difficulties=bool(view.setting("ignoreGuestDifficulties")),
        )
        # Equal counts keep the previous object.
        if stats == self._last_stats:
            return self._last_stats
        self._last_stats = stats
        return stats

    def _items_for_view(self, collection: CollectionState, view: ViewState) -> list[Any]:
        return self._items_cache.compute(
            collection.items,
            collection.todo_ids,
            collection.done_ids,
            view_mode=view.view_mode,
            sort_mode=view.sort_state.mode,
            sort_direction=view.sort_state.direction,
            search=view.search_query,
            sr_min=view.sr_filter.min,
            sr_max=view.sr_filter.max,
            mapper=view.effective_mapper_name,
            ignore_guests=bool(view.setting("ignoreGuestDifficulties")),
        )

    def _grouped_items_for_view(self, collection: CollectionState, view: ViewState) -> list[SongGroup]:
        if not view.setting("groupMapsBySong") or view.view_mode != ViewMode.ALL:
            return _NO_GROUPS

        items = self._items_for_view(collection, view)
        if self._last_grouped is not None and self._last_grouped[0] is items:
            return self._last_grouped[1]
        groups = compute_grouped_items_for_view(items, view_mode=view.view_mode, group_maps_by_song=True)
        self._last_grouped = (items, groups)
        return groups
