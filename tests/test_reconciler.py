"""Tests for snapshot reconciliation into the collection and view stores."""

from __future__ import annotations

from typing import Any

import pytest

from mosusync.reconciler import ChangeGuardMemory, SnapshotReconciler, changed_view_fields
from mosusync.state.models import (
    DEFAULT_COLLECTION_STATE,
    DEFAULT_VIEW_STATE,
    CollectionState,
    SortDirection,
    SortMode,
    ViewMode,
    ViewState,
)
from mosusync.state.store import WritableStore


class _Probe:
    """Subscriber recording every published value."""

    def __init__(self) -> None:
        self.values: list[Any] = []

    def __call__(self, value: Any) -> None:
        self.values.append(value)

    @property
    def count(self) -> int:
        return len(self.values)


def _wire() -> tuple[SnapshotReconciler, WritableStore[CollectionState], WritableStore[ViewState], _Probe, _Probe]:
    collection_store: WritableStore[CollectionState] = WritableStore(DEFAULT_COLLECTION_STATE, name="collection")
    view_store: WritableStore[ViewState] = WritableStore(DEFAULT_VIEW_STATE, name="view")
    collection_probe = _Probe()
    view_probe = _Probe()
    collection_store.subscribe(collection_probe)
    view_store.subscribe(view_probe)
    return SnapshotReconciler(collection_store, view_store), collection_store, view_store, collection_probe, view_probe


def _snapshot(**overrides: Any) -> dict[str, Any]:
    snapshot: dict[str, Any] = {
        "beatmapItems": [{"id": "a"}, {"id": "b"}],
        "todoIds": ["a"],
        "doneIds": ["b"],
        "viewMode": "todo",
    }
    snapshot.update(overrides)
    return snapshot


# ------------------------------------------------------------------
# Input validation
# ------------------------------------------------------------------


@pytest.mark.parametrize("raw", [None, "snapshot", 42, 3.5, ["beatmapItems"], b"{}", True])
def test_non_object_snapshot_is_a_complete_noop(raw: Any) -> None:
    reconciler, collection_store, view_store, collection_probe, view_probe = _wire()

    reconciler.apply_snapshot(raw)

    assert collection_store.get() is DEFAULT_COLLECTION_STATE
    assert view_store.get() is DEFAULT_VIEW_STATE
    assert collection_probe.count == 0
    assert view_probe.count == 0
    assert reconciler.memory == ChangeGuardMemory()


@pytest.mark.parametrize(
    "raw",
    [
        {"beatmapItems": None, "todoIds": 5, "doneIds": {"a": 1}},
        {"viewMode": 7, "sortState": "name", "srFilter": [1, 2], "settings": "on"},
        {"srFilter": {"min": "abc", "max": float("nan")}, "searchQuery": ["x"]},
        {"sortState": {"mode": None, "direction": 3}, "effectiveMapperName": {"x": 1}},
        {"itemsToRenderIds": "abc", "_itemsChanged": "no"},
    ],
)
def test_malformed_fields_never_raise(raw: dict[str, Any]) -> None:
    reconciler, _, view_store, _, _ = _wire()

    reconciler.apply_snapshot(raw)

    assert isinstance(view_store.get(), ViewState)


# ------------------------------------------------------------------
# Collection reconciliation
# ------------------------------------------------------------------


def test_first_snapshot_publishes_collection_by_reference() -> None:
    reconciler, collection_store, _, collection_probe, _ = _wire()
    snapshot = _snapshot()

    reconciler.apply_snapshot(snapshot)

    state = collection_store.get()
    assert collection_probe.count == 1
    assert state.items is snapshot["beatmapItems"]
    assert state.todo_ids is snapshot["todoIds"]
    assert state.done_ids is snapshot["doneIds"]
    assert reconciler.memory.items is snapshot["beatmapItems"]


def test_same_snapshot_twice_publishes_each_store_at_most_once() -> None:
    reconciler, _, _, collection_probe, view_probe = _wire()
    snapshot = _snapshot()

    reconciler.apply_snapshot(snapshot)
    reconciler.apply_snapshot(snapshot)

    assert collection_probe.count == 1
    assert view_probe.count == 1


def test_same_array_references_never_reset_collection_store() -> None:
    reconciler, collection_store, _, collection_probe, _ = _wire()
    items: list[Any] = [{"id": "a"}]
    todo: list[Any] = ["a"]
    done: list[Any] = []

    reconciler.apply_snapshot({"beatmapItems": items, "todoIds": todo, "doneIds": done})
    published = collection_store.get()
    for query in ("x", "xy", "xyz"):
        reconciler.apply_snapshot({"beatmapItems": items, "todoIds": todo, "doneIds": done, "searchQuery": query})

    assert collection_probe.count == 1
    assert collection_store.get() is published


def test_equal_but_distinct_arrays_count_as_a_change() -> None:
    reconciler, _, _, collection_probe, _ = _wire()

    reconciler.apply_snapshot(_snapshot())
    reconciler.apply_snapshot(_snapshot())

    assert collection_probe.count == 2


def test_single_new_array_is_enough_to_publish() -> None:
    reconciler, collection_store, _, collection_probe, _ = _wire()
    first = _snapshot()
    reconciler.apply_snapshot(first)

    new_done = ["a", "b"]
    reconciler.apply_snapshot({**first, "doneIds": new_done})

    assert collection_probe.count == 2
    state = collection_store.get()
    assert state.items is first["beatmapItems"]
    assert state.done_ids is new_done


def test_invalid_items_fall_back_to_previous_reference() -> None:
    reconciler, collection_store, _, collection_probe, _ = _wire()
    first = _snapshot()
    reconciler.apply_snapshot(first)

    reconciler.apply_snapshot({"beatmapItems": "not-an-array"})

    assert collection_store.get().items is first["beatmapItems"]
    assert collection_probe.count == 1


def test_omitted_arrays_keep_previous_references() -> None:
    reconciler, collection_store, _, collection_probe, _ = _wire()
    first = _snapshot()
    reconciler.apply_snapshot(first)

    new_todo = ["b"]
    reconciler.apply_snapshot({"todoIds": new_todo})

    state = collection_store.get()
    assert collection_probe.count == 2
    assert state.items is first["beatmapItems"]
    assert state.todo_ids is new_todo
    assert state.done_ids is first["doneIds"]


def test_empty_snapshot_before_any_data_publishes_empty_collection_once() -> None:
    reconciler, collection_store, _, collection_probe, _ = _wire()

    reconciler.apply_snapshot({})
    reconciler.apply_snapshot({})

    assert collection_probe.count == 1
    state = collection_store.get()
    assert list(state.items) == []
    assert list(state.todo_ids) == []
    assert list(state.done_ids) == []


def test_tuple_arrays_are_accepted() -> None:
    reconciler, collection_store, _, _, _ = _wire()
    items = ({"id": "a"},)

    reconciler.apply_snapshot({"beatmapItems": items})

    assert collection_store.get().items is items


def test_explicit_unchanged_flag_suppresses_publish_and_keeps_memory() -> None:
    # Trust boundary with the sender: new arrays flagged as unchanged are ignored.
    reconciler, collection_store, _, collection_probe, _ = _wire()
    first = _snapshot()
    reconciler.apply_snapshot(first)
    published = collection_store.get()

    reconciler.apply_snapshot(
        {
            "beatmapItems": [{"id": "z"}],
            "todoIds": ["z"],
            "doneIds": [],
            "_itemsChanged": False,
        }
    )

    assert collection_probe.count == 1
    assert collection_store.get() is published
    assert reconciler.memory.items is first["beatmapItems"]
    assert reconciler.memory.todo_ids is first["todoIds"]
    assert reconciler.memory.done_ids is first["doneIds"]


def test_unchanged_flag_alias_is_honoured() -> None:
    reconciler, _, _, collection_probe, _ = _wire()

    reconciler.apply_snapshot({"beatmapItems": [], "itemsChanged": False})

    assert collection_probe.count == 0


@pytest.mark.parametrize("flag", [True, None, 0, "false", []])
def test_only_boolean_false_means_unchanged(flag: Any) -> None:
    reconciler, _, _, collection_probe, _ = _wire()

    reconciler.apply_snapshot({"beatmapItems": [], "_itemsChanged": flag})

    assert collection_probe.count == 1


def test_explicit_changed_flag_still_requires_new_references() -> None:
    reconciler, _, _, collection_probe, _ = _wire()
    snapshot = _snapshot(_itemsChanged=True)

    reconciler.apply_snapshot(snapshot)
    reconciler.apply_snapshot(snapshot)

    assert collection_probe.count == 1


# ------------------------------------------------------------------
# View reconciliation
# ------------------------------------------------------------------


def test_empty_snapshot_yields_default_view_state() -> None:
    reconciler, _, view_store, _, view_probe = _wire()
    view_store.set(DEFAULT_VIEW_STATE.model_copy(update={"view_mode": ViewMode.TODO}))
    view_probe.values.clear()

    reconciler.apply_snapshot({})

    assert view_probe.count == 1
    assert view_store.get() == DEFAULT_VIEW_STATE


def test_empty_snapshot_over_defaults_does_not_publish_view() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({})

    assert view_probe.count == 0
    assert view_store.get() is DEFAULT_VIEW_STATE


def test_settings_merge_over_defaults() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({"settings": {"groupMapsBySong": True}})

    assert view_probe.count == 1
    settings = view_store.get().settings
    assert settings["groupMapsBySong"] is True
    assert settings["ignoreGuestDifficulties"] is False


def test_unknown_settings_keys_pass_through() -> None:
    reconciler, _, view_store, _, _ = _wire()

    reconciler.apply_snapshot({"settings": {"groupMapsBySong": True, "volume": 0.3}})

    assert view_store.get().settings["volume"] == 0.3


def test_numeric_filter_strings_compare_equal_to_numbers() -> None:
    reconciler, _, view_store, _, view_probe = _wire()
    assert view_store.get().sr_filter.min == 0
    assert view_store.get().sr_filter.max == 10

    reconciler.apply_snapshot({"srFilter": {"min": "0", "max": "10"}})

    assert view_probe.count == 0


def test_numeric_filter_change_publishes() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({"srFilter": {"min": "2.5"}})

    assert view_probe.count == 1
    assert view_store.get().sr_filter.min == 2.5
    assert view_store.get().sr_filter.max == 10


def test_each_field_defaults_independently() -> None:
    reconciler, _, view_store, _, _ = _wire()

    reconciler.apply_snapshot(
        {
            "viewMode": "completed",
            "sortState": {"mode": "bogus", "direction": "asc"},
            "searchQuery": 12,
            "srFilter": {"min": None, "max": "7"},
            "effectiveMapperName": "Sotarks",
        }
    )

    view = view_store.get()
    assert view.view_mode == ViewMode.COMPLETED
    assert view.sort_state.mode == SortMode.DATE_ADDED
    assert view.sort_state.direction == SortDirection.ASC
    assert view.search_query == ""
    assert view.sr_filter.min == 0
    assert view.sr_filter.max == 7
    assert view.effective_mapper_name == "Sotarks"


def test_unknown_view_mode_falls_back_to_default() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({"viewMode": "archived"})

    assert view_probe.count == 0
    assert view_store.get().view_mode == ViewMode.ALL


def test_setting_value_compare_is_type_strict() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({"settings": {"groupMapsBySong": 0}})

    assert view_probe.count == 1
    assert view_store.get().settings["groupMapsBySong"] == 0


@pytest.mark.parametrize(
    ("mode", "direction", "expected"),
    [
        ("difficulty", "desc", SortMode.DIFFICULTY),
        ("mode", "asc", SortMode.MODE),
    ],
)
def test_sort_mode_switch_from_default_publishes_once(mode: str, direction: str, expected: SortMode) -> None:
    reconciler, _, view_store, _, view_probe = _wire()
    assert view_store.get().sort_state.mode == SortMode.DATE_ADDED

    reconciler.apply_snapshot({"sortState": {"mode": mode, "direction": direction}})
    reconciler.apply_snapshot({"sortState": {"mode": mode, "direction": direction}})

    assert view_probe.count == 1
    assert view_store.get().sort_state.mode == expected
    assert view_store.get().sort_state.direction == SortDirection(direction)


def test_numeric_setting_values_compare_by_value() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({"settings": {"groupMapsBySong": 1}})
    reconciler.apply_snapshot({"settings": {"groupMapsBySong": 1.0}})

    assert view_probe.count == 1
    assert view_store.get().settings["groupMapsBySong"] == 1

    reconciler.apply_snapshot({"settings": {"groupMapsBySong": True}})

    assert view_probe.count == 2
    assert view_store.get().settings["groupMapsBySong"] is True


# Change-detection granularity: only a fixed list of fields gates a publish.
# Render ids and unlisted settings ride along but never trigger one alone.


def test_render_ids_alone_do_not_publish_view() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({"itemsToRenderIds": ["a", "b"]})

    assert view_probe.count == 0
    assert view_store.get().items_to_render_ids == ()


def test_unlisted_setting_alone_does_not_publish_view() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot({"settings": {"autoRescan": True}})

    assert view_probe.count == 0
    assert "autoRescan" not in view_store.get().settings


def test_unlisted_fields_ride_along_with_a_listed_change() -> None:
    reconciler, _, view_store, _, view_probe = _wire()

    reconciler.apply_snapshot(
        {
            "searchQuery": "camellia",
            "itemsToRenderIds": ["a", "b"],
            "settings": {"autoRescan": True},
        }
    )

    assert view_probe.count == 1
    view = view_store.get()
    assert view.search_query == "camellia"
    assert view.items_to_render_ids == ["a", "b"]
    assert view.settings["autoRescan"] is True


def test_changed_view_fields_reports_fixed_field_list() -> None:
    candidate = DEFAULT_VIEW_STATE.model_copy(
        update={
            "view_mode": ViewMode.TODO,
            "settings": {"groupMapsBySong": True, "ignoreGuestDifficulties": False, "other": 1},
            "items_to_render_ids": ["a"],
        }
    )

    assert changed_view_fields(DEFAULT_VIEW_STATE, candidate) == ["viewMode", "settings.groupMapsBySong"]


def test_collection_and_view_are_reconciled_independently() -> None:
    reconciler, _, view_store, collection_probe, view_probe = _wire()
    snapshot = _snapshot()
    reconciler.apply_snapshot(snapshot)

    reconciler.apply_snapshot({**snapshot, "viewMode": "all"})

    assert collection_probe.count == 1
    assert view_probe.count == 2
    assert view_store.get().view_mode == ViewMode.ALL


def test_trace_snapshots_logs_summary(caplog: pytest.LogCaptureFixture) -> None:
    collection_store: WritableStore[CollectionState] = WritableStore(DEFAULT_COLLECTION_STATE)
    view_store: WritableStore[ViewState] = WritableStore(DEFAULT_VIEW_STATE)
    reconciler = SnapshotReconciler(collection_store, view_store, trace_snapshots=True)

    with caplog.at_level("DEBUG", logger="mosusync.reconciler"):
        reconciler.apply_snapshot({"beatmapItems": [{"id": n} for n in range(100)]})

    assert "<list:100 items>" in caplog.text
