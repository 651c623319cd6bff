"""Snapshot reconciliation.

This is the only component allowed to write incoming snapshots into the
collection and view stores. For every snapshot it decides, per slice, whether
the store must be replaced or left untouched so that its current object stays
reference-stable for downstream consumers.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from typing import Any

from mosusync._constants import RENDER_RELEVANT_SETTINGS
from mosusync._summarize import summarize_for_log
from mosusync.ingestion.normalize import NormalizedSnapshot, normalize_snapshot
from mosusync.state.models import CollectionState, ViewState
from mosusync.state.store import ReactiveStore

_logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ChangeGuardMemory:
    """References of the last accepted collection snapshot.

    Compared by identity only: the sender promises that an unchanged array is
    re-sent as the same object, which keeps the check O(1) regardless of
    collection size.
    """

    items: Any | None = None
    todo_ids: Any | None = None
    done_ids: Any | None = None

    def resolve(self, snapshot: NormalizedSnapshot) -> tuple[Any, Any, Any]:
        """Pick each candidate from the snapshot, falling back to memory."""

        def pick(candidate: Any | None, remembered: Any | None) -> Any:
            if candidate is not None:
                return candidate
            return remembered if remembered is not None else []

        return (
            pick(snapshot.items, self.items),
            pick(snapshot.todo_ids, self.todo_ids),
            pick(snapshot.done_ids, self.done_ids),
        )

    def differs(self, items: Any, todo_ids: Any, done_ids: Any) -> bool:
        return items is not self.items or todo_ids is not self.todo_ids or done_ids is not self.done_ids

    def remember(self, items: Any, todo_ids: Any, done_ids: Any) -> None:
        self.items = items
        self.todo_ids = todo_ids
        self.done_ids = done_ids


def _setting_getter(key: str) -> Callable[[ViewState], Any]:
    return lambda view: view.setting(key)


# Fields whose change triggers a view publish. Anything else (render ids,
# other settings keys) only rides along with a publish triggered here.
_COMPARED_VIEW_FIELDS: tuple[tuple[str, Callable[[ViewState], Any]], ...] = (
    ("viewMode", lambda view: view.view_mode),
    ("searchQuery", lambda view: view.search_query),
    ("srFilter.min", lambda view: float(view.sr_filter.min)),
    ("srFilter.max", lambda view: float(view.sr_filter.max)),
    ("sortState.mode", lambda view: view.sort_state.mode),
    ("sortState.direction", lambda view: view.sort_state.direction),
    *((f"settings.{key}", _setting_getter(key)) for key in RENDER_RELEVANT_SETTINGS),
    ("effectiveMapperName", lambda view: view.effective_mapper_name),
)


def _differs(current: Any, candidate: Any) -> bool:
    if current is candidate:
        return False
    # True and 1 are different settings values; 1 and 1.0 are not.
    if isinstance(current, bool) or isinstance(candidate, bool):
        return type(current) is not type(candidate) or current != candidate
    if isinstance(current, (int, float)) and isinstance(candidate, (int, float)):
        return current != candidate
    return type(current) is not type(candidate) or current != candidate


def changed_view_fields(current: ViewState, candidate: ViewState) -> list[str]:
    """Return the compared fields that differ between two view states."""
    return [name for name, getter in _COMPARED_VIEW_FIELDS if _differs(getter(current), getter(candidate))]


class SnapshotReconciler:
    """Absorb raw snapshots into a collection store and a view store.

    ``apply_snapshot`` never raises for malformed input: a non-object
    snapshot is ignored, and malformed fields fall back to defaults (view)
    or to the last accepted arrays (collection).
    """

    def __init__(
        self,
        collection_store: ReactiveStore[CollectionState],
        view_store: ReactiveStore[ViewState],
        *,
        memory: ChangeGuardMemory | None = None,
        trace_snapshots: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self._collection_store = collection_store
        self._view_store = view_store
        self._memory = memory if memory is not None else ChangeGuardMemory()
        self._trace_snapshots = trace_snapshots
        self._logger = logger or _logger

    @property
    def memory(self) -> ChangeGuardMemory:
        return self._memory

    def apply_snapshot(self, raw: Any) -> None:
        """Reconcile one snapshot; a non-mapping *raw* is a no-op."""
        if self._trace_snapshots:
            self._logger.debug("Snapshot received: %s", summarize_for_log(raw))

        snapshot = normalize_snapshot(raw)
        if snapshot is None:
            self._logger.debug("Ignoring non-object snapshot of type %s", type(raw).__name__)
            return

        self._reconcile_collection(snapshot)
        self._reconcile_view(snapshot)

    def _reconcile_collection(self, snapshot: NormalizedSnapshot) -> bool:
        items, todo_ids, done_ids = self._memory.resolve(snapshot)

        # An explicit "unchanged" from the sender skips the identity check,
        # even when it sent new arrays.
        if not snapshot.items_changed:
            return False
        if not self._memory.differs(items, todo_ids, done_ids):
            return False

        self._memory.remember(items, todo_ids, done_ids)
        self._collection_store.set(CollectionState(items=items, todo_ids=todo_ids, done_ids=done_ids))
        self._logger.debug(
            "Collection published items=%d todo=%d done=%d",
            len(items),
            len(todo_ids),
            len(done_ids),
        )
        return True

    def _reconcile_view(self, snapshot: NormalizedSnapshot) -> bool:
        candidate = snapshot.view
        changed = changed_view_fields(self._view_store.get(), candidate)
        if not changed:
            return False

        self._view_store.set(candidate)
        self._logger.debug("View published changed=%s", changed)
        return True
