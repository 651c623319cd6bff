"""mosusync - reconcile backend core-state snapshots into reactive stores."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mosusync")
except PackageNotFoundError:
    __version__ = "0+local"
from mosusync.bridge import (
    ActionDispatcher,
    BridgeAction,
    BridgeRegistry,
    InMemoryBridge,
    connect_bridge,
    with_bridge,
)
from mosusync.config import SyncConfig
from mosusync.exceptions import BridgeError, BridgePayloadError, MosuConfigError, MosuSyncError
from mosusync.reconciler import ChangeGuardMemory, SnapshotReconciler
from mosusync.state.models import (
    DEFAULT_COLLECTION_STATE,
    DEFAULT_SETTINGS,
    DEFAULT_VIEW_STATE,
    CollectionState,
    SortDirection,
    SortMode,
    SortState,
    SrFilter,
    ViewMode,
    ViewState,
)
from mosusync.state.store import DerivedStore, ReactiveStore, WritableStore
from mosusync.sync import CoreStateSync

__all__ = [
    "__version__",
    "ActionDispatcher",
    "BridgeAction",
    "BridgeError",
    "BridgePayloadError",
    "BridgeRegistry",
    "ChangeGuardMemory",
    "CollectionState",
    "CoreStateSync",
    "DEFAULT_COLLECTION_STATE",
    "DEFAULT_SETTINGS",
    "DEFAULT_VIEW_STATE",
    "DerivedStore",
    "InMemoryBridge",
    "MosuConfigError",
    "MosuSyncError",
    "ReactiveStore",
    "SnapshotReconciler",
    "SortDirection",
    "SortMode",
    "SortState",
    "SrFilter",
    "SyncConfig",
    "ViewMode",
    "ViewState",
    "WritableStore",
    "connect_bridge",
    "with_bridge",
]
