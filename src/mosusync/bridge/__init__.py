"""Bridge layer.

Transports that deliver snapshots to the reconciler and carry action
requests back to the backend.
"""

from mosusync.bridge.actions import ActionDispatcher, BridgeAction, request_action
from mosusync.bridge.memory import InMemoryBridge
from mosusync.bridge.registry import BridgeRegistry, connect_bridge, with_bridge

__all__ = [
    "ActionDispatcher",
    "BridgeAction",
    "BridgeRegistry",
    "InMemoryBridge",
    "connect_bridge",
    "request_action",
    "with_bridge",
]
