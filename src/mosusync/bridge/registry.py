"""Named bridge lookup and snapshot subscription.

A bridge is any object the backend exposes under a well-known name. It may
offer ``subscribe(callback)`` for pushed snapshots, ``get_state()`` for a
direct pull, and ``dispatch(action)`` for outbound requests; every capability
is optional and probed at call time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

from mosusync._constants import DEFAULT_POLL_INTERVAL
from mosusync.exceptions import BridgeError
from mosusync.state.store import Unsubscribe

_logger = logging.getLogger(__name__)

R = TypeVar("R")

Disconnect = Callable[[], None]


@runtime_checkable
class SnapshotBridge(Protocol):
    def subscribe(self, callback: Callable[[Any], None]) -> Unsubscribe | None: ...


@runtime_checkable
class ActionBridge(Protocol):
    def dispatch(self, action: str) -> None: ...


class BridgeRegistry:
    """Bridges by name; a bridge may appear or go away at any time."""

    def __init__(self) -> None:
        self._bridges: dict[str, Any] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._bridges

    def get(self, name: str) -> Any | None:
        return self._bridges.get(name)

    def register(self, name: str, bridge: Any) -> Callable[[], None]:
        """Register *bridge* under *name*; returns a callable undoing it."""
        if not name:
            raise ValueError("bridge name must be non-empty")
        self._bridges[name] = bridge

        def unregister() -> None:
            if self._bridges.get(name) is bridge:
                del self._bridges[name]

        return unregister

    def unregister(self, name: str) -> None:
        self._bridges.pop(name, None)


def with_bridge(registry: BridgeRegistry, bridge_name: str, fn: Callable[[Any], R]) -> R | None:
    """Call ``fn(bridge)`` if the named bridge is registered, else ``None``."""
    if not bridge_name or not callable(fn):
        return None
    bridge = registry.get(bridge_name)
    if bridge is None:
        return None
    return fn(bridge)


def _default_snapshot_fallback(bridge: Any) -> Any:
    get_state = getattr(bridge, "get_state", None)
    return get_state() if callable(get_state) else None


def _noop() -> None:
    return None


def connect_bridge(
    registry: BridgeRegistry,
    bridge_name: str,
    apply_snapshot: Callable[[Any], None],
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    get_snapshot_fallback: Callable[[Any], Any] = _default_snapshot_fallback,
    loop: asyncio.AbstractEventLoop | None = None,
    logger: logging.Logger | None = None,
) -> Disconnect:
    """Feed snapshots from the named bridge into *apply_snapshot*.

    If the bridge is registered, subscribe to it right away; otherwise poll
    the registry every *poll_interval* seconds on the event loop until a
    subscribable bridge shows up. Until some snapshot has been applied, one
    is pulled with *get_snapshot_fallback* so a snapshot emitted before the
    subscription existed is not missed. ``None`` snapshots are skipped.

    Returns a callable that stops polling and unsubscribes.
    """
    log = logger or _logger
    hydrated = False
    stopped = False
    unsubscribe: Unsubscribe = _noop
    timer: asyncio.TimerHandle | None = None

    def deliver(snapshot: Any) -> None:
        nonlocal hydrated
        if snapshot is None:
            return
        apply_snapshot(snapshot)
        hydrated = True

    def attach(bridge: Any) -> Unsubscribe | None:
        result: Unsubscribe | None = None
        if isinstance(bridge, SnapshotBridge):
            handle = bridge.subscribe(deliver)
            result = handle if callable(handle) else _noop
        if not hydrated:
            deliver(get_snapshot_fallback(bridge))
        return result

    def try_connect() -> Unsubscribe | None:
        return with_bridge(registry, bridge_name, attach)

    direct = try_connect()
    if direct is not None:
        log.debug("Bridge %s connected", bridge_name)
        return direct

    if loop is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise BridgeError(
                f"Bridge {bridge_name} is not available and there is no event loop to poll on",
                bridge_name=bridge_name,
            ) from exc
    poll_loop = loop
    log.debug("Bridge %s not available yet, polling every %.3fs", bridge_name, poll_interval)

    def tick() -> None:
        nonlocal timer, unsubscribe
        timer = None
        if stopped:
            return
        try:
            resolved = try_connect()
        except Exception:
            log.debug("Bridge %s connect attempt failed", bridge_name, exc_info=True)
            resolved = None
        if resolved is not None:
            unsubscribe = resolved
            log.debug("Bridge %s connected after polling", bridge_name)
            return
        timer = poll_loop.call_later(poll_interval, tick)

    timer = poll_loop.call_later(poll_interval, tick)

    def disconnect() -> None:
        nonlocal stopped, timer
        stopped = True
        if timer is not None:
            timer.cancel()
            timer = None
        unsubscribe()

    return disconnect
