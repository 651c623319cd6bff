"""High-level wiring of stores, reconciler and bridges."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from mosusync.bridge.actions import ActionDispatcher
from mosusync.bridge.mqtt import MqttBridge
from mosusync.bridge.registry import BridgeRegistry, Disconnect, connect_bridge
from mosusync.config import SyncConfig
from mosusync.reconciler import SnapshotReconciler
from mosusync.state.models import DEFAULT_COLLECTION_STATE, DEFAULT_VIEW_STATE, CollectionState, ViewState
from mosusync.state.store import WritableStore
from mosusync.state.views import CoreStateViews

_logger = logging.getLogger(__name__)


class CoreStateSync:
    """Keep local reactive stores in sync with the backend's core state.

    Usage::

        async with CoreStateSync(config, registry) as sync:
            sync.views.items_for_view.subscribe(render)
            sync.actions.refresh_last_directory()
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        registry: BridgeRegistry | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or SyncConfig()
        self._registry = registry if registry is not None else BridgeRegistry()
        self._logger = logger or _logger

        self.collection_store: WritableStore[CollectionState] = WritableStore(
            DEFAULT_COLLECTION_STATE, name="collection", logger=self._logger
        )
        self.view_store: WritableStore[ViewState] = WritableStore(DEFAULT_VIEW_STATE, name="view", logger=self._logger)
        self.reconciler = SnapshotReconciler(
            self.collection_store,
            self.view_store,
            trace_snapshots=self._config.trace_snapshots,
            logger=self._logger,
        )
        self.views = CoreStateViews(self.collection_store, self.view_store)
        self.actions = ActionDispatcher(self._registry, self._config.actions_bridge)

        self._disconnect: Disconnect | None = None
        self._mqtt: MqttBridge | None = None
        self._mqtt_unregisters: list[Callable[[], None]] = []

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def registry(self) -> BridgeRegistry:
        return self._registry

    @property
    def is_connected(self) -> bool:
        return self._disconnect is not None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start feeding core-state snapshots into the reconciler."""
        if self._disconnect is not None:
            return
        self._disconnect = connect_bridge(
            self._registry,
            self._config.core_state_bridge,
            self.reconciler.apply_snapshot,
            poll_interval=self._config.poll_interval,
            loop=loop,
            logger=self._logger,
        )

    def disconnect(self) -> None:
        disconnect = self._disconnect
        self._disconnect = None
        if disconnect is not None:
            disconnect()

    async def __aenter__(self) -> CoreStateSync:
        loop = asyncio.get_running_loop()
        if self._config.mqtt_enabled:
            await self._start_mqtt(loop)
        self.connect(loop=loop)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.disconnect()
        await self._stop_mqtt()

    async def _start_mqtt(self, loop: asyncio.AbstractEventLoop) -> None:
        bridge = MqttBridge(
            loop=loop,
            host=self._config.mqtt_host,
            port=self._config.mqtt_port,
            snapshot_topic=self._config.snapshot_topic,
            actions_topic=self._config.actions_topic,
            keepalive=self._config.mqtt_keepalive,
            logger=self._logger,
        )
        await loop.run_in_executor(None, bridge.start)
        self._mqtt = bridge
        self._mqtt_unregisters = [
            self._registry.register(self._config.core_state_bridge, bridge),
            self._registry.register(self._config.actions_bridge, bridge),
        ]

    async def _stop_mqtt(self) -> None:
        bridge = self._mqtt
        self._mqtt = None
        for unregister in self._mqtt_unregisters:
            unregister()
        self._mqtt_unregisters = []
        if bridge is None:
            return
        await asyncio.get_running_loop().run_in_executor(None, bridge.stop)
