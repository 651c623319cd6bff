"""MQTT-backed bridge.

Snapshots are published by the backend as JSON on ``<prefix>/<bridge name>``,
ideally retained so a late subscriber still receives the last value. Actions
go out as empty messages on ``<prefix>/<actions bridge>/<action>``.

paho-mqtt runs its network loop on its own thread; every decoded snapshot is
handed to the asyncio loop with ``call_soon_threadsafe`` so subscribers (and
the reconciler behind them) only ever run on the loop thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from mosusync._summarize import summarize_for_log
from mosusync.exceptions import BridgeError, BridgePayloadError
from mosusync.state.store import SubscriberList, Unsubscribe


def decode_bridge_payload(payload: bytes) -> Any:
    """Decode an MQTT payload into a snapshot value."""
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BridgePayloadError(f"Undecodable bridge payload ({len(payload)} bytes)") from exc


class MqttBridge:
    """Threaded paho-mqtt bridge delivering snapshots onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        host: str,
        port: int,
        snapshot_topic: str,
        actions_topic: str,
        keepalive: int = 60,
        client_id: str = "",
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._host = host
        self._port = port
        self._snapshot_topic = snapshot_topic
        self._actions_topic = actions_topic
        self._keepalive = keepalive
        self._client_id = client_id
        self._logger = logger or logging.getLogger(__name__)
        self._subscribers: SubscriberList[Any] = SubscriberList(snapshot_topic, self._logger)
        self._client: mqtt.Client | None = None
        self._running = False
        self._state: Any = None

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    # ------------------------------------------------------------------
    # Bridge capabilities
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[Any], None]) -> Unsubscribe:
        return self._subscribers.add(callback)

    def get_state(self) -> Any:
        """Last snapshot delivered on the loop, or ``None``."""
        return self._state

    def dispatch(self, action: str) -> None:
        client = self._client
        if client is None or not self._running:
            raise BridgeError("MQTT bridge is not running", bridge_name=self._actions_topic)
        topic = f"{self._actions_topic}/{action}"
        self._logger.debug("MQTT publishing action topic=%s", topic)
        client.publish(topic, payload=b"", qos=1)

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._logger.debug("MQTT connected, subscribing topic=%s", self._snapshot_topic)
        client.subscribe(self._snapshot_topic, qos=1)

    def _on_message(self, _client: Any, _userdata: Any, msg: Any) -> None:
        try:
            snapshot = decode_bridge_payload(msg.payload)
        except BridgePayloadError:
            self._logger.debug("MQTT payload decode failure topic=%s", msg.topic, exc_info=True)
            return
        self._logger.debug("MQTT snapshot topic=%s payload=%s", msg.topic, summarize_for_log(snapshot))
        self._loop.call_soon_threadsafe(self._deliver, snapshot)

    def _on_disconnect(
        self,
        _client: Any,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)

    def _deliver(self, snapshot: Any) -> None:
        self._state = snapshot
        self._subscribers.notify(snapshot)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Connect and start the network loop. Blocking; run in an executor."""
        self.stop()
        self._logger.debug(
            "MQTT bridge start host=%s port=%s topic=%s",
            self._host,
            self._port,
            self._snapshot_topic,
        )
        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        try:
            client.connect(self._host, self._port, keepalive=self._keepalive)
        except OSError as exc:
            raise BridgeError(
                f"MQTT broker {self._host}:{self._port} unreachable",
                bridge_name=self._snapshot_topic,
            ) from exc
        client.loop_start()

        self._client = client
        self._running = True

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
