"""Runtime configuration for mosusync."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from mosusync._constants import ACTIONS_BRIDGE, CORE_STATE_BRIDGE, DEFAULT_POLL_INTERVAL
from mosusync.exceptions import MosuConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, cast: type[int] | type[float]) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise MosuConfigError(f"{key} must be numeric, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Synchronization configuration.

    Parameters
    ----------
    core_state_bridge : str
        Name of the bridge delivering core-state snapshots.
    actions_bridge : str
        Name of the bridge accepting action requests.
    poll_interval : float
        Seconds between lookups while the core-state bridge is not
        registered yet.
    mqtt_enabled : bool
        Register an MQTT-backed bridge when the sync starts.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic_prefix : str
        Topic prefix; snapshots arrive on ``<prefix>/<core_state_bridge>``.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    trace_snapshots : bool
        Log a summarized copy of every received snapshot at DEBUG.
    """

    core_state_bridge: str = CORE_STATE_BRIDGE
    actions_bridge: str = ACTIONS_BRIDGE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic_prefix: str = "mosu"
    mqtt_keepalive: int = 60
    trace_snapshots: bool = False

    def __post_init__(self) -> None:
        if not self.core_state_bridge.strip():
            raise MosuConfigError("core_state_bridge must be non-empty")
        if not self.actions_bridge.strip():
            raise MosuConfigError("actions_bridge must be non-empty")
        if self.poll_interval <= 0:
            raise MosuConfigError("poll_interval must be positive")

    @property
    def snapshot_topic(self) -> str:
        return f"{self.mqtt_topic_prefix}/{self.core_state_bridge}"

    @property
    def actions_topic(self) -> str:
        return f"{self.mqtt_topic_prefix}/{self.actions_bridge}"

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from ``MOSU_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "MOSU_CORE_STATE_BRIDGE": "core_state_bridge",
            "MOSU_ACTIONS_BRIDGE": "actions_bridge",
            "MOSU_MQTT_HOST": "mqtt_host",
            "MOSU_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "MOSU_POLL_INTERVAL": ("poll_interval", float),
            "MOSU_MQTT_PORT": ("mqtt_port", int),
            "MOSU_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_number(env, env_key, cast)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("MOSU_MQTT_ENABLED"), False)

        if "trace_snapshots" not in overrides:
            config_kwargs["trace_snapshots"] = _env_bool(env.get("MOSU_TRACE_SNAPSHOTS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
