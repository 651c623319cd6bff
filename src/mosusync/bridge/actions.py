"""Fire-and-forget action requests sent to the backend.

Actions carry no payload and return nothing; the only feedback is whether an
actions bridge was there to take the request.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from mosusync._constants import ACTIONS_BRIDGE
from mosusync.bridge.registry import ActionBridge, BridgeRegistry, with_bridge

_logger = logging.getLogger(__name__)


class BridgeAction(StrEnum):
    IMPORT_OSU_FILE = "importOsuFile"
    IMPORT_BY_MAPPER = "importByMapper"
    IMPORT_FROM_FOLDER = "importFromFolder"
    REFRESH_LAST_DIRECTORY = "refreshLastDirectory"
    CLEAR_ALL = "clearAll"


def request_action(registry: BridgeRegistry, bridge_name: str, action: BridgeAction) -> bool:
    """Send *action* through the named bridge.

    Returns ``False`` when no bridge is registered or it cannot dispatch.
    Transport failures raised by the bridge propagate.
    """

    def send(bridge: Any) -> bool:
        if not isinstance(bridge, ActionBridge):
            return False
        bridge.dispatch(action.value)
        return True

    sent = bool(with_bridge(registry, bridge_name, send))
    if not sent:
        _logger.debug("Action %s dropped: bridge %s unavailable", action.value, bridge_name)
    return sent


class ActionDispatcher:
    def __init__(self, registry: BridgeRegistry, bridge_name: str = ACTIONS_BRIDGE) -> None:
        self._registry = registry
        self._bridge_name = bridge_name

    def request(self, action: BridgeAction) -> bool:
        return request_action(self._registry, self._bridge_name, action)

    def import_osu_file(self) -> bool:
        return self.request(BridgeAction.IMPORT_OSU_FILE)

    def import_by_mapper(self) -> bool:
        return self.request(BridgeAction.IMPORT_BY_MAPPER)

    def import_from_folder(self) -> bool:
        return self.request(BridgeAction.IMPORT_FROM_FOLDER)

    def refresh_last_directory(self) -> bool:
        return self.request(BridgeAction.REFRESH_LAST_DIRECTORY)

    def clear_all(self) -> bool:
        return self.request(BridgeAction.CLEAR_ALL)
