"""In-process bridge with last-value-wins delivery."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from mosusync.state.store import SubscriberList, Unsubscribe

_logger = logging.getLogger(__name__)


class InMemoryBridge:
    """Bridge living in the same process as the reconciler.

    ``publish`` keeps the latest snapshot for :meth:`get_state` and pushes it
    to subscribers synchronously. Dispatched actions are recorded in order.
    """

    def __init__(
        self,
        initial: Any = None,
        *,
        on_action: Callable[[str], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._state = initial
        self._on_action = on_action
        self._subscribers: SubscriberList[Any] = SubscriberList("in-memory bridge", logger or _logger)
        self.dispatched: list[str] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, snapshot: Any) -> None:
        self._state = snapshot
        self._subscribers.notify(snapshot)

    def get_state(self) -> Any:
        return self._state

    def subscribe(self, callback: Callable[[Any], None]) -> Unsubscribe:
        return self._subscribers.add(callback)

    def dispatch(self, action: str) -> None:
        self.dispatched.append(action)
        if self._on_action is not None:
            self._on_action(action)
