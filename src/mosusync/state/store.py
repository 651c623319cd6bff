"""Minimal reactive store primitives.

Change notification is reference based: a store only notifies when it is
given a different object, never by comparing contents. Everything above this
layer relies on that to keep unchanged slices from re-triggering consumers.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, Protocol, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

Unsubscribe = Callable[[], None]


class ReadableStore(Protocol[T_co]):
    def get(self) -> T_co: ...

    def subscribe(self, callback: Callable[[T_co], None]) -> Unsubscribe: ...


class ReactiveStore(Protocol[T]):
    """Capability interface the reconciler writes through."""

    def get(self) -> T: ...

    def set(self, value: T) -> None: ...

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe: ...


class SubscriberList(Generic[T]):
    """Ordered callbacks notified synchronously; a failing callback is logged."""

    def __init__(self, owner: str, logger: logging.Logger) -> None:
        self._owner = owner
        self._logger = logger
        self._callbacks: list[Callable[[T], None]] = []

    def __len__(self) -> int:
        return len(self._callbacks)

    def add(self, callback: Callable[[T], None]) -> Unsubscribe:
        self._callbacks.append(callback)
        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            with contextlib.suppress(ValueError):
                self._callbacks.remove(callback)

        return unsubscribe

    def notify(self, value: T) -> None:
        # Snapshot the list: callbacks may unsubscribe while being notified.
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                self._logger.exception("Subscriber of %s failed", self._owner)


class WritableStore(Generic[T]):
    """In-memory store with synchronous subscriber notification.

    ``subscribe`` does not call the callback with the current value; callers
    that need it read :meth:`get` first.
    """

    def __init__(self, initial: T, *, name: str = "store", logger: logging.Logger | None = None) -> None:
        self._value = initial
        self._name = name
        self._subscribers: SubscriberList[T] = SubscriberList(name, logger or _logger)

    @property
    def name(self) -> str:
        return self._name

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value is self._value:
            return
        self._value = value
        self._subscribers.notify(value)

    def update(self, fn: Callable[[T], T]) -> None:
        self.set(fn(self._value))

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        return self._subscribers.add(callback)


class DerivedStore(Generic[T]):
    """Read-only store computed from one or more source stores.

    While it has subscribers it listens to its sources and caches the
    computed value, notifying only when ``fn`` returns a different object.
    Without subscribers, :meth:`get` computes on demand.
    """

    def __init__(
        self,
        sources: Sequence[ReadableStore[Any]],
        fn: Callable[..., T],
        *,
        name: str = "derived",
        logger: logging.Logger | None = None,
    ) -> None:
        if not sources:
            raise ValueError("DerivedStore needs at least one source")
        self._sources = tuple(sources)
        self._fn = fn
        self._name = name
        self._subscribers: SubscriberList[T] = SubscriberList(name, logger or _logger)
        self._source_unsubscribes: list[Unsubscribe] = []
        self._value: T | None = None
        self._active = False

    def _compute(self) -> T:
        return self._fn(*(source.get() for source in self._sources))

    def _on_source_change(self, _value: Any) -> None:
        value = self._compute()
        if value is self._value:
            return
        self._value = value
        self._subscribers.notify(value)

    def _start(self) -> None:
        self._value = self._compute()
        self._source_unsubscribes = [source.subscribe(self._on_source_change) for source in self._sources]
        self._active = True

    def _stop(self) -> None:
        for unsubscribe in self._source_unsubscribes:
            unsubscribe()
        self._source_unsubscribes = []
        self._active = False
        self._value = None

    def get(self) -> T:
        if self._active:
            return self._value  # type: ignore[return-value]
        return self._compute()

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        if not self._active:
            self._start()
        remove = self._subscribers.add(callback)

        def unsubscribe() -> None:
            remove()
            if self._active and not len(self._subscribers):
                self._stop()

        return unsubscribe
