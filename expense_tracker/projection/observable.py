"""
Observable state slots.

A slot has one writer (its projection) and any number of readers.
ObservableStore.publish assigns every slot in a batch before notifying
anyone, so a subscriber that reads several slots during a notification
sees one consistent snapshot.
"""

from typing import Any, Callable, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Observable(Generic[T]):
    """A value that notifies subscribers when it is published."""

    def __init__(self, name: str, initial: T):
        self.name = name
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """Register a callback; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _assign(self, value: T) -> None:
        self._value = value

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self._value)
            except Exception:
                logger.exception("subscriber_failed", slot=self.name)


class ObservableStore:
    """A named group of slots published together."""

    def __init__(self, **initial: Any):
        self._slots: dict[str, Observable] = {
            name: Observable(name, value) for name, value in initial.items()
        }
        self._batch_subscribers: list[Callable[[frozenset], None]] = []

    def __getitem__(self, name: str) -> Observable:
        return self._slots[name]

    def __contains__(self, name: str) -> bool:
        return name in self._slots

    def snapshot(self) -> dict[str, Any]:
        return {name: slot.value for name, slot in self._slots.items()}

    def subscribe(self, callback: Callable[[frozenset], None]) -> Unsubscribe:
        """Called once per publish with the names of the published slots."""
        self._batch_subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._batch_subscribers:
                self._batch_subscribers.remove(callback)

        return unsubscribe

    def publish(self, **values: Any) -> None:
        """Assign all given slots, then notify their subscribers."""
        unknown = set(values) - set(self._slots)
        if unknown:
            raise KeyError(f"Unknown slots: {sorted(unknown)}")

        for name, value in values.items():
            self._slots[name]._assign(value)

        for name in values:
            self._slots[name]._notify()
        names = frozenset(values)
        for callback in list(self._batch_subscribers):
            try:
                callback(names)
            except Exception:
                logger.exception("subscriber_failed", slots=sorted(names))
