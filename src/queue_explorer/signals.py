"""In-process change notification.

A ``Signal`` keeps a list of listeners; ``subscribe`` returns a callable that
removes the listener again. Listener failures are logged and do not stop
delivery to the remaining listeners.
"""

from collections.abc import Callable
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Signal(Generic[T]):
    """A named event with synchronous listeners."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, payload: T) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception as e:
                logger.error("signal_listener_failed", signal=self.name, error=str(e))

    def clear(self) -> None:
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
