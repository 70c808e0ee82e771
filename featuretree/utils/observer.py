"""Synchronous change notification for the tree store."""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Signal:
    """
    Ordered list of listeners called synchronously on `emit`.

    A listener that raises is logged and skipped; later listeners still run.
    """

    def __init__(self, name: str = "signal"):
        self.name = name
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def connect(self, listener: Listener) -> Callable[[], None]:
        """Subscribe `listener`; returns a callable that unsubscribes it."""
        if listener not in self._listeners:
            self._listeners.append(listener)
        return lambda: self.disconnect(listener)

    def disconnect(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, *args, **kwargs) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(*args, **kwargs)
            except Exception as e:
                logger.error(f"[Signal:{self.name}] Listener {listener!r} failed: {e}", exc_info=e)
