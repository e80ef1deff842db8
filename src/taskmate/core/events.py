# src/taskmate/core/events.py

"""
Minimal synchronous publish/subscribe.

State holders (session, filters) emit events; the orchestrating layer subscribes
and decides what I/O to run. Listener failures are logged and never reach the emitter.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")


class Signal(Generic[E]):
    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Callable[[E], None]] = []

    def subscribe(self, listener: Callable[[E], None]) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Callable[[E], None]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, event: E) -> None:
        # Copy: a listener may unsubscribe itself while we iterate.
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed on signal %s", self._name)

    def __len__(self) -> int:
        return len(self._listeners)
