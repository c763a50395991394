"""Minimal listener registry used by process-local state holders."""

from __future__ import annotations

import logging
from typing import Any, Callable, List

LOGGER = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Observable:
    """Keep a list of callbacks and notify them synchronously."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` and return a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, *args: Any) -> None:
        # A failing listener must not break the producer or the other listeners.
        for listener in list(self._listeners):
            try:
                listener(*args)
            except Exception:
                LOGGER.exception("Listener %r failed", listener)
