"""Minimal publish/subscribe primitive."""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

log = logging.getLogger(__name__)


class Signal(Generic[T]):
    """A registry of listener callbacks invoked synchronously on :meth:`emit`.

    Subscribers own their subscription lifetime: :meth:`connect` returns a
    callable that disconnects the listener again.

    :param name: Label used in log messages.
    """

    def __init__(self, name: str = "") -> None:
        self._name = name
        self._listeners: list[Callable[[T], object]] = []

    def connect(self, listener: Callable[[T], object]) -> Callable[[], None]:
        """Subscribe ``listener`` and return its unsubscribe function."""
        self._listeners.append(listener)

        def disconnect() -> None:
            self.disconnect(listener)

        return disconnect

    def disconnect(self, listener: Callable[[T], object]) -> None:
        """Remove ``listener``. Unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, payload: T) -> None:
        """Deliver ``payload`` to every listener.

        A failing listener is logged and does not stop delivery to the others.
        """
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception:
                log.exception("Listener %r for signal %r failed", listener, self._name)

    def __len__(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"Signal({self._name!r}, listeners={len(self._listeners)})"
