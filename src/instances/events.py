"""Observer hooks fired by a running Instance."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventHook(Generic[T]):
    """A list of callbacks invoked synchronously, in subscription order.

    Callbacks run on whichever thread fires the hook (a stream reader thread for
    line events, the completing thread for the exit event). Supports ``+=`` and
    ``-=`` for subscribing and unsubscribing.
    """

    def __init__(self, name: str = "event") -> None:
        self.name = name
        self._callbacks: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[T], None]:
        if not callable(callback):
            error_msg = f"{self.name} callback must be callable, got {type(callback).__name__}"
            raise TypeError(error_msg)
        with self._lock:
            self._callbacks.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def __iadd__(self, callback: Callable[[T], None]) -> EventHook[T]:
        self.subscribe(callback)
        return self

    def __isub__(self, callback: Callable[[T], None]) -> EventHook[T]:
        self.unsubscribe(callback)
        return self

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def copy(self) -> EventHook[T]:
        """Return a hook with the same subscribers that is independent of this one."""
        clone: EventHook[T] = EventHook(self.name)
        with self._lock:
            clone._callbacks = list(self._callbacks)  # noqa: SLF001
        return clone

    def fire(self, value: T) -> None:
        """Invoke every callback with ``value``.

        A failing callback is logged and does not prevent the others from running,
        nor does it stop the thread that fired the hook.
        """
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(value)
            except Exception as e:  # noqa: BLE001
                logger.warning("%s callback %r failed: %s", self.name, callback, e)
