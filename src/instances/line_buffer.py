"""Bounded line buffer used to capture one output stream."""

from __future__ import annotations

import threading


class LineBuffer:
    """Thread-safe ordered line store with cap-and-drop semantics.

    Once ``capacity`` lines are stored, further lines are discarded. The producer
    is never blocked and older lines are never evicted. A capacity of ``None``
    means unbounded.
    """

    def __init__(self, capacity: int | None = None) -> None:
        if capacity is not None and capacity < 0:
            error_msg = f"capacity must be >= 0 or None, got {capacity}"
            raise ValueError(error_msg)
        self._capacity = capacity
        self._lines: list[str] = []
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int | None:
        return self._capacity

    @property
    def dropped(self) -> int:
        """Number of lines discarded because the buffer was full."""
        with self._lock:
            return self._dropped

    @property
    def full(self) -> bool:
        with self._lock:
            return self._is_full()

    def _is_full(self) -> bool:
        return self._capacity is not None and len(self._lines) >= self._capacity

    def append(self, line: str) -> bool:
        """Store ``line`` unless the buffer is full.

        Returns:
            True if the line was stored, False if it was dropped.
        """
        with self._lock:
            if self._is_full():
                self._dropped += 1
                return False
            self._lines.append(line)
            return True

    def snapshot(self) -> tuple[str, ...]:
        """Return an immutable copy of the current contents in insertion order."""
        with self._lock:
            return tuple(self._lines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
