"""Thread-safe ring buffer of chunk lifecycle events exposed via the API."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class WorldEvent:
    """A single lifecycle event (load, generate, evict, save, failure)."""

    tick: int
    category: str
    message: str
    chunk: tuple[int, int] | None = None


class EventLog:
    """Bounded event log. Writers append; readers snapshot a slice.

    Old events fall off the front once ``capacity`` is reached. Guarded by a
    simple lock since the auto-save thread writes too.
    """

    __slots__ = ("_buffer", "_lock")

    def __init__(self, capacity: int = 2000) -> None:
        self._buffer: deque[WorldEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, event: WorldEvent) -> None:
        with self._lock:
            self._buffer.append(event)

    def since_tick(self, tick: int) -> list[WorldEvent]:
        """Return all events with tick >= *tick*."""
        with self._lock:
            return [e for e in self._buffer if e.tick >= tick]

    def latest(self, count: int = 50) -> list[WorldEvent]:
        with self._lock:
            items = list(self._buffer)
        return items[-count:] if count > 0 else []

    def by_category(self, category: str) -> list[WorldEvent]:
        with self._lock:
            return [e for e in self._buffer if e.category == category]

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)
