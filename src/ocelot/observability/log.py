"""Event log — bounded, thread-safe store of build events.

Keeps the most recent ``BuildEvent`` objects in a ring buffer so a
long-running ``ocelot watch`` session can be inspected without growing
without bound.

Thread Safety:
    All methods take a ``threading.Lock``.  The watcher thread, the build
    worker thread and the event loop may all append concurrently.

"""

import threading
from collections import Counter, deque
from collections.abc import Iterable
from typing import Any

from ocelot.observability.events import BuildEvent


def _event_path(event: BuildEvent) -> str:
    return getattr(event, "path", None) or getattr(event, "trigger_path", None) or ""


class EventLog:
    """Ring buffer of build events with filtering.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[BuildEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: BuildEvent) -> None:
        with self._lock:
            self._events.append(event)

    def extend(self, events: Iterable[BuildEvent]) -> None:
        with self._lock:
            self._events.extend(events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[BuildEvent]:
        """Matching events, newest first.

        Args:
            event_type: Only events of this class.
            since_ns: Only events stamped at or after this monotonic time.
            path: Substring that the event's URL/path must contain.
            limit: Maximum number of events returned.

        """
        with self._lock:
            snapshot = list(self._events)
        results: list[BuildEvent] = []
        for event in reversed(snapshot):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and event.timestamp_ns < since_ns:
                continue
            if path is not None and path not in _event_path(event):
                continue
            results.append(event)
        return results

    def latest(self, event_type: type) -> BuildEvent | None:
        """Most recent event of ``event_type``."""
        found = self.query(event_type=event_type, limit=1)
        return found[0] if found else None

    def recent(self, n: int = 20) -> list[BuildEvent]:
        """The ``n`` most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Drop every event; returns how many were dropped."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Counts per event type."""
        with self._lock:
            counts = Counter(type(e).__name__ for e in self._events)
            total = len(self._events)
        return {
            "total": total,
            "max_events": self._max_events,
            "by_type": dict(counts),
        }
