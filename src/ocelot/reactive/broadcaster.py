"""Reload broadcaster — tells connected clients which URLs changed.

The in-process side of live reload: clients subscribe to the URL they
are viewing (or ``*`` for everything) and receive a ``ReloadEvent`` on
their queue when that URL's output changes.  Transport (SSE, websocket)
is left to whoever drains the queues.
"""

from __future__ import annotations

import asyncio
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

ALL_PAGES = "*"


@dataclass(frozen=True, slots=True)
class ReloadEvent:
    """URLs whose output changed in one successful build."""

    urls: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ReloadClient:
    """A subscribed client.

    Attributes:
        client_id: Unique identifier for this client.
        url: The page URL this client is viewing, or ``*``.
        queue: Events for this client.

    """

    client_id: str
    url: str
    queue: asyncio.Queue[ReloadEvent] = field(
        default_factory=asyncio.Queue, compare=False, hash=False,
    )


class Broadcaster:
    """Subscriber registry and ``notify`` implementation.

    Thread-safe: the subscriber map is protected by a lock, and events are
    handed to the owning loop with ``call_soon_threadsafe`` because builds
    notify from a worker thread.

    Args:
        loop: Loop owning the client queues; when None, queues are fed directly.

    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._subscribers: dict[str, set[ReloadClient]] = defaultdict(set)
        self._lock = threading.Lock()
        self._loop = loop
        self._notifications = 0

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return sum(len(clients) for clients in self._subscribers.values())

    @property
    def notifications(self) -> int:
        """Number of ``notify`` calls so far."""
        return self._notifications

    def subscribe(self, client: ReloadClient) -> None:
        with self._lock:
            self._subscribers[client.url].add(client)

    def unsubscribe(self, client: ReloadClient) -> None:
        with self._lock:
            clients = self._subscribers.get(client.url)
            if clients is None:
                return
            clients.discard(client)
            if not clients:
                del self._subscribers[client.url]

    def subscribers_for(self, urls: Sequence[str]) -> frozenset[ReloadClient]:
        """Clients watching any of ``urls``, plus every ``*`` client."""
        with self._lock:
            found: set[ReloadClient] = set(self._subscribers.get(ALL_PAGES, ()))
            for url in urls:
                found |= self._subscribers.get(url, set())
            return frozenset(found)

    def notify(self, urls: Sequence[str]) -> int:
        """Push a ReloadEvent to every interested client. Returns clients reached."""
        self._notifications += 1
        event = ReloadEvent(tuple(urls))
        clients = self.subscribers_for(event.urls)
        for client in clients:
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(client.queue.put_nowait, event)
            else:
                client.queue.put_nowait(event)
        return len(clients)

    async def events(self, client: ReloadClient) -> AsyncIterator[ReloadEvent]:
        """Yield events for ``client`` until the consumer goes away."""
        try:
            while True:
                yield await client.queue.get()
        except (asyncio.CancelledError, GeneratorExit):
            return
        finally:
            self.unsubscribe(client)
