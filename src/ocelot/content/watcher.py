"""File watcher — turns filesystem events into immutable change batches.

watchfiles runs in a daemon thread and already debounces bursts of
events; each burst becomes one ``ChangeBatch`` in which repeated events
for the same path are squashed (the last kind wins).  Batches cross into
the event loop via ``call_soon_threadsafe`` and are the only thing that
crosses that boundary.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from ocelot.config import OcelotConfig

type ChangeKind = Literal["created", "modified", "deleted"]


@dataclass(frozen=True, slots=True)
class FileChange:
    """A single file change.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.

    """

    path: Path
    kind: ChangeKind


@dataclass(frozen=True, slots=True)
class ChangeBatch:
    """A squashed set of file changes, one entry per path."""

    changes: tuple[FileChange, ...] = ()

    @classmethod
    def of(cls, changes: Iterable[FileChange]) -> ChangeBatch:
        """Squash ``changes``: the last event per path wins, first-seen order kept."""
        latest: dict[Path, FileChange] = {}
        for change in changes:
            latest.pop(change.path, None)
            latest[change.path] = change
        return cls(tuple(latest.values()))

    def merge(self, other: ChangeBatch) -> ChangeBatch:
        """Batch holding this batch's changes followed by ``other``'s."""
        return ChangeBatch.of((*self.changes, *other.changes))

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(c.path for c in self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)

    def __len__(self) -> int:
        return len(self.changes)


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def is_watched(path: Path, config: OcelotConfig) -> bool:
    """Whether a change to ``path`` can affect the build.

    Hidden files and anything inside the output directory are ignored.
    """
    output = config.output_path
    if path == output or output in path.parents:
        return False
    for root in config.source_roots:
        try:
            rel = path.relative_to(root)
        except ValueError:
            continue
        return bool(rel.parts) and not any(p.startswith(".") for p in rel.parts)
    return False


class ContentWatcher:
    """Watches the site (and theme) roots and yields ChangeBatch values.

    Uses watchfiles in a background thread and bridges bursts of events
    to an asyncio queue owned by the loop that called ``start()``.

    """

    def __init__(self, config: OcelotConfig, *, debounce_ms: int = 200) -> None:
        self._config = config
        self._debounce_ms = debounce_ms
        self._queue: asyncio.Queue[ChangeBatch] = asyncio.Queue()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start watching in a background thread. Must be called from the loop."""
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="ocelot-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    async def batches(self) -> AsyncIterator[ChangeBatch]:
        """Yield batches as they arrive until the watcher is stopped."""
        while self.is_running or not self._queue.empty():
            try:
                batch = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except TimeoutError:
                if not self.is_running:
                    break
                continue
            yield batch

    def translate(self, raw_changes: Iterable[tuple[Change, str]]) -> ChangeBatch:
        """Convert one watchfiles burst into a squashed batch."""
        changes: list[FileChange] = []
        for change_type, path_str in raw_changes:
            path = Path(path_str)
            if not is_watched(path, self._config):
                continue
            changes.append(
                FileChange(path=path, kind=_CHANGE_KIND_MAP.get(change_type, "modified"))
            )
        return ChangeBatch.of(changes)

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles and push batches to the loop."""
        from watchfiles import watch

        roots = [r for r in self._config.source_roots if r.is_dir()]
        for raw_changes in watch(
            *roots,
            stop_event=self._stop_event,
            debounce=self._debounce_ms,
            step=50,
        ):
            batch = self.translate(raw_changes)
            if batch and self._loop is not None:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, batch)
