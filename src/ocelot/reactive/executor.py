"""Build executor — serializes builds triggered by change batches.

One worker at a time: batches submitted while a build is running are
merged into a single pending batch that runs once the current build ends.
Builds run in a worker thread (``asyncio.to_thread``) and receive a
``threading.Event`` they check between stages and items.  With
``cancel_stale`` set, a new batch cancels the running build; the
cancelled batch is merged back so none of its changes are lost.
"""

from __future__ import annotations

import asyncio
import sys
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.content.watcher import ChangeBatch
    from ocelot.reactive.pipeline import BuildResult

type BuildFn = Callable[[ChangeBatch, threading.Event], BuildResult | None]


class BuildExecutor:
    """Runs ``build`` for submitted batches, never two at once.

    Args:
        build: Called in a worker thread with the batch and a cancel event.
        cancel_stale: Cancel the running build when a new batch arrives.
        on_result: Called on the event loop with every finished result.

    """

    def __init__(
        self,
        build: BuildFn,
        *,
        cancel_stale: bool = False,
        on_result: Callable[[BuildResult], None] | None = None,
    ) -> None:
        self._build = build
        self._cancel_stale = cancel_stale
        self._on_result = on_result
        self._pending: ChangeBatch | None = None
        self._running: ChangeBatch | None = None
        self._cancel: threading.Event | None = None
        self._worker: asyncio.Task[None] | None = None
        self._results: list[BuildResult] = []
        self._builds_started = 0

    @property
    def busy(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> ChangeBatch | None:
        return self._pending

    @property
    def results(self) -> tuple[BuildResult, ...]:
        return tuple(self._results)

    @property
    def builds_started(self) -> int:
        return self._builds_started

    def submit(self, batch: ChangeBatch) -> None:
        """Queue ``batch``; must be called from the event loop."""
        if not batch:
            return
        self._pending = batch if self._pending is None else self._pending.merge(batch)
        if self.busy:
            if self._cancel_stale and self._cancel is not None:
                self._cancel.set()
            return
        self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def wait_idle(self) -> None:
        """Wait until no build is running and nothing is pending."""
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    async def _drain(self) -> None:
        while self._pending is not None:
            batch, self._pending = self._pending, None
            cancel = threading.Event()
            self._running, self._cancel = batch, cancel
            self._builds_started += 1
            try:
                result = await asyncio.to_thread(self._build, batch, cancel)
            except Exception as exc:
                print(f"  Build error: {exc}", file=sys.stderr)
                continue
            finally:
                self._running, self._cancel = None, None
            if result is None:
                continue
            if result.cancelled:
                self._pending = batch if self._pending is None else batch.merge(self._pending)
                continue
            self._results.append(result)
            if self._on_result is not None:
                self._on_result(result)
