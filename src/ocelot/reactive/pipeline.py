"""Rebuild controller — full and incremental builds over one site.

Owns the content store of the last successful build, the dependency
tracker and the emitter.  A full build scans every source.  An
incremental build:

    1. maps the batch to logical source paths and asks the tracker for a
       plan (untracked paths, the data directory and the config file force
       a full build);
    2. carries every item outside the impacted set over as *settled*;
    3. reloads the impacted sources (deleted ones drop out), drops impacted
       dynamic items and lets generators create them again;
    4. runs the scheduler, which only offers non-settled items, then emits
       and notifies the reload notifier once, on success, with the URLs
       whose output changed.
"""

from __future__ import annotations

import sys
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from ocelot._errors import BuildCancelled
from ocelot.config import CONFIG_FILENAMES
from ocelot.content.bindings import Bindings
from ocelot.content.loader import ContentLoader
from ocelot.content.store import ContentStore
from ocelot.export.emitter import Emitter, OutputSink
from ocelot.observability.diagnostics import BuildLog
from ocelot.pipeline.context import BuildContext
from ocelot.pipeline.scheduler import StageScheduler
from ocelot.reactive.graph import DependencyTracker, RebuildPlan

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ocelot.config import OcelotConfig
    from ocelot.content.filesystem import SourceFileSystem
    from ocelot.content.types import ContentTypeRegistry
    from ocelot.content.watcher import ChangeBatch
    from ocelot.export.emitter import EmittedFile
    from ocelot.layouts.evaluator import TemplateEvaluator
    from ocelot.layouts.kinds import LayoutKindRegistry
    from ocelot.observability.collector import BuildCollector
    from ocelot.observability.diagnostics import Diagnostic
    from ocelot.pipeline.registry import ProcessorRegistry


class ReloadNotifier(Protocol):
    """Live-reload collaborator."""

    def notify(self, urls: Sequence[str]) -> None: ...


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of one build.

    Attributes:
        ok: No error was recorded and the build was not cancelled.
        full: Every item was rebuilt.
        cancelled: The build was abandoned before emitting.
        items_processed: Items offered in the Process stage.
        files: Outputs of live items.
        changed_urls: URLs whose output changed or disappeared.
        removed: Output paths deleted.
        errors: Error diagnostics.
        warnings: Warning diagnostics.
        duration_ms: Wall-clock time.

    """

    ok: bool
    full: bool
    cancelled: bool = False
    items_processed: int = 0
    files: tuple[EmittedFile, ...] = ()
    changed_urls: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    errors: tuple[Diagnostic, ...] = ()
    warnings: tuple[Diagnostic, ...] = ()
    duration_ms: float = 0.0


class RebuildController:
    """Runs builds for one site configuration.

    Args:
        config: Site configuration.
        registry: Composed processors, converters and kinds.
        fs: Overlaid source filesystem.
        types: Content type registry.
        kinds: Layout kind registry.
        evaluator: Template evaluator for layouts.
        collector: Structured event sink.
        notifier: Live-reload collaborator, if any.

    """

    def __init__(
        self,
        config: OcelotConfig,
        registry: ProcessorRegistry,
        fs: SourceFileSystem,
        types: ContentTypeRegistry,
        kinds: LayoutKindRegistry,
        evaluator: TemplateEvaluator,
        *,
        collector: BuildCollector | None = None,
        notifier: ReloadNotifier | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._fs = fs
        self._types = types
        self._kinds = kinds
        self._evaluator = evaluator
        self._collector = collector
        self._notifier = notifier
        self._scheduler = StageScheduler(registry, max_passes=config.max_passes)
        self._tracker = DependencyTracker()
        self._emitter = Emitter(OutputSink(config.output_path), types, collector)
        self._store: ContentStore | None = None
        self._lock = threading.Lock()

    @property
    def config(self) -> OcelotConfig:
        return self._config

    @property
    def store(self) -> ContentStore | None:
        """Store of the last completed build."""
        return self._store

    @property
    def tracker(self) -> DependencyTracker:
        return self._tracker

    # ----- entry points -----

    def build_full(
        self,
        cancel: threading.Event | None = None,
        *,
        trigger: str = "",
        notify: bool = False,
    ) -> BuildResult:
        """Scan and build every source."""
        with self._lock:
            store = ContentStore()
            ctx = self._context(store, full=True, cancel=cancel)
            loader = self._loader(ctx)
            return self._run(
                ctx,
                lambda c: loader.load_all(c.store),
                trigger=trigger,
                notify=notify,
            )

    def on_file_change(
        self,
        batch: ChangeBatch,
        cancel: threading.Event | None = None,
    ) -> BuildResult | None:
        """Rebuild what ``batch`` affects; None if nothing relevant changed.

        A config file change forces a full build with this controller's
        configuration.  Hosts that reload the configuration (``ocelot
        watch``) create a new controller instead.
        """
        changes = self._relevant_changes(batch)
        if not changes:
            return None
        trigger = next(iter(changes))
        plan = self.plan(changes)
        if plan.full:
            if self._config.verbose:
                print(f"  full rebuild: {plan.reason}", file=sys.stderr)
            return self.build_full(cancel, trigger=trigger, notify=True)
        with self._lock:
            return self._run_partial(plan, cancel, trigger)

    def plan(self, changes: dict[str, str]) -> RebuildPlan:
        """Rebuild plan for logical path -> change kind."""
        config_files = {"/" + name for name in CONFIG_FILENAMES}
        data_prefix = "/" + self._config.data_dir.strip("/") + "/"
        for path in changes:
            if path in config_files:
                return RebuildPlan.full_rebuild(f"config file {path} changed", changes)
            if path.startswith(data_prefix):
                return RebuildPlan.full_rebuild(f"data file {path} changed", changes)
        if self._store is None:
            return RebuildPlan.full_rebuild("no previous build", changes)
        return self._tracker.plan(changes)

    # ----- internals -----

    def _relevant_changes(self, batch: ChangeBatch) -> dict[str, str]:
        watched = tuple(
            "/" + d.strip("/") + "/"
            for d in (self._config.content_dir, self._config.layouts_dir, self._config.data_dir)
        )
        changes: dict[str, str] = {}
        for change in batch.changes:
            if self._config.is_config_file(change.path):
                changes["/" + change.path.name] = change.kind
                continue
            logical = self._fs.to_logical(change.path)
            if logical is None or not logical.startswith(watched):
                continue
            changes[logical] = change.kind
        return changes

    def _context(
        self, store: ContentStore, *, full: bool, cancel: threading.Event | None,
    ) -> BuildContext:
        config = self._config
        site = Bindings({
            "base_url": config.base_url,
            "environment": config.environment,
            "params": config.params,
        })
        return BuildContext(
            config=config,
            store=store,
            fs=self._fs,
            types=self._types,
            kinds=self._kinds,
            converters=self._registry.converters,
            evaluator=self._evaluator,
            log=BuildLog(self._collector, verbose=config.verbose),
            tracker=self._tracker,
            collector=self._collector,
            site=site,
            cancel=cancel if cancel is not None else threading.Event(),
            full=full,
        )

    def _loader(self, ctx: BuildContext) -> ContentLoader:
        return ContentLoader(self._fs, self._types, self._config, ctx.log)

    def _run_partial(
        self, plan: RebuildPlan, cancel: threading.Event | None, trigger: str,
    ) -> BuildResult:
        previous = self._store
        assert previous is not None
        store = ContentStore()
        ctx = self._context(store, full=False, cancel=cancel)
        loader = self._loader(ctx)

        def load(c: BuildContext) -> None:
            reload: list[str] = []
            for item in previous.all_items():
                if item.key in plan.impacted:
                    if item.source_path is not None and loader.owns(item.source_path):
                        reload.append(item.source_path)
                    continue
                item.settled = True
                store.add(item)
            for logical in reload:
                loader.load_into(store, logical)

        return self._run(ctx, load, trigger=trigger, notify=True)

    def _run(
        self,
        ctx: BuildContext,
        load: Callable[[BuildContext], object],
        *,
        trigger: str,
        notify: bool,
    ) -> BuildResult:
        t0 = time.perf_counter()
        try:
            offered = self._scheduler.run(ctx, load=load)
        except BuildCancelled:
            ctx.log.info("build cancelled")
            return BuildResult(
                ok=False,
                full=ctx.full,
                cancelled=True,
                duration_ms=(time.perf_counter() - t0) * 1000,
            )

        self._tracker.commit(ctx.store)
        emitted = self._emitter.emit(ctx.store, ctx.log, full=ctx.full)
        self._store = ctx.store
        for item in ctx.store.all_items():
            item.settled = False

        log = ctx.log
        result = BuildResult(
            ok=not log.has_errors,
            full=ctx.full,
            items_processed=offered,
            files=emitted.files,
            changed_urls=emitted.changed_urls,
            removed=emitted.removed,
            errors=log.errors,
            warnings=log.warnings,
            duration_ms=(time.perf_counter() - t0) * 1000,
        )
        if self._collector is not None:
            self._collector.record_rebuild(
                trigger_path=trigger,
                full=result.full,
                items_rebuilt=offered,
                changed_urls=len(result.changed_urls),
                ok=result.ok,
                duration_ms=result.duration_ms,
            )
        if notify and result.ok and result.changed_urls and self._notifier is not None:
            self._notifier.notify(result.changed_urls)
        return result
