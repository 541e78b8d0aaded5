"""Ocelot application — composition root and public entry points.

``compose`` turns a configuration and a list of plugins into the
registries a build needs.  ``build`` runs one full build; ``watch`` runs
one and then rebuilds incrementally as files change.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ocelot._errors import ConfigError
from ocelot.config_loader import load_config
from ocelot.content.filesystem import SourceFileSystem
from ocelot.content.types import ContentTypeRegistry
from ocelot.export.sitemap import SitemapPlugin
from ocelot.layouts.evaluator import KidaEvaluator
from ocelot.layouts.kinds import LayoutKindRegistry
from ocelot.observability import BuildCollector, EventLog
from ocelot.pipeline.registry import ProcessorRegistry
from ocelot.processors import (
    DataPlugin,
    LayoutsPlugin,
    MarkdownPlugin,
    MinifyPlugin,
    StylesheetPlugin,
)
from ocelot.reactive.pipeline import RebuildController

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Sequence

    from ocelot.config import OcelotConfig
    from ocelot.content.item import ContentItem
    from ocelot.content.watcher import ChangeBatch
    from ocelot.layouts.evaluator import TemplateEvaluator
    from ocelot.pipeline.processor import Plugin
    from ocelot.reactive.pipeline import BuildResult, ReloadNotifier

type StylesheetCompiler = Callable[[str, ContentItem], str]


def default_plugins(
    config: OcelotConfig,
    stylesheet_compiler: StylesheetCompiler | None = None,
) -> list[Plugin]:
    """The bundled plugin set, in registration order."""
    plugins: list[Plugin] = [
        DataPlugin(),
        LayoutsPlugin(),
        MarkdownPlugin(),
        MinifyPlugin(),
        SitemapPlugin(),
    ]
    if stylesheet_compiler is not None:
        plugins.append(StylesheetPlugin(stylesheet_compiler))
    return plugins


class Composition:
    """Registries produced by ``compose``.

    Attributes:
        registry: Processors and converters of every plugin that set up.
        types: Content types, defaults plus plugin registrations.
        kinds: Layout kinds, defaults plus plugin registrations.
        skipped: Names of plugins whose setup failed.

    """

    __slots__ = ("kinds", "registry", "skipped", "types")

    def __init__(
        self,
        registry: ProcessorRegistry,
        types: ContentTypeRegistry,
        kinds: LayoutKindRegistry,
        skipped: tuple[str, ...],
    ) -> None:
        self.registry = registry
        self.types = types
        self.kinds = kinds
        self.skipped = skipped


def compose(config: OcelotConfig, plugins: Sequence[Plugin]) -> Composition:
    """Set up ``plugins`` in order.

    Each plugin registers into a staged child registry that is merged
    only when ``setup`` returns normally.  A ConfigError drops that one
    plugin with a message; other plugins are unaffected.
    """
    registry = ProcessorRegistry()
    skipped: list[str] = []
    for plugin in plugins:
        staged = registry.child()
        try:
            plugin.setup(staged, config)
        except ConfigError as exc:
            print(f"  Plugin {plugin.name!r} skipped: {exc}", file=sys.stderr)
            skipped.append(plugin.name)
            continue
        registry.merge(staged)

    types = ContentTypeRegistry()
    for reg in registry.content_types:
        types.register(reg.extension, reg.content_type)
        if reg.html_like:
            types.mark_html_like(reg.content_type)
    kinds = LayoutKindRegistry()
    for kind in registry.layout_kinds:
        kinds.register(kind)
    return Composition(registry, types, kinds, tuple(skipped))


def create_controller(
    config: OcelotConfig,
    *,
    plugins: Sequence[Plugin] | None = None,
    evaluator: TemplateEvaluator | None = None,
    collector: BuildCollector | None = None,
    notifier: ReloadNotifier | None = None,
) -> RebuildController:
    """Compose ``plugins`` (the defaults when None) into a RebuildController."""
    composition = compose(config, default_plugins(config) if plugins is None else plugins)
    if evaluator is None:
        evaluator = KidaEvaluator(
            [root / config.layouts_dir for root in config.source_roots]
        )
    return RebuildController(
        config,
        composition.registry,
        SourceFileSystem(config.source_roots),
        composition.types,
        composition.kinds,
        evaluator,
        collector=collector if collector is not None else BuildCollector(EventLog()),
        notifier=notifier,
    )


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def build(root: str | Path = ".", **kwargs: object) -> BuildResult:
    """Build the site under ``root`` once.

    Args:
        root: Path to the site root directory.
        **kwargs: Override OcelotConfig fields.

    """
    config = load_config(Path(root), **kwargs)
    controller = create_controller(config)
    result = controller.build_full(trigger="build")
    _print_build_summary(result, config)
    return result


def watch(root: str | Path = ".", **kwargs: object) -> None:
    """Build the site, then rebuild on every change until interrupted.

    Args:
        root: Path to the site root directory.
        **kwargs: Override OcelotConfig fields.

    """
    try:
        asyncio.run(_watch(Path(root), kwargs))
    except KeyboardInterrupt:
        print("\n  Stopped watching.", file=sys.stderr)


async def _watch(root: Path, overrides: dict[str, object]) -> None:
    from ocelot.content.watcher import ContentWatcher
    from ocelot.reactive.broadcaster import Broadcaster
    from ocelot.reactive.executor import BuildExecutor

    config = load_config(root, **overrides)
    broadcaster = Broadcaster(asyncio.get_running_loop())
    controller = create_controller(config, notifier=broadcaster)
    _print_build_summary(await asyncio.to_thread(controller.build_full), config)

    def run(batch: ChangeBatch, cancel: threading.Event) -> BuildResult | None:
        nonlocal config, controller
        if any(config.is_config_file(path) for path in batch.paths):
            try:
                config = load_config(root, **overrides)
            except ConfigError as exc:
                print(f"  Config error: {exc}", file=sys.stderr)
                return None
            controller = create_controller(config, notifier=broadcaster)
            return controller.build_full(cancel, trigger="config", notify=True)
        return controller.on_file_change(batch, cancel)

    executor = BuildExecutor(
        run,
        on_result=lambda result: _print_build_summary(result, config),
    )
    watcher = ContentWatcher(config)
    watcher.start()
    print(f"  Watching {config.root} (Ctrl+C to stop)", file=sys.stderr)
    try:
        async for batch in watcher.batches():
            executor.submit(batch)
    finally:
        watcher.stop()
        await executor.wait_idle()


def _print_build_summary(result: BuildResult, config: OcelotConfig) -> None:
    """Print build completion summary to stderr."""
    written = sum(1 for f in result.files if f.action == "write")
    total = len(result.files)
    lines = [
        "",
        "─" * 41,
        f"  {'Built' if result.full else 'Rebuilt'} "
        f"{total} file{'s' if total != 1 else ''} ({written} written)",
    ]
    if result.removed:
        lines.append(f"  Removed {len(result.removed)} stale file(s)")
    if result.warnings:
        lines.append(f"  {len(result.warnings)} warning(s)")
    if result.errors:
        lines.append(f"  {len(result.errors)} error(s)")
    lines.append(f"  Output: {config.output_path}")
    lines.append(f"  Done in {result.duration_ms:.0f}ms")
    print("\n".join(lines), file=sys.stderr)
