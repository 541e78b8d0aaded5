"""Shared test fixtures for ocelot."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from ocelot.app import compose, create_controller
from ocelot.config import OcelotConfig
from ocelot.content.filesystem import SourceFileSystem
from ocelot.content.loader import ContentLoader
from ocelot.content.store import ContentStore
from ocelot.content.types import HTML, MARKDOWN
from ocelot.observability import BuildCollector, BuildLog, EventLog
from ocelot.pipeline.context import BuildContext
from ocelot.pipeline.scheduler import StageScheduler
from ocelot.reactive.graph import DependencyTracker

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ocelot.app import Composition
    from ocelot.content.item import ContentItem
    from ocelot.pipeline.processor import Plugin
    from ocelot.pipeline.registry import ProcessorRegistry
    from ocelot.reactive.pipeline import RebuildController

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


class FakeEvaluator:
    """Template evaluator understanding only ``{{ dotted.name }}``.

    ``.length`` on a list gives its size.  Every render context is kept in
    ``contexts`` so tests can inspect what a layout saw.
    """

    def __init__(self) -> None:
        self.parsed: list[str] = []
        self.contexts: list[dict[str, Any]] = []

    def parse(self, source: str, name: str) -> str:
        self.parsed.append(name)
        return source

    def render(self, template: str, context: Mapping[str, Any]) -> str:
        self.contexts.append(dict(context))

        def resolve(match: re.Match[str]) -> str:
            value: Any = context
            for part in match.group(1).split("."):
                if isinstance(value, list) and part == "length":
                    value = len(value)
                elif isinstance(value, dict):
                    value = value.get(part, "")
                else:
                    return ""
            return "" if value is None else str(value)

        return _PLACEHOLDER.sub(resolve, template)


class FakeMarkdownConverter:
    """Wraps the stripped body in ``<p>``; needs an html layout to run."""

    name = "fake-markdown"
    source_type = MARKDOWN
    target_type = HTML
    run_without_layout = False

    def convert(self, item: ContentItem, ctx: BuildContext) -> str:
        return f"<p>{item.content.strip()}</p>"


class FakeMarkdownPlugin:
    name = "fake-markdown"

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None:
        registry.add_converter(FakeMarkdownConverter())


def write(root: Path, rel: str, text: str) -> Path:
    """Write ``text`` at ``root/rel``, creating directories."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_context(
    config: OcelotConfig,
    *,
    plugins: Sequence[Plugin] = (),
    evaluator: FakeEvaluator | None = None,
    collector: BuildCollector | None = None,
) -> BuildContext:
    """A BuildContext over ``config`` with an empty store."""
    return _context(config, compose(config, plugins), evaluator, collector)


def _context(
    config: OcelotConfig,
    composition: Composition,
    evaluator: FakeEvaluator | None,
    collector: BuildCollector | None,
) -> BuildContext:
    return BuildContext(
        config=config,
        store=ContentStore(),
        fs=SourceFileSystem(config.source_roots),
        types=composition.types,
        kinds=composition.kinds,
        converters=composition.registry.converters,
        evaluator=evaluator or FakeEvaluator(),
        log=BuildLog(collector, echo=False),
        tracker=DependencyTracker(),
        collector=collector,
    )


def run_pipeline(
    config: OcelotConfig,
    plugins: Sequence[Plugin],
    *,
    evaluator: FakeEvaluator | None = None,
    collector: BuildCollector | None = None,
) -> BuildContext:
    """Load the content of ``config`` and run every stage; nothing is emitted."""
    composition = compose(config, plugins)
    ctx = _context(config, composition, evaluator, collector)
    loader = ContentLoader(ctx.fs, ctx.types, config, ctx.log)
    scheduler = StageScheduler(composition.registry, max_passes=config.max_passes)
    scheduler.run(ctx, load=lambda c: loader.load_all(c.store))
    return ctx


def make_controller(
    root: Path,
    *,
    plugins: Sequence[Plugin] | None = None,
    evaluator: FakeEvaluator | None = None,
    notifier: object | None = None,
    **overrides: Any,
) -> RebuildController:
    """A controller over ``root`` using the fake evaluator."""
    config = OcelotConfig(root=root, **overrides)
    return create_controller(
        config,
        plugins=plugins,
        evaluator=evaluator or FakeEvaluator(),
        collector=BuildCollector(EventLog()),
        notifier=notifier,  # type: ignore[arg-type]
    )


class RecordingNotifier:
    """ReloadNotifier that remembers every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []

    def notify(self, urls: Sequence[str]) -> None:
        self.calls.append(tuple(urls))


@pytest.fixture
def evaluator() -> FakeEvaluator:
    return FakeEvaluator()


@pytest.fixture
def tmp_site(tmp_path: Path) -> Path:
    """Create a small site for testing.

    Layout::

        content/index.md            page, title Home
        content/posts/hello.md      page, title Hello
        content/posts/index.md      list page (layout_kind: list)
        content/css/site.css        static stylesheet
        content/robots.txt          static text
        layouts/_default.html       single layout
        layouts/_default/list.html  list layout

    """
    write(tmp_path, "content/index.md", "---\ntitle: Home\n---\n# Welcome\n")
    write(
        tmp_path,
        "content/posts/hello.md",
        "---\ntitle: Hello\ndate: 2024-05-01\n---\nHello *world*.\n",
    )
    write(
        tmp_path,
        "content/posts/index.md",
        "---\ntitle: Posts\nlayout_kind: list\n---\nAll posts.\n",
    )
    write(tmp_path, "content/css/site.css", "body {\n  margin: 0;\n}\n")
    write(tmp_path, "content/robots.txt", "User-agent: *\n")
    write(
        tmp_path,
        "layouts/_default.html",
        "<title>{{ page.title }}</title><main>{{ content }}</main>",
    )
    write(
        tmp_path,
        "layouts/_default/list.html",
        "<h1>{{ page.title }}</h1><p>{{ pages.length }} pages</p>{{ content }}",
    )
    return tmp_path


@pytest.fixture
def config(tmp_site: Path) -> OcelotConfig:
    return OcelotConfig(root=tmp_site)
