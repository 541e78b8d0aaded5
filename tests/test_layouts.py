"""Tests for ocelot.layouts — kinds, converters and the layout engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from conftest import FakeEvaluator, FakeMarkdownPlugin, run_pipeline, write
from ocelot._errors import LayoutCycleError
from ocelot.config import OcelotConfig
from ocelot.content.item import LayoutState
from ocelot.content.types import CSS, HTML, MARKDOWN, ContentType
from ocelot.layouts.kinds import LayoutKind, LayoutKindRegistry, is_list_kind, list_order, single_order
from ocelot.observability import BuildCollector, EventLog
from ocelot.observability.events import ItemProcessed
from ocelot.processors import LayoutsPlugin, MinifyPlugin, StylesheetPlugin

if TYPE_CHECKING:
    from pathlib import Path

    from ocelot.content.item import ContentItem
    from ocelot.pipeline.context import BuildContext

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(
    root: Path, evaluator: FakeEvaluator | None = None, **overrides: object,
) -> BuildContext:
    config = OcelotConfig(root=root, **overrides)  # type: ignore[arg-type]
    return run_pipeline(
        config, [LayoutsPlugin(), FakeMarkdownPlugin()], evaluator=evaluator,
    )


def _item(ctx: BuildContext, url: str) -> ContentItem:
    item = ctx.store.find(url)
    assert item is not None, url
    return item


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------


class TestLayoutKinds:
    """Search order and kind registration."""

    def test_single_search_order(self) -> None:
        assert single_order("post", "single", "_default") == (
            "post/single", "post.single", "post",
            "_default/single", "_default.single", "_default",
        )

    def test_single_search_for_default_name(self) -> None:
        assert single_order("_default", "single", "_default") == (
            "_default/single", "_default.single", "_default",
        )

    def test_list_search_has_no_bare_names(self) -> None:
        assert list_order("tags", "list", "_default") == (
            "tags/list", "tags.list", "_default/list", "_default.list",
        )

    @pytest.mark.parametrize(
        ("kind", "expected"), [("list", True), ("tags", True), ("taglist", True), ("single", False), ("home", False)],
    )
    def test_is_list_kind(self, kind: str, expected: bool) -> None:
        assert is_list_kind(kind) is expected

    def test_registry_defaults(self) -> None:
        kinds = LayoutKindRegistry()
        assert kinds.weight("single") == 0
        assert kinds.weight("list") == 10
        assert kinds.get("list").lists_pages
        assert not kinds.get("single").lists_pages

    def test_unknown_kinds_created(self) -> None:
        kinds = LayoutKindRegistry()
        assert kinds.get("categories").lists_pages
        assert kinds.get("categories").search is list_order
        assert not kinds.get("landing").lists_pages
        assert "landing" in kinds

    def test_invalid_kind_name(self) -> None:
        from ocelot._errors import ConfigError

        with pytest.raises(ConfigError):
            LayoutKindRegistry().register(LayoutKind("a/b"))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TestLayoutResolution:
    """Conversion and layout fallback order."""

    def test_convert_then_apply_layout(self, tmp_site: Path) -> None:
        ctx = _run(tmp_site)
        hello = _item(ctx, "/posts/hello/")
        assert hello.content == "<title>Hello</title><main><p>Hello *world*.</p></main>"
        assert hello.content_type == HTML
        assert hello.layout_state is LayoutState.APPLIED
        assert [d.path for d in hello.file_dependencies()] == ["/layouts/_default.html"]
        assert not ctx.log.entries

    def test_static_files_untouched(self, tmp_site: Path) -> None:
        ctx = _run(tmp_site)
        css = _item(ctx, "/css/site.css")
        assert css.layout_state is LayoutState.SKIPPED
        assert not css.content_loaded

    def test_no_layout_leaves_content(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\ntitle: A\n---\nraw")
        ctx = _run(tmp_path)
        item = _item(ctx, "/a/")
        assert item.content == "raw"
        assert item.content_type == MARKDOWN
        assert item.layout_state is LayoutState.SKIPPED
        assert len(ctx.log.warnings) == 1
        assert "no layout found" in ctx.log.warnings[0].message
        assert not ctx.log.errors

    def test_allow_raw_conversion(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\ntitle: A\n---\nraw")
        ctx = _run(tmp_path, allow_raw_conversion=True)
        item = _item(ctx, "/a/")
        assert item.content == "<p>raw</p>"
        assert item.content_type == HTML
        assert item.layout_state is LayoutState.SKIPPED

    def test_layout_of_current_type_preferred(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\ntitle: A\n---\nraw")
        write(tmp_path, "layouts/_default.md", "MD[{{ content }}]")
        write(tmp_path, "layouts/_default.html", "HTML[{{ content }}]")
        ctx = _run(tmp_path)
        item = _item(ctx, "/a/")
        assert item.content == "MD[raw]"
        assert item.content_type == MARKDOWN

    def test_named_layout(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: post\n---\nx")
        write(tmp_path, "layouts/post.html", "POST[{{ content }}]")
        write(tmp_path, "layouts/_default.html", "DEFAULT[{{ content }}]")
        ctx = _run(tmp_path)
        assert _item(ctx, "/a/").content == "POST[<p>x</p>]"

    def test_named_layout_falls_back_to_default(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: missing\n---\nx")
        write(tmp_path, "layouts/_default.html", "DEFAULT[{{ content }}]")
        ctx = _run(tmp_path)
        assert _item(ctx, "/a/").content == "DEFAULT[<p>x</p>]"

    def test_layout_name_sanitised(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: posts/item\n---\nx")
        write(tmp_path, "layouts/posts-item.html", "ITEM[{{ content }}]")
        ctx = _run(tmp_path)
        assert _item(ctx, "/a/").content == "ITEM[<p>x</p>]"
        assert any("sanitised" in w.message for w in ctx.log.warnings)

    def test_section_layout(self, tmp_path: Path) -> None:
        write(tmp_path, "content/posts/a.md", "---\ntitle: A\n---\nx")
        write(tmp_path, "content/about.md", "---\ntitle: About\n---\ny")
        write(tmp_path, "layouts/post.html", "POST[{{ content }}]")
        write(tmp_path, "layouts/_default.html", "DEFAULT[{{ content }}]")
        ctx = _run(tmp_path, sections={"posts": {"layout": "post"}})
        assert _item(ctx, "/posts/a/").content == "POST[<p>x</p>]"
        assert _item(ctx, "/about/").content == "DEFAULT[<p>y</p>]"

    def test_layout_bindings_copied_without_overwrite(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\ntitle: A\n---\nx")
        write(
            tmp_path,
            "layouts/_default.html",
            "---\ntitle: Layout\nauthor: Sam\n---\n{{ title }} by {{ author }}",
        )
        ctx = _run(tmp_path)
        item = _item(ctx, "/a/")
        assert item.content == "A by Sam"
        assert item.bindings["title"] == "A"
        assert item.bindings.is_readonly("author")

    def test_layouts_parsed_once(self, tmp_site: Path) -> None:
        evaluator = FakeEvaluator()
        _run(tmp_site, evaluator)
        assert sorted(evaluator.parsed) == ["/layouts/_default.html", "/layouts/_default/list.html"]


class TestLayoutChains:
    """Layouts naming a further layout, kind or content type."""

    def test_chain(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: post\n---\nx")
        write(tmp_path, "layouts/post.html", "---\nlayout: base\n---\n<article>{{ content }}</article>")
        write(tmp_path, "layouts/base.html", "<html>{{ content }}</html>")
        ctx = _run(tmp_path)
        item = _item(ctx, "/a/")
        assert item.content == "<html><article><p>x</p></article></html>"
        assert [d.path for d in item.file_dependencies()] == [
            "/layouts/post.html", "/layouts/base.html",
        ]

    def test_content_type_hop(self, tmp_path: Path) -> None:
        write(tmp_path, "content/feed.md", "---\nlayout: feed\n---\nx")
        write(tmp_path, "layouts/feed.html", "---\ncontent_type: xml\n---\n<item>{{ content }}</item>")
        write(tmp_path, "layouts/feed.xml", "<rss>{{ content }}</rss>")
        ctx = _run(tmp_path)
        item = _item(ctx, "/feed/")
        assert item.content == "<rss><item><p>x</p></item></rss>"
        assert item.content_type == ContentType("xml")

    def test_self_reference_is_not_a_cycle(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: post\n---\nx")
        write(tmp_path, "layouts/post.html", "---\nlayout: post\n---\n[{{ content }}]")
        ctx = _run(tmp_path)
        assert _item(ctx, "/a/").content == "[<p>x</p>]"
        assert not ctx.log.errors

    def test_cycle_reports_exactly_one_error(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: one\n---\nx")
        write(tmp_path, "content/b.md", "---\nlayout: plain\n---\ny")
        write(tmp_path, "layouts/one.html", "---\nlayout: two\n---\n1{{ content }}")
        write(tmp_path, "layouts/two.html", "---\nlayout: one\n---\n2{{ content }}")
        write(tmp_path, "layouts/plain.html", "P{{ content }}")
        ctx = _run(tmp_path)
        a = _item(ctx, "/a/")
        assert a.layout_state is LayoutState.CYCLE
        assert a.failed
        assert len(ctx.log.errors) == 1
        assert isinstance(ctx.log.errors[0].exception, LayoutCycleError)
        assert _item(ctx, "/b/").content == "P<p>y</p>"

    def test_missing_hop_target_warns(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: post\n---\nx")
        write(tmp_path, "layouts/post.html", "---\nlayout: nowhere\n---\n[{{ content }}]")
        ctx = _run(tmp_path)
        item = _item(ctx, "/a/")
        assert item.layout_state is LayoutState.APPLIED
        assert item.content == "[<p>x</p>]"
        assert len(ctx.log.warnings) == 1

    def test_non_string_hop_is_an_error(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: post\n---\nx")
        write(tmp_path, "layouts/post.html", "---\nlayout: 3\n---\n[{{ content }}]")
        ctx = _run(tmp_path)
        assert _item(ctx, "/a/").failed
        assert len(ctx.log.errors) == 1


class TestListLayouts:
    """List kinds receive every other page and depend on each."""

    def test_pages_in_context(self, tmp_site: Path) -> None:
        ctx = _run(tmp_site)
        posts = _item(ctx, "/posts/")
        assert posts.content == "<h1>Posts</h1><p>2 pages</p><p>All posts.</p>"

    def test_item_dependencies_recorded(self, tmp_site: Path) -> None:
        ctx = _run(tmp_site)
        posts = _item(ctx, "/posts/")
        keys = {d.key for d in posts.item_dependencies()}
        assert keys == {"file:/content/index.md", "file:/content/posts/hello.md"}

    def test_list_pages_see_laid_out_singles(self, tmp_site: Path) -> None:
        evaluator = FakeEvaluator()
        _run(tmp_site, evaluator)
        list_ctx = next(c for c in evaluator.contexts if "pages" in c)
        hello = next(p for p in list_ctx["pages"] if p["url"] == "/posts/hello/")
        assert hello["content"].startswith("<title>Hello</title>")


class TestStaticConversion:
    """Converters that run without a layout apply to plain files too."""

    def test_stylesheet(self, tmp_path: Path) -> None:
        write(tmp_path, "content/css/main.scss", "$c: red;")
        config = OcelotConfig(root=tmp_path)
        plugins = [LayoutsPlugin(), StylesheetPlugin(lambda source, item: "COMPILED " + source)]
        ctx = run_pipeline(config, plugins)
        assert ctx.store.find("/css/main.scss") is None
        item = _item(ctx, "/css/main.css")
        assert item.content == "COMPILED $c: red;"
        assert item.content_type == CSS
        assert item.layout_state is LayoutState.SKIPPED


class TestPassBounds:
    """Each transformation costs one pass, plus one pass that changes nothing."""

    @staticmethod
    def _passes(ctx: BuildContext, path: str) -> int:
        assert ctx.collector is not None
        events = ctx.collector.log.query(event_type=ItemProcessed, path=path)
        assert len(events) == 1, path
        assert events[0].outcome == "fixed_point"
        return events[0].passes

    def test_markdown_through_layout(self, tmp_path: Path) -> None:
        write(tmp_path, "content/a.md", "---\nlayout: post\n---\nx")
        write(tmp_path, "layouts/post.html", "<main>{{ content }}</main>")
        config = OcelotConfig(root=tmp_path)
        collector = BuildCollector(EventLog())
        ctx = run_pipeline(config, [LayoutsPlugin(), FakeMarkdownPlugin()], collector=collector)
        assert _item(ctx, "/a/").content == "<main><p>x</p></main>"
        # convert, lay out, settle
        assert self._passes(ctx, "/a/") == 3

    def test_layout_chain_with_minify(self, tmp_path: Path) -> None:
        write(tmp_path, "content/site.css", "---\nlayout: theme\n---\nbody {  color: red;  }\n")
        write(tmp_path, "layouts/theme.css", "---\nlayout: base\n---\n/* theme */ {{ content }}")
        write(tmp_path, "layouts/base.css", "p {  margin: 0;  }\n{{ content }}")
        config = OcelotConfig(root=tmp_path, minify=True)
        collector = BuildCollector(EventLog())
        ctx = run_pipeline(config, [LayoutsPlugin(), MinifyPlugin()], collector=collector)
        item = _item(ctx, "/site.css")
        assert item.layout_state is LayoutState.APPLIED
        assert item.minified
        assert "  " not in item.content
        # the whole chain is one pass, minification another
        assert self._passes(ctx, "/site.css") <= 4

    def test_static_conversion(self, tmp_path: Path) -> None:
        write(tmp_path, "content/css/main.scss", "$c: red;")
        config = OcelotConfig(root=tmp_path)
        plugins = [LayoutsPlugin(), StylesheetPlugin(lambda source, item: source)]
        collector = BuildCollector(EventLog())
        ctx = run_pipeline(config, plugins, collector=collector)
        assert self._passes(ctx, "/css/main.css") == 2
