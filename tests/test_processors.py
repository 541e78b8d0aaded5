"""Tests for the bundled plugins in ocelot.processors."""

from __future__ import annotations

from typing import TYPE_CHECKING

import csscompressor
import rjsmin

from conftest import FakeMarkdownPlugin, make_context, run_pipeline, write
from ocelot.config import OcelotConfig
from ocelot.content.bindings import Bindings
from ocelot.content.item import DynamicItem, LayoutState
from ocelot.content.types import CSS, JS
from ocelot.pipeline.stages import ProcessResult
from ocelot.processors import DataPlugin, LayoutsPlugin, MinifyPlugin
from ocelot.processors.minify import MinifyProcessor

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


class TestDataLoader:
    """Global data files become ``site.data``."""

    def test_formats_and_nesting(self, tmp_path: Path) -> None:
        write(tmp_path, "data/menu.yaml", "- home\n- about\n")
        write(tmp_path, "data/authors/jane.json", '{"name": "Jane"}')
        write(tmp_path, "data/build.toml", 'mode = "fast"\n')
        write(tmp_path, "data/notes.txt", "ignored")
        ctx = run_pipeline(OcelotConfig(root=tmp_path), [DataPlugin()])
        assert ctx.site["data"] == {
            "menu": ["home", "about"],
            "authors": {"jane": {"name": "Jane"}},
            "build": {"mode": "fast"},
        }

    def test_invalid_file_logged(self, tmp_path: Path) -> None:
        write(tmp_path, "data/bad.yaml", "a: [1\n")
        write(tmp_path, "data/good.yaml", "a: 1\n")
        ctx = run_pipeline(OcelotConfig(root=tmp_path), [DataPlugin()])
        assert ctx.site["data"] == {"good": {"a": 1}}
        assert len(ctx.log.errors) == 1
        assert "/data/bad.yaml" in ctx.log.errors[0].message

    def test_no_data_dir(self, tmp_path: Path) -> None:
        ctx = run_pipeline(OcelotConfig(root=tmp_path), [DataPlugin()])
        assert ctx.site["data"] == {}

    def test_visible_to_layouts(self, tmp_path: Path) -> None:
        write(tmp_path, "data/site.yaml", "tagline: Always curious\n")
        write(tmp_path, "content/a.md", "---\ntitle: A\n---\nx")
        write(tmp_path, "layouts/_default.html", "{{ site.data.site.tagline }}|{{ content }}")
        plugins = [DataPlugin(), LayoutsPlugin(), FakeMarkdownPlugin()]
        ctx = run_pipeline(OcelotConfig(root=tmp_path), plugins)
        item = ctx.store.find("/a/")
        assert item is not None
        assert item.content == "Always curious|<p>x</p>"


# ---------------------------------------------------------------------------
# Minify
# ---------------------------------------------------------------------------


class TestMinify:
    """csscompressor / rjsmin after layouts settle."""

    def test_static_css_and_js(self, tmp_path: Path) -> None:
        css = "body {\n  margin: 0;\n}\n"
        js = "function add(a, b) {\n  // sum\n  return a + b;\n}\n"
        write(tmp_path, "content/site.css", css)
        write(tmp_path, "content/app.js", js)
        config = OcelotConfig(root=tmp_path, minify=True)
        ctx = run_pipeline(config, [LayoutsPlugin(), MinifyPlugin()])
        css_item = ctx.store.find("/site.css")
        js_item = ctx.store.find("/app.js")
        assert css_item is not None
        assert js_item is not None
        assert css_item.content == csscompressor.compress(css)
        assert js_item.content == rjsmin.jsmin(js)
        assert css_item.minified

    def test_disabled_by_default(self, tmp_path: Path) -> None:
        write(tmp_path, "content/site.css", "body {\n  margin: 0;\n}\n")
        ctx = run_pipeline(OcelotConfig(root=tmp_path), [LayoutsPlugin(), MinifyPlugin()])
        item = ctx.store.find("/site.css")
        assert item is not None
        assert not item.content_loaded

    def test_waits_for_layouts(self, tmp_path: Path) -> None:
        ctx = make_context(OcelotConfig(root=tmp_path))
        item = DynamicItem("/a.css", CSS, "a { color: red; }")
        assert MinifyProcessor().try_process_item(item, ctx) is ProcessResult.NONE
        assert item.content == "a { color: red; }"

    def test_minifies_once(self, tmp_path: Path) -> None:
        ctx = make_context(OcelotConfig(root=tmp_path))
        item = DynamicItem("/a.js", JS, "var  a = 1;")
        item.layout_state = LayoutState.SKIPPED
        proc = MinifyProcessor()
        assert proc.try_process_item(item, ctx) is ProcessResult.CONTINUE
        assert proc.try_process_item(item, ctx) is ProcessResult.NONE

    def test_front_matter_opt_out(self, tmp_path: Path) -> None:
        ctx = make_context(OcelotConfig(root=tmp_path))
        item = DynamicItem(
            "/a.css", CSS, "a { color: red; }", bindings=Bindings({"minify": False}),
        )
        item.layout_state = LayoutState.APPLIED
        assert MinifyProcessor().try_process_item(item, ctx) is ProcessResult.NONE
        assert item.content == "a { color: red; }"

    def test_failed_items_untouched(self, tmp_path: Path) -> None:
        ctx = make_context(OcelotConfig(root=tmp_path))
        item = DynamicItem("/a.css", CSS, "a { color: red; }")
        item.layout_state = LayoutState.APPLIED
        item.failed = True
        assert MinifyProcessor().try_process_item(item, ctx) is ProcessResult.NONE
