"""Layout resolution engine.

Runs as an item processor in the Process stage and moves each item
through a small state machine::

    AWAITING_CONVERSION -> AWAITING_LAYOUT -> APPLIED | SKIPPED | CYCLE

Items without front matter only ever see converters that run without a
layout (stylesheets).  Pages first look for a layout of their current
content type; when there is none, a converter of that type is applied if
it runs without layouts, if a layout exists for what it produces, or if
``allow_raw_conversion`` is set.  Otherwise the page keeps its body and a
warning is logged.

Applying a layout copies its front matter onto the page (never over
existing bindings), records a FileDependency on the layout file, renders
it with ``page``, ``content`` and ``site`` (plus ``pages`` for list kinds)
and follows the ``layout``/``layout_kind``/``content_type`` hop the
layout declares.  Revisiting a (name, kind, content type) key is a
LayoutCycleError.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ocelot._errors import ContentError, LayoutCycleError
from ocelot.content.bindings import Bindings
from ocelot.content.frontmatter import split_front_matter
from ocelot.content.item import LayoutState
from ocelot.content.types import ContentType
from ocelot.layouts.kinds import SINGLE
from ocelot.pipeline.stages import ProcessResult, Stage

if TYPE_CHECKING:
    from ocelot.content.item import ContentItem
    from ocelot.layouts.converters import Converter
    from ocelot.pipeline.context import BuildContext

type LayoutKey = tuple[str, str, str]

# Layout front-matter keys that choose the next hop instead of being copied.
_HOP_KEYS = frozenset({"layout", "layout_kind", "layout_type", "content_type"})
_BAD_NAME_CHARS = ("/", "\\", ".")


@dataclass(frozen=True, slots=True)
class Layout:
    """A parsed layout file.

    Attributes:
        key: (name, kind, content type) it was resolved for.
        path: Logical path of the layout file.
        bindings: Front matter to copy onto pages.
        template: Parsed template from the evaluator.
        next_name: ``layout`` declared by the layout, if any.
        next_kind: ``layout_kind`` declared by the layout, if any.
        next_type: ``content_type`` declared by the layout, if any.

    """

    key: LayoutKey
    path: str
    bindings: Bindings = field(compare=False)
    template: Any = field(compare=False)
    next_name: str | None = None
    next_kind: str | None = None
    next_type: str | None = None


def _scoped_str(item: ContentItem, ctx: BuildContext, *keys: str) -> str | None:
    for key in keys:
        value = ctx.lookup(item, key)
        if value is None:
            continue
        if not isinstance(value, str):
            msg = f"{key!r} must be a string, got {value!r}"
            raise ContentError(msg)
        value = value.strip()
        if value:
            return value
    return None


def layout_kind_of(item: ContentItem, ctx: BuildContext) -> str:
    """Layout kind of ``item``: scoped ``layout_kind`` (or ``layout_type``), else single."""
    return _scoped_str(item, ctx, "layout_kind", "layout_type") or SINGLE


def normalize_layout_name(name: str, ctx: BuildContext, item: ContentItem) -> str:
    """Layout names are plain stems; path-like characters become ``-``."""
    clean = name
    for char in _BAD_NAME_CHARS:
        clean = clean.replace(char, "-")
    if clean != name:
        ctx.log.warning(f"layout name {name!r} sanitised to {clean!r}", item=item)
    return clean


def layout_name_of(item: ContentItem, ctx: BuildContext) -> str:
    """Scoped ``layout`` binding, defaulting to the configured default layout."""
    name = _scoped_str(item, ctx, "layout")
    if name is None:
        return ctx.config.default_layout
    return normalize_layout_name(name, ctx, item)


def page_view(item: ContentItem) -> dict[str, Any]:
    """Template-facing view of an item."""
    view: dict[str, Any] = item.bindings.to_dict()
    view.update(
        url=item.url,
        key=item.key,
        content=item.content,
        content_type=item.content_type.name,
        source_path=item.source_path,
    )
    return view


class LayoutProcessor:
    """Item processor applying converters and layouts.

    The layout cache lives for one build and also remembers misses; it is
    cleared at BEFORE_INIT, so the processor is registered as a stage
    processor as well.
    """

    name = "layouts"

    def __init__(self) -> None:
        self._cache: dict[LayoutKey, Layout | None] = {}

    # ----- stage hook -----

    def process(self, stage: Stage, ctx: BuildContext) -> None:
        if stage is Stage.BEFORE_INIT:
            self._cache.clear()

    # ----- item processing -----

    def try_process_item(self, item: ContentItem, ctx: BuildContext) -> ProcessResult:
        state = item.layout_state
        if state.terminal:
            return ProcessResult.NONE
        if not item.is_page:
            return self._convert_static(item, ctx)

        name = layout_name_of(item, ctx)
        kind = layout_kind_of(item, ctx)
        if state is LayoutState.AWAITING_CONVERSION:
            if self.find_layout(name, kind, item.content_type, ctx) is None:
                converter = self._page_converter(item, name, kind, ctx)
                if converter is not None:
                    self._apply_converter(item, converter, ctx)
                    return ProcessResult.CONTINUE
                item.layout_state = LayoutState.SKIPPED
                ctx.log.warning(
                    f"no layout found for name {name!r}, kind {kind!r}, "
                    f"type {item.content_type}; content left as-is",
                    item=item,
                )
                return ProcessResult.NONE
            item.layout_state = LayoutState.AWAITING_LAYOUT

        self._apply_chain(item, name, kind, ctx)
        return ProcessResult.CONTINUE

    def _convert_static(self, item: ContentItem, ctx: BuildContext) -> ProcessResult:
        for converter in ctx.converters:
            if converter.source_type == item.content_type and converter.run_without_layout:
                self._apply_converter(item, converter, ctx)
                return ProcessResult.CONTINUE
        item.layout_state = LayoutState.SKIPPED
        return ProcessResult.NONE

    def _page_converter(
        self, item: ContentItem, name: str, kind: str, ctx: BuildContext,
    ) -> Converter | None:
        for converter in ctx.converters:
            if converter.source_type != item.content_type:
                continue
            if (
                converter.run_without_layout
                or ctx.config.allow_raw_conversion
                or self.find_layout(name, kind, converter.target_type, ctx) is not None
            ):
                return converter
        return None

    @staticmethod
    def _apply_converter(item: ContentItem, converter: Converter, ctx: BuildContext) -> None:
        item.content = converter.convert(item, ctx)
        item.change_content_type(converter.target_type, ctx.types)

    def _apply_chain(self, item: ContentItem, name: str, kind: str, ctx: BuildContext) -> None:
        ctype = item.content_type
        visited: set[LayoutKey] = set()
        while True:
            key: LayoutKey = (name, kind, ctype.name)
            if key in visited:
                item.layout_state = LayoutState.CYCLE
                msg = f"recursive layout chain revisits {name!r} ({kind}, {ctype})"
                raise LayoutCycleError(msg)
            visited.add(key)

            layout = self.find_layout(name, kind, ctype, ctx)
            if layout is None:
                ctx.log.warning(
                    f"layout {name!r} ({kind}, {ctype}) requested by the previous "
                    f"layout was not found",
                    item=item,
                )
                break
            self._render(item, layout, kind, ctx)

            next_name = name
            if layout.next_name is not None:
                next_name = normalize_layout_name(layout.next_name, ctx, item)
            next_kind = layout.next_kind or kind
            next_type = ContentType(layout.next_type) if layout.next_type else ctype
            if (next_name, next_kind, next_type) == (name, kind, ctype):
                break
            if next_type != item.content_type:
                item.change_content_type(next_type, ctx.types)
            name, kind, ctype = next_name, next_kind, next_type
        item.layout_state = LayoutState.APPLIED

    def _render(self, item: ContentItem, layout: Layout, kind: str, ctx: BuildContext) -> None:
        ctx.depend_on_file(item, layout.path)
        layout.bindings.copy_readonly_to(item.bindings)

        context: dict[str, Any] = item.bindings.to_dict()
        context["page"] = page_view(item)
        context["content"] = item.content
        context["site"] = ctx.site.to_dict()
        if ctx.kinds.get(kind).lists_pages:
            pages = [p for p in ctx.store.pages if p.key != item.key]
            for other in pages:
                ctx.depend_on_item(item, other)
            context["pages"] = [page_view(p) for p in pages]
        item.content = ctx.evaluator.render(layout.template, context)

    # ----- lookup -----

    def find_layout(
        self, name: str, kind: str, ctype: ContentType, ctx: BuildContext,
    ) -> Layout | None:
        """Resolve and parse the layout for (name, kind, type); cached, misses too."""
        key: LayoutKey = (name, kind, ctype.name)
        if key in self._cache:
            return self._cache[key]
        layout = None
        path = self.locate(name, kind, ctype, ctx)
        if path is not None:
            layout = self._parse(key, path, ctx)
        self._cache[key] = layout
        return layout

    @staticmethod
    def locate(name: str, kind: str, ctype: ContentType, ctx: BuildContext) -> str | None:
        """First existing layout path for (name, kind, type), or None."""
        base = "/" + ctx.config.layouts_dir.strip("/")
        stems = ctx.kinds.get(kind).candidates(name, ctx.config.default_layout)
        for stem in stems:
            for ext in ctx.types.extensions_for(ctype):
                logical = posixpath.join(base, stem + ext)
                if ctx.fs.exists(logical):
                    return logical
        return None

    @staticmethod
    def _parse(key: LayoutKey, path: str, ctx: BuildContext) -> Layout:
        source = ctx.fs.read_text(path)
        try:
            front, body = split_front_matter(source)
        except ContentError as exc:
            msg = f"{path}: {exc}"
            raise ContentError(msg) from exc
        front = front or {}
        hops = {k: front.get(k) for k in _HOP_KEYS}
        for hop, value in hops.items():
            if value is not None and not isinstance(value, str):
                msg = f"{path}: {hop!r} must be a string, got {value!r}"
                raise ContentError(msg)
        bindings = Bindings({k: v for k, v in front.items() if k not in _HOP_KEYS})
        return Layout(
            key=key,
            path=path,
            bindings=bindings,
            template=ctx.evaluator.parse(body, path),
            next_name=hops["layout"],
            next_kind=hops["layout_kind"] or hops["layout_type"],
            next_type=hops["content_type"],
        )
