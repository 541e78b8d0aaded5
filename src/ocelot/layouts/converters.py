"""Content-type converters.

A converter rewrites an item's body from one content type to another.
Converters that set ``run_without_layout`` (stylesheet compilers) apply to
any item of their source type; the others (markdown) only apply to pages
for which a layout of the target type exists.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ocelot.content.types import CSS, HTML, MARKDOWN, SCSS

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.content.item import ContentItem
    from ocelot.content.types import ContentType
    from ocelot.pipeline.context import BuildContext


@runtime_checkable
class Converter(Protocol):
    """Structural interface for content-type converters."""

    name: str
    source_type: ContentType
    target_type: ContentType
    run_without_layout: bool

    def convert(self, item: ContentItem, ctx: BuildContext) -> str: ...


class MarkdownConverter:
    """Markdown to HTML through patitas."""

    name = "markdown"
    source_type = MARKDOWN
    target_type = HTML
    run_without_layout = False

    def __init__(self, plugins: tuple[str, ...] = ("table",)) -> None:
        from patitas import Markdown

        self._md = Markdown(plugins=list(plugins))

    def convert(self, item: ContentItem, ctx: BuildContext) -> str:
        return self._md(item.content)


class StylesheetConverter:
    """Stylesheet source (scss by default) to CSS.

    Args:
        compile: ``(source text, item) -> css``.  No compiler is bundled;
            the host injects one (libsass, dart-sass wrapper, ...).

    """

    name = "stylesheet"
    run_without_layout = True

    def __init__(
        self,
        compile: Callable[[str, ContentItem], str],
        *,
        source_type: ContentType = SCSS,
        target_type: ContentType = CSS,
    ) -> None:
        self._compile = compile
        self.source_type = source_type
        self.target_type = target_type

    def convert(self, item: ContentItem, ctx: BuildContext) -> str:
        return self._compile(item.content, item)
