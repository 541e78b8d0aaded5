"""CSS and JS minification (csscompressor / rjsmin).

Runs after layouts: an item is minified once, when its layout state is
final, and never when an error was recorded against it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import csscompressor
import rjsmin

from ocelot.content.types import CSS, JS
from ocelot.pipeline.stages import ProcessResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.config import OcelotConfig
    from ocelot.content.item import ContentItem
    from ocelot.content.types import ContentType
    from ocelot.pipeline.context import BuildContext
    from ocelot.pipeline.registry import ProcessorRegistry

_MINIFIERS: dict[ContentType, Callable[[str], str]] = {
    CSS: csscompressor.compress,
    JS: rjsmin.jsmin,
}


class MinifyProcessor:
    name = "minify"

    def try_process_item(self, item: ContentItem, ctx: BuildContext) -> ProcessResult:
        if item.minified or item.failed or not item.layout_state.terminal:
            return ProcessResult.NONE
        minify = _MINIFIERS.get(item.content_type)
        if minify is None:
            return ProcessResult.NONE
        if not item.bindings.get_bool("minify", default=True):
            item.minified = True
            return ProcessResult.NONE
        item.content = minify(item.content)
        item.minified = True
        return ProcessResult.CONTINUE


class MinifyPlugin:
    name = "minify"

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None:
        if config.minify:
            registry.add_item_processor(MinifyProcessor(), priority=0)
