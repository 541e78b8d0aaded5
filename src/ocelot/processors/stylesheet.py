"""Stylesheet support.

No Sass compiler ships with ocelot; the host passes one in.  Without a
compiler the plugin refuses to set up, which only drops this plugin.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ocelot._errors import ConfigError
from ocelot.content.types import CSS, SCSS
from ocelot.layouts.converters import StylesheetConverter

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.config import OcelotConfig
    from ocelot.content.item import ContentItem
    from ocelot.content.types import ContentType
    from ocelot.pipeline.registry import ProcessorRegistry


class StylesheetPlugin:
    name = "stylesheet"

    def __init__(
        self,
        compile: Callable[[str, ContentItem], str] | None,
        *,
        source_type: ContentType = SCSS,
        target_type: ContentType = CSS,
    ) -> None:
        self._compile = compile
        self._source_type = source_type
        self._target_type = target_type

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None:
        if not callable(self._compile):
            msg = f"No compiler given for {self._source_type} stylesheets"
            raise ConfigError(msg)
        registry.add_converter(
            StylesheetConverter(
                self._compile,
                source_type=self._source_type,
                target_type=self._target_type,
            )
        )
