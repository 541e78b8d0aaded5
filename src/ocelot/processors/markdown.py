"""Markdown support: registers the patitas-backed converter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ocelot.layouts.converters import MarkdownConverter

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.pipeline.registry import ProcessorRegistry


class MarkdownPlugin:
    name = "markdown"

    def __init__(self, plugins: tuple[str, ...] = ("table",)) -> None:
        self._plugins = plugins

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None:
        registry.add_converter(MarkdownConverter(self._plugins))
