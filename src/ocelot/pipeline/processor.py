"""Processor and plugin interfaces (structural)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.content.item import ContentItem
    from ocelot.pipeline.context import BuildContext
    from ocelot.pipeline.registry import ProcessorRegistry
    from ocelot.pipeline.stages import ProcessResult, Stage


@runtime_checkable
class StageProcessor(Protocol):
    """Runs once per stage it is registered for."""

    name: str

    def process(self, stage: Stage, ctx: BuildContext) -> None: ...


@runtime_checkable
class ItemProcessor(Protocol):
    """Offered every item of the Process stage until a fixed point."""

    name: str

    def try_process_item(self, item: ContentItem, ctx: BuildContext) -> ProcessResult: ...


@runtime_checkable
class Plugin(Protocol):
    """Registers processors, converters and layout kinds.

    ``setup`` may raise ConfigError; only that plugin is then left out.
    """

    name: str

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None: ...
