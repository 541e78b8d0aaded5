"""Plugin wiring the layout engine into the pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ocelot.layouts.engine import LayoutProcessor
from ocelot.pipeline.stages import Stage

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.pipeline.registry import ProcessorRegistry

# Layouts run before anything that post-processes final output.
LAYOUT_PRIORITY = 100


class LayoutsPlugin:
    name = "layouts"

    def __init__(self) -> None:
        self.processor = LayoutProcessor()

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None:
        registry.add_stage_processor(self.processor, Stage.BEFORE_INIT)
        registry.add_item_processor(self.processor, priority=LAYOUT_PRIORITY)
