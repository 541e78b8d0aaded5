"""Processor registry built by the host's composition routine.

Stage processors run in registration order.  Item processors are offered
items from the highest priority down; equal priorities keep registration
order.  A plugin registers into a staged child registry that is merged
only if its ``setup`` succeeds.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ocelot._errors import ConfigError
from ocelot.pipeline.stages import Stage

if TYPE_CHECKING:
    from ocelot.content.types import ContentType
    from ocelot.layouts.converters import Converter
    from ocelot.layouts.kinds import LayoutKind
    from ocelot.pipeline.processor import ItemProcessor, StageProcessor


@dataclass(frozen=True, slots=True)
class _ItemEntry:
    priority: int
    seq: int
    processor: ItemProcessor = field(compare=False)


@dataclass(frozen=True, slots=True)
class TypeRegistration:
    """A plugin-provided extension mapping."""

    extension: str
    content_type: ContentType
    html_like: bool = False


class ProcessorRegistry:
    """Explicit registry of processors, converters, layout kinds and types."""

    def __init__(self) -> None:
        self._stage: dict[Stage, list[StageProcessor]] = {stage: [] for stage in Stage}
        self._items: list[_ItemEntry] = []
        self._converters: list[Converter] = []
        self._kinds: list[LayoutKind] = []
        self._types: list[TypeRegistration] = []
        self._names: set[str] = set()
        self._seq = itertools.count()

    # ----- registration -----

    def add_stage_processor(self, processor: StageProcessor, *stages: Stage) -> None:
        """Run ``processor`` at each of ``stages``, after those already registered."""
        if not stages:
            msg = f"Stage processor {processor.name!r} registered without a stage"
            raise ConfigError(msg)
        for stage in stages:
            self._stage[stage].append(processor)
        self._names.add(processor.name)

    def add_item_processor(self, processor: ItemProcessor, *, priority: int = 0) -> None:
        """Offer items to ``processor``; higher priorities are asked first."""
        self._items.append(_ItemEntry(priority, next(self._seq), processor))
        self._names.add(processor.name)

    def add_converter(self, converter: Converter) -> None:
        if converter.source_type == converter.target_type:
            msg = f"Converter {converter.name!r} maps {converter.source_type} to itself"
            raise ConfigError(msg)
        self._converters.append(converter)

    def add_layout_kind(self, kind: LayoutKind) -> None:
        self._kinds.append(kind)

    def add_content_type(
        self, extension: str, content_type: ContentType, *, html_like: bool = False,
    ) -> None:
        self._types.append(TypeRegistration(extension, content_type, html_like))

    # ----- queries -----

    def stage_processors(self, stage: Stage) -> tuple[StageProcessor, ...]:
        return tuple(self._stage[stage])

    def item_processors(self) -> tuple[ItemProcessor, ...]:
        """Item processors, highest priority first, ties in registration order."""
        ordered = sorted(self._items, key=lambda e: (-e.priority, e.seq))
        return tuple(e.processor for e in ordered)

    @property
    def converters(self) -> tuple[Converter, ...]:
        return tuple(self._converters)

    @property
    def layout_kinds(self) -> tuple[LayoutKind, ...]:
        return tuple(self._kinds)

    @property
    def content_types(self) -> tuple[TypeRegistration, ...]:
        return tuple(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    # ----- staging -----

    def child(self) -> ProcessorRegistry:
        """Empty registry whose entries can later be merged into this one."""
        return ProcessorRegistry()

    def merge(self, other: ProcessorRegistry) -> None:
        """Append everything ``other`` registered, keeping its relative order."""
        for stage, processors in other._stage.items():
            self._stage[stage].extend(processors)
        for entry in sorted(other._items, key=lambda e: e.seq):
            self._items.append(_ItemEntry(entry.priority, next(self._seq), entry.processor))
        self._converters.extend(other._converters)
        self._kinds.extend(other._kinds)
        self._types.extend(other._types)
        self._names.update(other._names)
