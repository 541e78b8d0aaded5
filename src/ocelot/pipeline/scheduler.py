"""Stage scheduler — drives one build through the fixed stage order.

Stage processors run once per stage in registration order.  In the
Process stage every live, non-settled item present at stage entry is
offered to the item processors until it reaches a fixed point:

    - processors are asked from the highest priority down;
    - CONTINUE restarts the scan from the top;
    - BREAK, or a full scan where every processor answers NONE, stops;
    - more than ``max_passes`` scans is a ProcessorLoopError.

Faults never unwind past the scheduler: an item processor fault is
logged against the item (which is marked failed and treated as BREAK),
a stage processor fault is logged and the next processor runs.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Literal

from ocelot._errors import BuildCancelled, ContentError, ProcessorLoopError
from ocelot.layouts.engine import layout_kind_of
from ocelot.layouts.kinds import SINGLE
from ocelot.pipeline.stages import ProcessResult, Stage

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.content.item import ContentItem
    from ocelot.pipeline.context import BuildContext
    from ocelot.pipeline.registry import ProcessorRegistry

type Outcome = Literal["fixed_point", "break", "error"]


class StageScheduler:
    """Runs registered processors over a build context.

    Args:
        registry: Processors to run.
        max_passes: Scan limit per item in the Process stage.

    """

    def __init__(self, registry: ProcessorRegistry, *, max_passes: int = 32) -> None:
        self._registry = registry
        self._max_passes = max_passes

    def run(self, ctx: BuildContext, *, load: Callable[[BuildContext], None]) -> int:
        """Run every stage; ``load`` scans sources after BEFORE_LOAD.

        Returns:
            Number of items offered in the Process stage.

        Raises:
            BuildCancelled: If ``ctx.cancel`` was set between stages or items.

        """
        offered = 0
        for stage in Stage:
            ctx.check_cancelled()
            t0 = time.perf_counter()
            if stage is Stage.PROCESS:
                offered = self.process_items(ctx)
            processors = self._run_stage_processors(stage, ctx)
            if stage is Stage.BEFORE_LOAD:
                ctx.check_cancelled()
                load(ctx)
            if ctx.collector is not None:
                ctx.collector.record_stage(
                    stage.label,
                    processors=processors,
                    items=offered if stage is Stage.PROCESS else 0,
                    duration_ms=(time.perf_counter() - t0) * 1000,
                )
        ctx.check_cancelled()
        return offered

    def _run_stage_processors(self, stage: Stage, ctx: BuildContext) -> int:
        processors = self._registry.stage_processors(stage)
        for processor in processors:
            try:
                processor.process(stage, ctx)
            except BuildCancelled:
                raise
            except Exception as exc:
                ctx.log.error(
                    f"{processor.name} failed during {stage.label}: {exc}",
                    exception=exc,
                )
        return len(processors)

    # ----- Process stage -----

    def process_items(self, ctx: BuildContext) -> int:
        """Offer every pending item to the item processors.

        Items added while this runs are not offered; they are visible to
        the stage processors that run afterwards.
        """
        pending = [i for i in ctx.store.live_items() if not i.settled]
        pending.sort(key=lambda i: (ctx.kinds.weight(_kind_name(i, ctx)), i.weight))
        for item in pending:
            ctx.check_cancelled()
            if item.discard:
                continue
            self.process_item(item, ctx)
        return len(pending)

    def process_item(self, item: ContentItem, ctx: BuildContext) -> Outcome:
        """Drive ``item`` to a fixed point; returns how the loop ended."""
        processors = self._registry.item_processors()
        passes = 0
        outcome: Outcome = "fixed_point"
        while True:
            passes += 1
            again = False
            for processor in processors:
                if item.discard:
                    break
                try:
                    result = processor.try_process_item(item, ctx)
                except BuildCancelled:
                    raise
                except Exception as exc:
                    ctx.log.error(f"{processor.name}: {exc}", item=item, exception=exc)
                    outcome = "error"
                    break
                if result is ProcessResult.CONTINUE:
                    again = True
                    break
                if result is ProcessResult.BREAK:
                    outcome = "break"
                    break
            if not again:
                break
            if passes >= self._max_passes:
                exc = ProcessorLoopError(
                    f"processors still changing the item after {passes} passes",
                )
                ctx.log.error(str(exc), item=item, exception=exc)
                outcome = "error"
                break
        if ctx.collector is not None:
            ctx.collector.record_item(
                item.url,
                passes=passes,
                outcome=outcome,
                content_type=item.content_type.name,
            )
        return outcome


def _kind_name(item: ContentItem, ctx: BuildContext) -> str:
    if not item.is_page:
        return SINGLE
    try:
        return layout_kind_of(item, ctx)
    except ContentError:
        # Reported when the layout engine reaches the item.
        return SINGLE
