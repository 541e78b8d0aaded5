"""Staged processor pipeline."""

from ocelot.pipeline.stages import ProcessResult, Stage

__all__ = ["ProcessResult", "Stage"]
