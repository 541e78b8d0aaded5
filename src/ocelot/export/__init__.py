"""Output: the emitter and output-side generators."""
