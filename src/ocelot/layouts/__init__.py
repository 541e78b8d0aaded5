"""Layout resolution: kinds, converters, template evaluation and the engine."""
