"""Ocelot error hierarchy.

All ocelot-specific errors inherit from OcelotError for easy catching.
Item-level failures derive from ContentError; the scheduler records them
against the offending item and keeps the build going.
"""


class OcelotError(Exception):
    """Base error for all ocelot operations."""


class ConfigError(OcelotError):
    """Invalid or missing configuration (bad option, pattern or URL)."""


class ContentError(OcelotError):
    """Error while processing a single content item."""


class UrlConflictError(ContentError):
    """Two live items claim the same output URL."""


class LayoutCycleError(ContentError):
    """A layout chain revisited a (name, kind, content type) it already applied."""


class TemplateError(ContentError):
    """A layout template failed to parse or render."""


class SourceReadError(ContentError):
    """An input file could not be read or decoded."""


class ProcessorLoopError(ContentError):
    """Item processors kept requesting another pass past the configured limit."""


class EmitError(OcelotError):
    """Error while writing the output tree."""


class BuildCancelled(OcelotError):
    """A build was cancelled before it could emit output."""
