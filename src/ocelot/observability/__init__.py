"""Build observability: structured events, the event log and diagnostics."""

from ocelot.observability.collector import BuildCollector
from ocelot.observability.diagnostics import BuildLog, Diagnostic
from ocelot.observability.log import EventLog

__all__ = ["BuildCollector", "BuildLog", "Diagnostic", "EventLog"]
