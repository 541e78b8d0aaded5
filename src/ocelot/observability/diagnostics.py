"""Per-build diagnostics.

Errors and warnings recorded during a build accumulate here instead of
unwinding the pipeline.  Each one is printed to stderr as it arrives and
forwarded to the collector as a ``DiagnosticRecorded`` event.
"""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from ocelot.content.item import ContentItem
    from ocelot.observability.collector import BuildCollector

type Level = Literal["info", "warning", "error"]


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One recorded message.

    Attributes:
        level: Severity.
        message: Human-readable text.
        url: URL of the item concerned, if any.
        source: Source path of the item concerned, if any.
        exception: The exception behind an error, if any.

    """

    level: Level
    message: str
    url: str | None = None
    source: str | None = None
    exception: BaseException | None = None

    def format(self) -> str:
        where = self.source or self.url
        prefix = f"{where}: " if where else ""
        return f"  {self.level}: {prefix}{self.message}"


class BuildLog:
    """Accumulates diagnostics for one build.

    Args:
        collector: Optional collector receiving a structured event per message.
        verbose: Also print ``info`` messages.
        echo: Print warnings and errors to stderr as they are recorded.

    """

    def __init__(
        self,
        collector: BuildCollector | None = None,
        *,
        verbose: bool = False,
        echo: bool = True,
    ) -> None:
        self._collector = collector
        self._verbose = verbose
        self._echo = echo
        self._entries: list[Diagnostic] = []
        self._lock = threading.Lock()

    def record(
        self,
        level: Level,
        message: str,
        *,
        item: ContentItem | None = None,
        exception: BaseException | None = None,
    ) -> Diagnostic:
        diag = Diagnostic(
            level=level,
            message=message,
            url=item.url if item is not None else None,
            source=item.source_path if item is not None else None,
            exception=exception,
        )
        with self._lock:
            self._entries.append(diag)
        if self._echo and (level != "info" or self._verbose):
            print(diag.format(), file=sys.stderr)
        if self._collector is not None:
            self._collector.record_diagnostic(
                level, message, path=diag.url or diag.source or "",
            )
        return diag

    def info(self, message: str, *, item: ContentItem | None = None) -> Diagnostic:
        return self.record("info", message, item=item)

    def warning(self, message: str, *, item: ContentItem | None = None) -> Diagnostic:
        return self.record("warning", message, item=item)

    def error(
        self,
        message: str,
        *,
        item: ContentItem | None = None,
        exception: BaseException | None = None,
    ) -> Diagnostic:
        """Record an error; marks ``item`` as failed."""
        if item is not None:
            item.failed = True
        return self.record("error", message, item=item, exception=exception)

    @property
    def entries(self) -> tuple[Diagnostic, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.entries if d.level == "error")

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.entries if d.level == "warning")

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
