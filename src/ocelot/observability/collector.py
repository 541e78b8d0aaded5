"""Build collector — typed helpers that stamp and store build events.

Thread Safety:
    Delegates to ``EventLog``, which is internally locked.

"""

from __future__ import annotations

from typing import Literal

from ocelot.observability.events import (
    DiagnosticRecorded,
    FileEmitted,
    ItemProcessed,
    RebuildCompleted,
    StageCompleted,
    now_ns,
)
from ocelot.observability.log import EventLog


class BuildCollector:
    """Records build events into an EventLog.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- scheduler -----

    def record_stage(
        self,
        stage: str,
        *,
        processors: int = 0,
        items: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        self._log.append(
            StageCompleted(
                stage=stage,
                processors=processors,
                items=items,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_item(
        self,
        url: str,
        *,
        passes: int,
        outcome: Literal["fixed_point", "break", "error"],
        content_type: str,
    ) -> None:
        self._log.append(
            ItemProcessed(
                path=url,
                passes=passes,
                outcome=outcome,
                content_type=content_type,
                timestamp_ns=now_ns(),
            )
        )

    def record_diagnostic(
        self,
        level: Literal["info", "warning", "error"],
        message: str,
        *,
        path: str = "",
    ) -> None:
        self._log.append(
            DiagnosticRecorded(
                level=level,
                message=message,
                path=path,
                timestamp_ns=now_ns(),
            )
        )

    # ----- output -----

    def record_emit(
        self,
        path: str,
        action: Literal["write", "unchanged", "remove"],
        *,
        size_bytes: int = 0,
    ) -> None:
        self._log.append(
            FileEmitted(
                path=path,
                action=action,
                size_bytes=size_bytes,
                timestamp_ns=now_ns(),
            )
        )

    def record_rebuild(
        self,
        *,
        trigger_path: str = "",
        full: bool,
        items_rebuilt: int,
        changed_urls: int,
        ok: bool,
        duration_ms: float,
    ) -> None:
        self._log.append(
            RebuildCompleted(
                trigger_path=trigger_path,
                full=full,
                items_rebuilt=items_rebuilt,
                changed_urls=changed_urls,
                ok=ok,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )
