"""Event model for build observability.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal

# ---------------------------------------------------------------------------
# Scheduler events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StageCompleted:
    """A pipeline stage finished.

    Attributes:
        stage: Stage name (``before_load``, ``process`` ...).
        processors: Number of stage processors invoked.
        items: Number of items offered (Process stage only).
        duration_ms: Time spent in the stage.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    stage: str
    processors: int
    items: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ItemProcessed:
    """An item reached its fixed point (or stopped) in the Process stage.

    Attributes:
        path: Item URL.
        passes: Processor passes taken.
        outcome: How the loop ended.
        content_type: Final content type name.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    passes: int
    outcome: Literal["fixed_point", "break", "error"]
    content_type: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class DiagnosticRecorded:
    """A warning or error was recorded against the build.

    Attributes:
        level: Severity.
        message: Human-readable text.
        path: Item URL or source path, empty for build-wide diagnostics.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    level: Literal["info", "warning", "error"]
    message: str
    path: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Output events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileEmitted:
    """An output file was written, skipped as unchanged, or removed.

    Attributes:
        path: Output path relative to the output directory.
        action: What happened to the file.
        size_bytes: Bytes written (0 for skips and removals).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    action: Literal["write", "unchanged", "remove"]
    size_bytes: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class RebuildCompleted:
    """A full or incremental build finished.

    Attributes:
        trigger_path: Changed path that triggered the build (first of the batch).
        full: Whether every item was rebuilt.
        items_rebuilt: Number of items offered to processors.
        changed_urls: Number of URLs whose output changed.
        ok: False if any error was recorded.
        duration_ms: Wall-clock time of the build.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    full: bool
    items_rebuilt: int
    changed_urls: int
    ok: bool
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type BuildEvent = (
    StageCompleted
    | ItemProcessed
    | DiagnosticRecorded
    | FileEmitted
    | RebuildCompleted
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
