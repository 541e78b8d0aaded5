"""Tests for ocelot.observability — events, the event log and diagnostics."""

from __future__ import annotations

import dataclasses

import pytest

from ocelot.content.item import DynamicItem
from ocelot.content.types import HTML
from ocelot.observability import BuildCollector, BuildLog, EventLog
from ocelot.observability.events import (
    DiagnosticRecorded,
    FileEmitted,
    ItemProcessed,
    RebuildCompleted,
    StageCompleted,
    now_ns,
)

# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestEvents:
    """Event dataclasses are frozen."""

    def test_frozen(self) -> None:
        event = FileEmitted(path="a.html", action="write", size_bytes=1, timestamp_ns=now_ns())
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.path = "b.html"  # type: ignore[misc]

    def test_now_ns_monotonic(self) -> None:
        first = now_ns()
        assert now_ns() >= first


# ---------------------------------------------------------------------------
# EventLog
# ---------------------------------------------------------------------------


class TestEventLog:
    """Ring buffer, queries and stats."""

    def _stage(self, name: str, ts: int = 1) -> StageCompleted:
        return StageCompleted(stage=name, processors=0, items=0, duration_ms=0.0, timestamp_ns=ts)

    def test_bounded(self) -> None:
        log = EventLog(max_events=3)
        for i in range(5):
            log.append(self._stage(f"s{i}"))
        assert len(log) == 3
        assert [e.stage for e in log.recent()] == ["s2", "s3", "s4"]  # type: ignore[union-attr]

    def test_query_newest_first_with_filters(self) -> None:
        log = EventLog()
        log.extend([
            self._stage("run", ts=10),
            FileEmitted(path="posts/a.html", action="write", size_bytes=3, timestamp_ns=20),
            FileEmitted(path="b.html", action="unchanged", size_bytes=0, timestamp_ns=30),
        ])
        emitted = log.query(event_type=FileEmitted)
        assert [e.path for e in emitted] == ["b.html", "posts/a.html"]  # type: ignore[union-attr]
        assert len(log.query(since_ns=15)) == 2
        assert len(log.query(path="posts")) == 1
        assert len(log.query(limit=1)) == 1

    def test_query_by_trigger_path(self) -> None:
        log = EventLog()
        log.append(RebuildCompleted(
            trigger_path="/content/a.md", full=False, items_rebuilt=1,
            changed_urls=1, ok=True, duration_ms=1.0, timestamp_ns=1,
        ))
        assert len(log.query(path="a.md")) == 1

    def test_latest_and_clear(self) -> None:
        log = EventLog()
        assert log.latest(StageCompleted) is None
        log.append(self._stage("a"))
        log.append(self._stage("b"))
        latest = log.latest(StageCompleted)
        assert latest is not None
        assert latest.stage == "b"  # type: ignore[union-attr]
        assert log.clear() == 2
        assert len(log) == 0

    def test_stats(self) -> None:
        log = EventLog(max_events=50)
        log.append(self._stage("a"))
        log.append(FileEmitted(path="x", action="remove", size_bytes=0, timestamp_ns=1))
        stats = log.stats()
        assert stats["total"] == 2
        assert stats["max_events"] == 50
        assert stats["by_type"] == {"StageCompleted": 1, "FileEmitted": 1}


# ---------------------------------------------------------------------------
# BuildCollector
# ---------------------------------------------------------------------------


class TestBuildCollector:
    """Typed recording helpers."""

    def test_default_log(self) -> None:
        assert len(BuildCollector().log) == 0

    def test_records_each_kind(self) -> None:
        collector = BuildCollector(EventLog())
        collector.record_stage("process", processors=1, items=3, duration_ms=2.0)
        collector.record_item("/a/", passes=2, outcome="fixed_point", content_type="html")
        collector.record_diagnostic("warning", "careful", path="/a/")
        collector.record_emit("a/index.html", "write", size_bytes=10)
        collector.record_rebuild(
            trigger_path="/content/a.md", full=False, items_rebuilt=1,
            changed_urls=1, ok=True, duration_ms=5.0,
        )
        types = [type(e) for e in collector.log.recent()]
        assert types == [
            StageCompleted, ItemProcessed, DiagnosticRecorded, FileEmitted, RebuildCompleted,
        ]
        item = collector.log.latest(ItemProcessed)
        assert item is not None
        assert item.passes == 2  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# BuildLog
# ---------------------------------------------------------------------------


class TestBuildLog:
    """Per-build diagnostics."""

    def test_levels(self) -> None:
        log = BuildLog(echo=False)
        log.info("fyi")
        log.warning("hmm")
        log.error("bad")
        assert [d.level for d in log.entries] == ["info", "warning", "error"]
        assert len(log.warnings) == 1
        assert len(log.errors) == 1
        assert log.has_errors

    def test_error_marks_item_failed(self) -> None:
        item = DynamicItem("/a/", HTML, is_page=True)
        diag = BuildLog(echo=False).error("broken", item=item)
        assert item.failed
        assert diag.url == "/a/"
        assert diag.format() == "  error: /a/: broken"

    def test_echo_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        log = BuildLog()
        log.info("quiet")
        log.warning("loud")
        err = capsys.readouterr().err
        assert "loud" in err
        assert "quiet" not in err

    def test_verbose_echoes_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        BuildLog(verbose=True).info("chatty")
        assert "chatty" in capsys.readouterr().err

    def test_forwards_to_collector(self) -> None:
        collector = BuildCollector(EventLog())
        BuildLog(collector, echo=False).warning("careful")
        event = collector.log.latest(DiagnosticRecorded)
        assert event is not None
        assert event.message == "careful"  # type: ignore[union-attr]
        assert event.level == "warning"  # type: ignore[union-attr]
