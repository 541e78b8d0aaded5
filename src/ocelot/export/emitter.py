"""Emitter — writes the output tree for a build.

Each live, non-failed item is written at its destination path.  Writes
are atomic (temporary file + ``os.replace``) and skipped when the bytes
hash the same as what is already there, so an unchanged rebuild touches
nothing.  Two items mapping to one destination is an error (the first
one wins).  Outputs the build no longer produces are removed; a failed
item keeps its previous output.
"""

from __future__ import annotations

import hashlib
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from ocelot._errors import ContentError, EmitError

if TYPE_CHECKING:
    from ocelot.content.item import ContentItem
    from ocelot.content.store import ContentStore
    from ocelot.content.types import ContentTypeRegistry
    from ocelot.observability.collector import BuildCollector
    from ocelot.observability.diagnostics import BuildLog


def content_hash(data: bytes) -> str:
    return hashlib.blake2b(data, digest_size=16).hexdigest()


@dataclass(frozen=True, slots=True)
class EmittedFile:
    """Record of a single output file.

    Attributes:
        url: URL of the item that produced it.
        output_path: Absolute filesystem path of the file.
        action: Whether bytes were written or the file was already current.
        size_bytes: Size of the output in bytes.

    """

    url: str
    output_path: Path
    action: Literal["write", "unchanged"]
    size_bytes: int


@dataclass(frozen=True, slots=True)
class EmitResult:
    """Aggregate result of one emission.

    Attributes:
        files: Every output of a live item, written or not.
        changed_urls: URLs whose output bytes changed or disappeared.
        removed: Relative paths deleted from the output directory.
        duration_ms: Wall-clock time of the emission.

    """

    files: tuple[EmittedFile, ...]
    changed_urls: tuple[str, ...]
    removed: tuple[str, ...]
    duration_ms: float

    @property
    def written(self) -> tuple[EmittedFile, ...]:
        return tuple(f for f in self.files if f.action == "write")


class OutputSink:
    """The output directory.

    Args:
        root: Absolute output directory.

    """

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_of(self, rel: str) -> Path:
        path = (self._root / rel).resolve()
        if path != self._root.resolve() and self._root.resolve() not in path.parents:
            msg = f"Output path {rel!r} escapes the output directory"
            raise EmitError(msg)
        return path

    def exists(self, rel: str) -> bool:
        return self.path_of(rel).is_file()

    def hash(self, rel: str) -> str | None:
        path = self.path_of(rel)
        if not path.is_file():
            return None
        return content_hash(path.read_bytes())

    def write(self, rel: str, data: bytes) -> Path:
        """Atomically write ``data`` at ``rel``, creating parent dirs as needed."""
        path = self.path_of(rel)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as exc:
            msg = f"Cannot write {rel}: {exc}"
            raise EmitError(msg) from exc
        return path

    def remove(self, rel: str) -> None:
        """Delete ``rel`` and any directories left empty above it."""
        path = self.path_of(rel)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Cannot remove {rel}: {exc}"
            raise EmitError(msg) from exc
        parent = path.parent
        root = self._root.resolve()
        while parent != root and root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def list_files(self) -> set[str]:
        """Relative POSIX paths of every file currently in the output."""
        if not self._root.is_dir():
            return set()
        return {
            p.relative_to(self._root).as_posix()
            for p in self._root.rglob("*")
            if p.is_file()
        }


class Emitter:
    """Writes items through an OutputSink and remembers what it produced.

    The memory of previous outputs (destination -> item key and URL) lets
    incremental builds remove outputs of deleted items and keep the
    outputs of items that failed.

    """

    def __init__(
        self,
        sink: OutputSink,
        types: ContentTypeRegistry,
        collector: BuildCollector | None = None,
    ) -> None:
        self._sink = sink
        self._types = types
        self._collector = collector
        self._hashes: dict[str, str] = {}
        self._previous: dict[str, tuple[str, str]] = {}

    @property
    def sink(self) -> OutputSink:
        return self._sink

    def emit(self, store: ContentStore, log: BuildLog, *, full: bool) -> EmitResult:
        """Write every live item of ``store``; see the module docstring."""
        t0 = time.perf_counter()
        produced: dict[str, ContentItem] = {}
        kept: set[str] = set()
        files: list[EmittedFile] = []
        changed: list[str] = []
        previous_by_key = {key: rel for rel, (key, _url) in self._previous.items()}

        for item in store.live_items():
            try:
                rel = item.destination(self._types)
            except ContentError as exc:
                log.error(str(exc), item=item, exception=exc)
                continue
            if item.failed:
                if item.key in previous_by_key:
                    kept.add(previous_by_key[item.key])
                continue
            owner = produced.get(rel)
            if owner is not None:
                log.error(
                    f"output {rel!r} is already produced by {owner.key!r}",
                    item=item,
                )
                continue
            record = self._emit_item(item, rel, log)
            if record is None:
                if item.key in previous_by_key:
                    kept.add(previous_by_key[item.key])
                continue
            produced[rel] = item
            files.append(record)
            if record.action == "write":
                changed.append(item.url)

        removed = self._cleanup(produced, kept, log, full=full, changed=changed)
        current = {rel: (item.key, item.url) for rel, item in produced.items()}
        for rel in kept:
            if rel in self._previous and rel not in current:
                current[rel] = self._previous[rel]
        self._previous = current
        return EmitResult(
            files=tuple(files),
            changed_urls=tuple(dict.fromkeys(changed)),
            removed=tuple(removed),
            duration_ms=(time.perf_counter() - t0) * 1000,
        )

    def _emit_item(self, item: ContentItem, rel: str, log: BuildLog) -> EmittedFile | None:
        try:
            data = item.output_bytes()
        except ContentError as exc:
            log.error(str(exc), item=item, exception=exc)
            return None
        digest = content_hash(data)
        known = self._hashes.get(rel)
        if known is None or not self._sink.exists(rel):
            known = self._sink.hash(rel)
        path = self._sink.path_of(rel)
        if known == digest:
            self._hashes[rel] = digest
            if self._collector is not None:
                self._collector.record_emit(rel, "unchanged")
            return EmittedFile(item.url, path, "unchanged", len(data))
        try:
            self._sink.write(rel, data)
        except EmitError as exc:
            log.error(str(exc), item=item, exception=exc)
            return None
        self._hashes[rel] = digest
        if self._collector is not None:
            self._collector.record_emit(rel, "write", size_bytes=len(data))
        return EmittedFile(item.url, path, "write", len(data))

    def _cleanup(
        self,
        produced: dict[str, ContentItem],
        kept: set[str],
        log: BuildLog,
        *,
        full: bool,
        changed: list[str],
    ) -> list[str]:
        stale = set(self._previous) - set(produced) - kept
        if full:
            stale |= self._sink.list_files() - set(produced) - kept
        removed: list[str] = []
        for rel in sorted(stale):
            try:
                self._sink.remove(rel)
            except EmitError as exc:
                log.error(str(exc), exception=exc)
                continue
            self._hashes.pop(rel, None)
            owner = self._previous.get(rel)
            if owner is not None:
                changed.append(owner[1])
            if self._collector is not None:
                self._collector.record_emit(rel, "remove")
            removed.append(rel)
        return removed
