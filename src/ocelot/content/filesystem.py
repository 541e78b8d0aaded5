"""Overlaid, read-only view of the site sources.

Logical paths are site-rooted POSIX strings (``/content/posts/a.md``).
Each logical path resolves against the site root first, then every theme
root in order; the first existing file wins.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


def to_logical(rel: Path | str) -> str:
    """Logical path for a root-relative path."""
    text = str(rel).replace("\\", "/").strip("/")
    return "/" + text if text else "/"


class SourceFileSystem:
    """Read-only overlay of one or more source roots.

    Args:
        roots: Absolute roots in lookup order.

    """

    def __init__(self, roots: Sequence[Path]) -> None:
        self._roots = tuple(Path(r) for r in roots)

    @property
    def roots(self) -> tuple[Path, ...]:
        return self._roots

    def resolve(self, logical: str) -> Path | None:
        """First existing file for ``logical``, or None."""
        rel = logical.lstrip("/")
        for root in self._roots:
            candidate = root / rel
            if candidate.is_file():
                return candidate
        return None

    def exists(self, logical: str) -> bool:
        return self.resolve(logical) is not None

    def is_dir(self, logical: str) -> bool:
        rel = logical.lstrip("/")
        return any((root / rel).is_dir() for root in self._roots)

    def enumerate(self, logical_dir: str) -> Iterator[str]:
        """Logical paths of every file under ``logical_dir``, sorted.

        Hidden files and directories (leading ``.``) are skipped.
        """
        rel_dir = logical_dir.strip("/")
        seen: set[str] = set()
        for root in self._roots:
            base = root / rel_dir if rel_dir else root
            if not base.is_dir():
                continue
            for path in base.rglob("*"):
                if not path.is_file():
                    continue
                rel = path.relative_to(root)
                if any(part.startswith(".") for part in rel.parts):
                    continue
                seen.add(to_logical(rel))
        yield from sorted(seen)

    def read_bytes(self, logical: str) -> bytes:
        path = self.resolve(logical)
        if path is None:
            raise FileNotFoundError(logical)
        return path.read_bytes()

    def read_text(self, logical: str) -> str:
        return self.read_bytes(logical).decode("utf-8")

    def fingerprint(self, logical: str) -> str:
        """blake2b digest of the file's bytes; empty string if missing."""
        path = self.resolve(logical)
        if path is None:
            return ""
        return hashlib.blake2b(path.read_bytes(), digest_size=16).hexdigest()

    def to_logical(self, path: Path) -> str | None:
        """Map an absolute path (as reported by the watcher) to a logical path."""
        for root in self._roots:
            try:
                rel = path.relative_to(root)
            except ValueError:
                continue
            return to_logical(rel)
        return None
