"""Content types and the extension registry.

A ContentType is a plain named value; the registry decides which file
extensions map to it and which types get "pretty" directory URLs.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ContentType:
    """Named content type (``markdown``, ``html``, ``css`` ...).

    Equality and hashing are by name only.
    """

    name: str

    def __str__(self) -> str:
        return self.name


MARKDOWN = ContentType("markdown")
HTML = ContentType("html")
CSS = ContentType("css")
SCSS = ContentType("scss")
JS = ContentType("js")
XML = ContentType("xml")
TXT = ContentType("txt")

_DEFAULTS: tuple[tuple[ContentType, tuple[str, ...]], ...] = (
    (MARKDOWN, (".md", ".markdown")),
    (HTML, (".html", ".htm")),
    (CSS, (".css",)),
    (SCSS, (".scss", ".sass")),
    (JS, (".js",)),
    (XML, (".xml",)),
    (TXT, (".txt",)),
)


def normalize_extension(ext: str) -> str:
    """Lower-case an extension and make sure it starts with a dot."""
    ext = ext.strip().lower()
    if not ext:
        return ""
    return ext if ext.startswith(".") else "." + ext


class ContentTypeRegistry:
    """Ordered mapping of file extensions to content types.

    Every registered type owns at least one extension: unknown extensions
    met while scanning register a new type named after the extension.
    Lookups for a type with no registered extension fall back to
    ``.<type name>``.

    """

    def __init__(self, *, with_defaults: bool = True) -> None:
        self._by_ext: dict[str, ContentType] = {}
        self._exts: dict[ContentType, list[str]] = {}
        self._html_like: set[ContentType] = {HTML, MARKDOWN}
        self._lock = threading.Lock()
        if with_defaults:
            for ctype, exts in _DEFAULTS:
                for ext in exts:
                    self.register(ext, ctype)

    def register(self, ext: str, ctype: ContentType) -> None:
        """Map ``ext`` to ``ctype``; a later registration of the same ext wins."""
        ext = normalize_extension(ext)
        with self._lock:
            previous = self._by_ext.get(ext)
            if previous is not None and previous != ctype:
                self._exts[previous].remove(ext)
            self._by_ext[ext] = ctype
            bucket = self._exts.setdefault(ctype, [])
            if ext not in bucket:
                bucket.append(ext)

    def get(self, ext: str) -> ContentType:
        """Type for ``ext``, registering a new type for unknown extensions."""
        ext = normalize_extension(ext)
        if not ext:
            return TXT
        with self._lock:
            found = self._by_ext.get(ext)
        if found is not None:
            return found
        ctype = ContentType(ext[1:])
        self.register(ext, ctype)
        return ctype

    def extensions_for(self, ctype: ContentType) -> tuple[str, ...]:
        """Extensions of ``ctype`` in registration order."""
        with self._lock:
            exts = tuple(self._exts.get(ctype, ()))
        return exts or ("." + ctype.name,)

    def primary_extension(self, ctype: ContentType) -> str:
        return self.extensions_for(ctype)[0]

    def mark_html_like(self, ctype: ContentType) -> None:
        """Give ``ctype`` pretty directory URLs like html and markdown."""
        with self._lock:
            self._html_like.add(ctype)

    def is_html_like(self, ctype: ContentType) -> bool:
        with self._lock:
            return ctype in self._html_like

    def __contains__(self, ctype: object) -> bool:
        with self._lock:
            return ctype in self._exts
