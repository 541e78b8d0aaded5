"""Content items.

A FileItem is backed by an input file; its text is read lazily so binary
static files are copied byte-for-byte unless a processor touched them.
A DynamicItem is synthesized by a generator and has no source path.
"""

from __future__ import annotations

import enum
import posixpath
from typing import TYPE_CHECKING

from ocelot._errors import ConfigError, SourceReadError
from ocelot.content.bindings import Bindings
from ocelot.content.dependency import FileDependency, ItemDependency

if TYPE_CHECKING:
    from collections.abc import Callable

    from ocelot.content.dependency import Dependency
    from ocelot.content.types import ContentType, ContentTypeRegistry


class LayoutState(enum.Enum):
    """Progress of the layout state machine for one item."""

    AWAITING_CONVERSION = "awaiting_conversion"
    AWAITING_LAYOUT = "awaiting_layout"
    APPLIED = "applied"
    SKIPPED = "skipped"
    CYCLE = "cycle"

    @property
    def terminal(self) -> bool:
        return self in (LayoutState.APPLIED, LayoutState.SKIPPED, LayoutState.CYCLE)


def normalize_url(url: str) -> str:
    """Site-rooted URL with forward slashes and no ``.``/``..`` segments.

    Raises:
        ConfigError: If the URL is empty or escapes the site root.

    """
    if not url:
        msg = "Empty URL"
        raise ConfigError(msg)
    raw = url.replace("\\", "/")
    trailing = raw.endswith("/")
    if not raw.startswith("/"):
        raw = "/" + raw
    parts: list[str] = []
    for part in raw.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                msg = f"URL {url!r} escapes the site root"
                raise ConfigError(msg)
            parts.pop()
            continue
        parts.append(part)
    clean = "/" + "/".join(parts)
    if trailing and clean != "/":
        clean += "/"
    return clean


class ContentItem:
    """Base class for everything the pipeline can emit.

    Attributes:
        key: Stable identity, unchanged when the URL is retargeted.
        url: Output URL.
        source_path: Logical source path, or None for dynamic items.
        content_type: Current content type; converters change it.
        bindings: Item-local bindings (front matter and layout copies).
        dependencies: Ordered, de-duplicated dependency edges.
        discard: Excluded from emission and further processing.
        failed: An error was recorded against this item.
        settled: Carried over untouched from a previous pass.
        weight: Scan order within its kind.

    """

    def __init__(
        self,
        key: str,
        url: str,
        content_type: ContentType,
        *,
        source_path: str | None = None,
        bindings: Bindings | None = None,
        has_front_matter: bool = False,
    ) -> None:
        self.key = key
        self._url = normalize_url(url)
        self.source_path = source_path
        self.content_type = content_type
        self.source_type = content_type
        self.bindings = bindings if bindings is not None else Bindings()
        self.has_front_matter = has_front_matter
        self.dependencies: list[Dependency] = []
        self.discard = False
        self.failed = False
        self.settled = False
        self.weight = 0
        self.layout_state = LayoutState.AWAITING_CONVERSION
        self.minified = False
        self._content: str | None = None
        self._store_listener: Callable[[ContentItem, str], None] | None = None
        self._url_listeners: list[Callable[[ContentItem, str], None]] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r}, url={self._url!r}, type={self.content_type})"

    # ----- url -----

    @property
    def url(self) -> str:
        return self._url

    @url.setter
    def url(self, value: str) -> None:
        new = normalize_url(value)
        if new == self._url:
            return
        old = self._url
        self._url = new
        try:
            listeners = tuple(self._url_listeners)
            if self._store_listener is not None:
                listeners = (self._store_listener, *listeners)
            for listener in listeners:
                listener(self, old)
        except Exception:
            self._url = old
            raise

    def on_url_change(self, listener: Callable[[ContentItem, str], None]) -> None:
        if listener not in self._url_listeners:
            self._url_listeners.append(listener)

    def bind_store(self, listener: Callable[[ContentItem, str], None]) -> None:
        """Route URL changes to the store now holding this item.

        Replaces the previous store's listener; an item carried over into
        a new pass belongs to one store at a time.
        """
        self._store_listener = listener

    @property
    def is_page(self) -> bool:
        """Pages carry front matter and go through layouts."""
        return self.has_front_matter

    @property
    def live(self) -> bool:
        return not self.discard

    # ----- content -----

    @property
    def content(self) -> str:
        if self._content is None:
            self._content = self._load_content()
        return self._content

    @content.setter
    def content(self, value: str) -> None:
        self._content = value

    @property
    def content_loaded(self) -> bool:
        return self._content is not None

    def _load_content(self) -> str:
        return ""

    def output_bytes(self) -> bytes:
        return self.content.encode("utf-8")

    # ----- dependencies -----

    def add_dependency(self, dep: Dependency) -> bool:
        """Append ``dep`` unless already recorded. Returns True if appended."""
        if dep in self.dependencies:
            return False
        self.dependencies.append(dep)
        return True

    def file_dependencies(self) -> list[FileDependency]:
        return [d for d in self.dependencies if isinstance(d, FileDependency)]

    def item_dependencies(self) -> list[ItemDependency]:
        return [d for d in self.dependencies if isinstance(d, ItemDependency)]

    # ----- type changes -----

    def change_content_type(self, ctype: ContentType, registry: ContentTypeRegistry) -> None:
        """Switch to ``ctype`` and rewrite the URL extension to match.

        Directory URLs (ending in ``/``) keep their shape.
        """
        if ctype == self.content_type:
            return
        if not self._url.endswith("/"):
            base, ext = posixpath.splitext(self._url)
            if ext:
                self.url = base + registry.primary_extension(ctype)
        self.content_type = ctype

    # ----- output -----

    def destination(self, registry: ContentTypeRegistry) -> str:
        """Relative output path for this item (``a/index.html`` for ``/a/``)."""
        rel = self._url.lstrip("/")
        if self._url.endswith("/"):
            index = "index" + (
                ".html"
                if registry.is_html_like(self.content_type)
                else registry.primary_extension(self.content_type)
            )
            return rel + index
        return rel

    def reset_for_reload(self) -> None:
        """Drop everything a previous pass computed."""
        self.dependencies.clear()
        self.discard = False
        self.failed = False
        self.settled = False
        self.minified = False
        self.layout_state = LayoutState.AWAITING_CONVERSION


class FileItem(ContentItem):
    """Item backed by an input file.

    Args:
        read_text: Loader for the file's text.
        read_bytes: Loader for raw bytes, used when content was never touched.
        body: Text already read (pages parsed for front matter).

    """

    def __init__(
        self,
        source_path: str,
        url: str,
        content_type: ContentType,
        *,
        read_text: Callable[[], str],
        read_bytes: Callable[[], bytes],
        fingerprint: str = "",
        bindings: Bindings | None = None,
        has_front_matter: bool = False,
        body: str | None = None,
    ) -> None:
        super().__init__(
            "file:" + source_path,
            url,
            content_type,
            source_path=source_path,
            bindings=bindings,
            has_front_matter=has_front_matter,
        )
        self._read_text = read_text
        self._read_bytes = read_bytes
        self.fingerprint = fingerprint
        if body is not None:
            self._content = body

    def _load_content(self) -> str:
        try:
            return self._read_text()
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot read {self.source_path}: {exc}"
            raise SourceReadError(msg) from exc

    def output_bytes(self) -> bytes:
        if self._content is None:
            try:
                return self._read_bytes()
            except OSError as exc:
                msg = f"Cannot read {self.source_path}: {exc}"
                raise SourceReadError(msg) from exc
        return self._content.encode("utf-8")


class DynamicItem(ContentItem):
    """Item synthesized by a generator (sitemap, taxonomy lists, ...)."""

    def __init__(
        self,
        url: str,
        content_type: ContentType,
        content: str = "",
        *,
        bindings: Bindings | None = None,
        is_page: bool = False,
        key: str | None = None,
    ) -> None:
        url = normalize_url(url)
        super().__init__(
            key or "dynamic:" + url,
            url,
            content_type,
            bindings=bindings,
            has_front_matter=is_page,
        )
        self._content = content
