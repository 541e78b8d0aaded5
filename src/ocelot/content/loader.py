"""Scan the content directory into FileItems.

Files whose first line is ``---`` are pages: their front matter becomes
item bindings and the body becomes the item content.  Everything else is
a static file whose bytes are read only when emitted.

URL rules:
    - the default URL is the path relative to the content directory,
      or the front-matter ``url``;
    - html-like files named ``index``/``_index`` (and ``readme`` when
      ``readme_as_index``) map to their directory URL;
    - other html-like pages map to ``/<path-without-extension>/`` unless
      ``url_as_file`` is set.
"""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING

from ocelot._errors import ConfigError, ContentError, SourceReadError, UrlConflictError
from ocelot.content.bindings import Bindings
from ocelot.content.frontmatter import split_front_matter
from ocelot.content.item import FileItem

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.content.filesystem import SourceFileSystem
    from ocelot.content.item import ContentItem
    from ocelot.content.store import ContentStore
    from ocelot.content.types import ContentType, ContentTypeRegistry
    from ocelot.observability.diagnostics import BuildLog

_BOM = b"\xef\xbb\xbf"
_INDEX_STEMS = frozenset({"index", "_index"})


def compute_url(
    rel_path: str,
    ctype: ContentType,
    types: ContentTypeRegistry,
    *,
    has_front_matter: bool,
    explicit_url: str | None = None,
    url_as_file: bool = False,
    readme_as_index: bool = True,
) -> str:
    """Output URL for a content file at ``rel_path`` (``/posts/a.md``)."""
    url = explicit_url or rel_path
    if url.endswith("/") or not types.is_html_like(ctype) or url.endswith(".html"):
        return url
    directory, filename = posixpath.split(url)
    stem = posixpath.splitext(filename)[0].lower()
    if stem in _INDEX_STEMS or (readme_as_index and stem == "readme"):
        return directory.rstrip("/") + "/"
    if has_front_matter and not url_as_file:
        return posixpath.splitext(url)[0] + "/"
    return url


class ContentLoader:
    """Creates items for every file under the content directory.

    Args:
        fs: Overlaid source filesystem.
        types: Content type registry (unknown extensions get registered).
        config: Site configuration.
        log: Build log receiving read errors and URL conflicts.

    """

    def __init__(
        self,
        fs: SourceFileSystem,
        types: ContentTypeRegistry,
        config: OcelotConfig,
        log: BuildLog,
    ) -> None:
        self._fs = fs
        self._types = types
        self._config = config
        self._log = log
        self._prefix = "/" + config.content_dir.strip("/")

    def owns(self, logical: str) -> bool:
        """Whether ``logical`` lies in the content directory."""
        return logical.startswith(self._prefix + "/")

    def load_all(self, store: ContentStore) -> list[ContentItem]:
        """Load every content file into ``store``; returns the added items."""
        added: list[ContentItem] = []
        for logical in self._fs.enumerate(self._prefix):
            item = self.load_into(store, logical)
            if item is not None:
                added.append(item)
        return added

    def load_into(self, store: ContentStore, logical: str) -> ContentItem | None:
        """Load one file and register it; errors are logged, not raised."""
        try:
            item = self.load(logical)
        except ContentError as exc:
            self._log.error(f"{logical}: {exc}", exception=exc)
            return None
        if item is None:
            return None
        try:
            store.add(item)
        except UrlConflictError as exc:
            self._log.error(str(exc), item=item, exception=exc)
            return None
        return item

    def load(self, logical: str) -> FileItem | None:
        """Create the item for ``logical``; None if the file vanished.

        Raises:
            ContentError: If the front matter is invalid or the URL unusable.

        """
        path = self._fs.resolve(logical)
        if path is None:
            return None
        rel = logical[len(self._prefix):]
        ext = posixpath.splitext(rel)[1]
        ctype = self._types.get(ext)
        fs = self._fs

        try:
            with path.open("rb") as fh:
                head = fh.read(8).removeprefix(_BOM)
        except OSError as exc:
            msg = f"Cannot read {logical}: {exc}"
            raise SourceReadError(msg) from exc
        front: dict | None = None
        body: str | None = None
        if head.startswith(b"---"):
            try:
                text = fs.read_text(logical)
            except UnicodeDecodeError:
                text = None
            except OSError as exc:
                msg = f"Cannot read {logical}: {exc}"
                raise SourceReadError(msg) from exc
            if text is not None:
                front, body = split_front_matter(text)
                if front is None:
                    body = None

        bindings = Bindings(front or {})
        explicit = front.get("url") if front else None
        if explicit is not None and not isinstance(explicit, str):
            msg = f"front matter 'url' must be a string, got {explicit!r}"
            raise ContentError(msg)
        try:
            url = compute_url(
                rel,
                ctype,
                self._types,
                has_front_matter=front is not None,
                explicit_url=explicit,
                url_as_file=self._config.url_as_file,
                readme_as_index=self._config.readme_as_index,
            )
            return FileItem(
                logical,
                url,
                ctype,
                read_text=lambda: fs.read_text(logical),
                read_bytes=lambda: fs.read_bytes(logical),
                fingerprint=fs.fingerprint(logical),
                bindings=bindings,
                has_front_matter=front is not None,
                body=body,
            )
        except ConfigError as exc:
            raise ContentError(str(exc)) from exc
