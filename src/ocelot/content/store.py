"""Content store — owns every item of one build, keyed by output URL.

The store performs no I/O.  Items register under their URL; a URL
retargeted by a processor is re-indexed on the spot, and a retarget onto
a URL owned by another live item is refused with UrlConflictError.
"""

from __future__ import annotations

import itertools
import threading
from typing import TYPE_CHECKING

from ocelot._errors import UrlConflictError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ocelot.content.item import ContentItem


class ContentStore:
    """All items of a build: pages, static files and dynamic items.

    Discarded items stay reachable by key (their dependency edges remain
    valid) but release their URL and are skipped by ``find`` and the
    ``pages`` / ``static_files`` / ``dynamic_items`` views.

    """

    def __init__(self) -> None:
        self._by_key: dict[str, ContentItem] = {}
        self._by_url: dict[str, ContentItem] = {}
        self._seq = itertools.count()
        self._lock = threading.RLock()

    # ----- registration -----

    def add(self, item: ContentItem) -> ContentItem:
        """Register ``item`` under its URL.

        An older item with the same key (a reloaded source, a regenerated
        dynamic item) is replaced wholesale.

        Raises:
            UrlConflictError: If another live item already owns the URL.

        """
        with self._lock:
            owner = self._owner(item.url)
            if owner is not None and owner is not item:
                if owner.key == item.key:
                    self._drop(owner)
                else:
                    msg = (
                        f"URL {item.url!r} of {item.key!r} is already "
                        f"produced by {owner.key!r}"
                    )
                    raise UrlConflictError(msg)
            previous = self._by_key.get(item.key)
            if previous is not None and previous is not item:
                self._drop(previous)
            item.weight = next(self._seq)
            self._by_key[item.key] = item
            self._by_url[item.url] = item
            item.bind_store(self._retarget)
            return item

    def remove(self, item: ContentItem) -> None:
        """Forget ``item`` entirely (its source was deleted)."""
        with self._lock:
            self._drop(item)

    def _drop(self, item: ContentItem) -> None:
        if self._by_key.get(item.key) is item:
            del self._by_key[item.key]
        if self._by_url.get(item.url) is item:
            del self._by_url[item.url]

    def _owner(self, url: str) -> ContentItem | None:
        owner = self._by_url.get(url)
        if owner is None or owner.discard:
            return None
        return owner

    def _retarget(self, item: ContentItem, old_url: str) -> None:
        with self._lock:
            if self._by_key.get(item.key) is not item:
                return
            owner = self._owner(item.url)
            if owner is not None and owner is not item:
                msg = (
                    f"{item.key!r} cannot move to {item.url!r}: "
                    f"already produced by {owner.key!r}"
                )
                raise UrlConflictError(msg)
            if self._by_url.get(old_url) is item:
                del self._by_url[old_url]
            self._by_url[item.url] = item

    # ----- lookup -----

    def find(self, url: str) -> ContentItem | None:
        """Live item producing ``url``, if any."""
        with self._lock:
            return self._owner(url)

    def get(self, key: str) -> ContentItem | None:
        """Item by stable key, discarded or not."""
        with self._lock:
            return self._by_key.get(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._by_key

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_key)

    def __iter__(self) -> Iterator[ContentItem]:
        return iter(self.all_items())

    def all_items(self) -> list[ContentItem]:
        """Every registered item in registration order, discarded included."""
        with self._lock:
            return sorted(self._by_key.values(), key=lambda i: i.weight)

    def live_items(self) -> list[ContentItem]:
        return [item for item in self.all_items() if not item.discard]

    @property
    def pages(self) -> list[ContentItem]:
        """Live items with front matter."""
        return [i for i in self.live_items() if i.is_page]

    @property
    def static_files(self) -> list[ContentItem]:
        """Live file-backed items without front matter."""
        return [
            i for i in self.live_items()
            if not i.is_page and i.source_path is not None
        ]

    @property
    def dynamic_items(self) -> list[ContentItem]:
        """Live items synthesized by generators."""
        return [i for i in self.live_items() if i.source_path is None]
