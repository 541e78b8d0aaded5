"""Per-build context shared by every processor."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ocelot._errors import BuildCancelled
from ocelot.content.bindings import Bindings, lookup
from ocelot.content.dependency import FileDependency, ItemDependency

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.content.filesystem import SourceFileSystem
    from ocelot.content.item import ContentItem
    from ocelot.content.store import ContentStore
    from ocelot.content.types import ContentTypeRegistry
    from ocelot.layouts.converters import Converter
    from ocelot.layouts.evaluator import TemplateEvaluator
    from ocelot.layouts.kinds import LayoutKindRegistry
    from ocelot.observability.collector import BuildCollector
    from ocelot.observability.diagnostics import BuildLog
    from ocelot.reactive.graph import DependencyTracker


@dataclass(slots=True)
class BuildContext:
    """Everything a processor may read or touch during one build.

    Attributes:
        config: Site configuration.
        store: Items of this build.
        fs: Overlaid source filesystem.
        types: Extension to content type mapping.
        kinds: Registered layout kinds.
        converters: Converters in registration order.
        evaluator: Template evaluator for layouts.
        log: Diagnostics of this build.
        tracker: Dependency tracker edges are recorded into.
        collector: Structured event sink, if any.
        site: Site scope bindings (``params``, ``data``, ``environment`` ...).
        cancel: Set to abandon the build before it emits.
        full: Whether every item is being rebuilt.

    """

    config: OcelotConfig
    store: ContentStore
    fs: SourceFileSystem
    types: ContentTypeRegistry
    kinds: LayoutKindRegistry
    converters: tuple[Converter, ...]
    evaluator: TemplateEvaluator
    log: BuildLog
    tracker: DependencyTracker
    collector: BuildCollector | None = None
    site: Bindings = field(default_factory=Bindings)
    cancel: threading.Event = field(default_factory=threading.Event)
    full: bool = True
    _sections: dict[str, Bindings] = field(default_factory=dict)

    def check_cancelled(self) -> None:
        """Raise BuildCancelled if the cancel signal is set."""
        if self.cancel.is_set():
            msg = "Build cancelled"
            raise BuildCancelled(msg)

    # ----- scopes -----

    def section_of(self, item: ContentItem) -> Bindings:
        """Section scope of ``item``: config ``sections`` keyed by first URL segment."""
        parts = item.url.strip("/").split("/")
        segment = parts[0] if len(parts) > 1 or item.url.endswith("/") else ""
        found = self._sections.get(segment)
        if found is None:
            found = Bindings(self.config.sections.get(segment) or {})
            self._sections[segment] = found
        return found

    def scopes(self, item: ContentItem) -> list[Bindings]:
        """Lookup scopes of ``item``, most specific first."""
        return [item.bindings, self.section_of(item), self.site]

    def lookup(self, item: ContentItem, key: str, default: Any = None) -> Any:
        return lookup(key, self.scopes(item), default)

    # ----- dependencies -----

    def depend_on_file(self, item: ContentItem, logical: str) -> None:
        """Record that ``item``'s output reads the source file ``logical``."""
        dep = FileDependency(logical, self.fs.fingerprint(logical))
        self.tracker.record(item, dep)

    def depend_on_item(self, item: ContentItem, other: ContentItem) -> None:
        """Record that ``item``'s output reads ``other``."""
        if other.key == item.key:
            return
        dep = ItemDependency(other.key)
        self.tracker.record(item, dep)
