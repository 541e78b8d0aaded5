"""Dependency tracker — answers "which items does this change touch?".

Edges live on the items themselves while they are processed and are
snapshotted once per pass by ``commit``, which also rebuilds the reverse index.  ``plan`` maps
a set of changed source paths to the items that must be rebuilt:

    1. items produced from a changed source, or holding a FileDependency
       on it;
    2. transitively, every item holding an ItemDependency on an item
       already selected (walked with a visited set, so cycles terminate).

A changed path that matches nothing the tracker knows about (a new file,
say) cannot be attributed and forces a full rebuild.
"""

from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ocelot.content.dependency import FileDependency, ItemDependency

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ocelot.content.dependency import Dependency
    from ocelot.content.item import ContentItem
    from ocelot.content.store import ContentStore


@dataclass(frozen=True, slots=True)
class RebuildPlan:
    """What a change batch requires.

    Attributes:
        full: Rebuild everything.
        reason: Why a full rebuild is needed (empty for partial plans).
        impacted: Keys of items to rebuild.
        changed: Logical source paths in the batch.

    """

    full: bool
    reason: str = ""
    impacted: frozenset[str] = frozenset()
    changed: frozenset[str] = frozenset()

    @classmethod
    def full_rebuild(cls, reason: str, changed: Iterable[str] = ()) -> RebuildPlan:
        return cls(full=True, reason=reason, changed=frozenset(changed))


class DependencyTracker:
    """Records item dependency edges and plans incremental rebuilds.

    Thread Safety:
        ``record`` may be called from the build thread while ``plan`` is
        called from the event loop; both take the tracker's lock.

    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._edges: dict[str, tuple[Dependency, ...]] = {}
        self._sources: dict[str, str] = {}
        self._file_index: dict[str, set[str]] = {}
        self._item_index: dict[str, set[str]] = {}

    def record(self, item: ContentItem, dep: Dependency) -> bool:
        """Note that ``item`` depends on ``dep``; False if already recorded.

        The edge lives on the item; ``commit`` reads edges from the store
        it is given and nothing else.
        """
        with self._lock:
            return item.add_dependency(dep)

    def commit(self, store: ContentStore) -> None:
        """Snapshot the edges of every item in ``store``, discarded ones included."""
        with self._lock:
            edges: dict[str, tuple[Dependency, ...]] = {}
            sources: dict[str, str] = {}
            for item in store.all_items():
                edges[item.key] = tuple(item.dependencies)
                if item.source_path is not None:
                    sources[item.source_path] = item.key
            self._edges = edges
            self._sources = sources
            self._reindex()

    def _reindex(self) -> None:
        file_index: dict[str, set[str]] = defaultdict(set)
        item_index: dict[str, set[str]] = defaultdict(set)
        for key, deps in self._edges.items():
            for dep in deps:
                if isinstance(dep, FileDependency):
                    file_index[dep.path].add(key)
                elif isinstance(dep, ItemDependency):
                    item_index[dep.key].add(key)
        self._file_index = dict(file_index)
        self._item_index = dict(item_index)

    # ----- queries -----

    def dependencies_of(self, key: str) -> tuple[Dependency, ...]:
        with self._lock:
            return self._edges.get(key, ())

    def dependents_of_file(self, path: str) -> frozenset[str]:
        """Keys of items produced from, or depending on, the file ``path``."""
        with self._lock:
            return frozenset(self._direct(path))

    def _direct(self, path: str) -> set[str]:
        found = set(self._file_index.get(path, ()))
        owner = self._sources.get(path)
        if owner is not None:
            found.add(owner)
        return found

    def plan(self, changes: Mapping[str, str]) -> RebuildPlan:
        """Plan the rebuild for ``changes`` (logical path -> change kind)."""
        changed = frozenset(changes)
        with self._lock:
            if not self._edges:
                return RebuildPlan.full_rebuild("no previous build", changed)
            seeds: set[str] = set()
            for path in changes:
                direct = self._direct(path)
                if not direct:
                    return RebuildPlan.full_rebuild(f"{path} is not tracked", changed)
                seeds |= direct
            impacted = self._closure(seeds)
        return RebuildPlan(full=False, impacted=frozenset(impacted), changed=changed)

    def _closure(self, seeds: set[str]) -> set[str]:
        visited = set(seeds)
        queue = deque(seeds)
        while queue:
            key = queue.popleft()
            for dependent in self._item_index.get(key, ()):
                if dependent not in visited:
                    visited.add(dependent)
                    queue.append(dependent)
        return visited

    def clear(self) -> None:
        with self._lock:
            self._edges = {}
            self._sources = {}
            self._file_index = {}
            self._item_index = {}
