"""Dependency edges recorded while processing an item."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FileDependency:
    """The item's output was computed from the file at ``path``.

    Attributes:
        path: Logical source path (``/layouts/_default.html``).
        fingerprint: Content hash at the time the edge was recorded.

    """

    path: str
    fingerprint: str = ""


@dataclass(frozen=True, slots=True)
class ItemDependency:
    """The item's output reads another item, addressed by its stable key."""

    key: str


type Dependency = FileDependency | ItemDependency
