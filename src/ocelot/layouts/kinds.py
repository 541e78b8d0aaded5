"""Layout kinds and their candidate search order.

A kind decides which layout paths are tried for a (name, kind) pair and
where its pages sit in the Process stage: lighter kinds run first, so
list pages see their single pages already laid out.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ocelot._errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Callable

type SearchOrder = Callable[[str, str, str], tuple[str, ...]]

SINGLE = "single"
LIST = "list"


def _candidates(name: str, kind: str, *, bare: bool) -> tuple[str, ...]:
    stems = (f"{name}/{kind}", f"{name}.{kind}")
    return (*stems, name) if bare else stems


def single_order(name: str, kind: str, default: str) -> tuple[str, ...]:
    """``name/kind``, ``name.kind``, ``name``, then the same for ``default``."""
    found = _candidates(name, kind, bare=True)
    if name != default:
        found += _candidates(default, kind, bare=True)
    return found


def list_order(name: str, kind: str, default: str) -> tuple[str, ...]:
    """Like ``single_order`` without the bare names."""
    found = _candidates(name, kind, bare=False)
    if name != default:
        found += _candidates(default, kind, bare=False)
    return found


def is_list_kind(kind: str) -> bool:
    return kind.endswith("s") or kind.endswith(LIST)


@dataclass(frozen=True, slots=True)
class LayoutKind:
    """A named kind of layout.

    Attributes:
        name: Kind name as used in front matter (``layout_kind``).
        weight: Process-stage order; lower runs first.
        search: ``(layout name, kind, default name) -> candidate stems``.
        lists_pages: Layouts of this kind receive every page as ``pages``.

    """

    name: str
    weight: int = 0
    search: SearchOrder = single_order
    lists_pages: bool = False

    def candidates(self, layout_name: str, default: str) -> tuple[str, ...]:
        return self.search(layout_name, self.name, default)


class LayoutKindRegistry:
    """Registered kinds; unknown kinds are created on first use."""

    def __init__(self) -> None:
        self._kinds: dict[str, LayoutKind] = {}
        self._lock = threading.Lock()
        self.register(LayoutKind(SINGLE, 0, single_order))
        self.register(LayoutKind(LIST, 10, list_order, lists_pages=True))

    def register(self, kind: LayoutKind) -> None:
        if not kind.name or "/" in kind.name:
            msg = f"Invalid layout kind name {kind.name!r}"
            raise ConfigError(msg)
        with self._lock:
            self._kinds[kind.name] = kind

    def get(self, name: str) -> LayoutKind:
        with self._lock:
            found = self._kinds.get(name)
            if found is None:
                listish = is_list_kind(name)
                found = LayoutKind(
                    name,
                    10 if listish else 0,
                    list_order if listish else single_order,
                    lists_pages=listish,
                )
                self._kinds[name] = found
            return found

    def weight(self, name: str) -> int:
        return self.get(name).weight

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._kinds
