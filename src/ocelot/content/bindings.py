"""Bindings: the typed key/value store attached to items, sections and the site.

Values form a small tagged union (``Value``).  Typed accessors raise
ContentError on mismatches instead of returning something surprising,
and read-only keys can be copied onto another binding set without
clobbering what it already holds.

Scoped defaults (item, then section, then site) are an explicit lookup
over an ordered list of scopes rather than a prototype chain.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ocelot._errors import ContentError


@dataclass(frozen=True, slots=True)
class ItemRef:
    """Reference to another content item by its stable key."""

    key: str


type Value = str | int | float | bool | list[Value] | dict[str, Value] | ItemRef | None

_SCALARS = (str, int, float, bool, ItemRef, type(None))


def to_value(raw: Any) -> Value:
    """Coerce parsed front matter / data into the ``Value`` union.

    Dates and other scalars that are not part of the union are stored as
    their ISO/str form so layouts and sitemaps see stable text.
    """
    if isinstance(raw, _SCALARS):
        return raw
    if isinstance(raw, Mapping):
        return {str(k): to_value(v) for k, v in raw.items()}
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [to_value(v) for v in raw]
    isoformat = getattr(raw, "isoformat", None)
    if callable(isoformat):
        return str(isoformat())
    return str(raw)


class Bindings:
    """Ordered, typed key/value mapping with read-only keys."""

    __slots__ = ("_readonly", "_values")

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Value] = {}
        self._readonly: set[str] = set()
        if values:
            for key, value in values.items():
                self.set(key, value)

    # ----- mapping protocol -----

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __getitem__(self, key: str) -> Value:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Bindings({self._values!r})"

    def get(self, key: str, default: Value = None) -> Value:
        return self._values.get(key, default)

    def items(self) -> Iterator[tuple[str, Value]]:
        return iter(self._values.items())

    def to_dict(self) -> dict[str, Value]:
        """Shallow copy of the values, for template contexts."""
        return dict(self._values)

    # ----- mutation -----

    def set(self, key: str, value: Any, *, readonly: bool = False) -> None:
        """Bind ``key``.

        Raises:
            ContentError: If ``key`` is read-only.

        """
        if key in self._readonly:
            msg = f"Binding {key!r} is read-only"
            raise ContentError(msg)
        self._values[key] = to_value(value)
        if readonly:
            self._readonly.add(key)

    def setdefault(self, key: str, value: Any) -> Value:
        if key not in self._values:
            self.set(key, value)
        return self._values[key]

    def remove(self, key: str) -> None:
        if key in self._readonly:
            msg = f"Binding {key!r} is read-only"
            raise ContentError(msg)
        self._values.pop(key, None)

    def is_readonly(self, key: str) -> bool:
        return key in self._readonly

    def copy_readonly_to(self, other: Bindings) -> list[str]:
        """Copy every binding onto ``other`` as read-only, without overwriting.

        Returns the keys that were copied.
        """
        copied: list[str] = []
        for key, value in self._values.items():
            if key in other._values:
                continue
            other._values[key] = value
            other._readonly.add(key)
            copied.append(key)
        return copied

    # ----- typed accessors -----

    def get_str(self, key: str, default: str | None = None) -> str | None:
        value = self._values.get(key)
        if value is None:
            return default
        if not isinstance(value, str):
            raise _mismatch(key, "a string", value)
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._values.get(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            raise _mismatch(key, "true or false", value)
        return value

    def get_number(self, key: str, default: float | None = None) -> int | float | None:
        value = self._values.get(key)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _mismatch(key, "a number", value)
        return value

    def get_list(self, key: str) -> list[Value]:
        value = self._values.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise _mismatch(key, "a list", value)
        return value

    def get_map(self, key: str) -> dict[str, Value]:
        value = self._values.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise _mismatch(key, "a mapping", value)
        return value


def _mismatch(key: str, expected: str, value: Value) -> ContentError:
    return ContentError(f"Binding {key!r} must be {expected}, got {value!r}")


def lookup(key: str, scopes: Sequence[Bindings | Mapping[str, Any]], default: Any = None) -> Any:
    """Return the first binding of ``key`` across ``scopes``.

    Scopes are ordered from most to least specific, e.g.
    ``[item.bindings, section, site]``.  A scope holding ``None`` for the
    key counts as unset.
    """
    for scope in scopes:
        if key in scope:
            value = scope[key]
            if value is not None:
                return value
    return default
