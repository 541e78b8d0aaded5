"""Template evaluation behind a two-method interface.

The engine only ever calls ``parse`` and ``render``; the default
implementation wraps a kida Environment whose loader sees every layouts
directory of the overlay so layouts can include and extend each other.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ocelot._errors import TemplateError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path


@runtime_checkable
class TemplateEvaluator(Protocol):
    """Parses layout bodies once and renders them per item."""

    def parse(self, source: str, name: str) -> Any: ...

    def render(self, template: Any, context: Mapping[str, Any]) -> str: ...


class KidaEvaluator:
    """kida-backed evaluator.

    Args:
        search_paths: Layout directories, highest precedence first.

    """

    def __init__(self, search_paths: Sequence[Path] = ()) -> None:
        from kida import Environment, FileSystemLoader

        dirs = [p for p in search_paths if p.is_dir()]
        if dirs:
            self._env = Environment(loader=FileSystemLoader(dirs), autoescape=False)
        else:
            self._env = Environment(autoescape=False)

    def parse(self, source: str, name: str) -> Any:
        try:
            return self._env.from_string(source)
        except Exception as exc:
            msg = f"Cannot parse layout {name}: {exc}"
            raise TemplateError(msg) from exc

    def render(self, template: Any, context: Mapping[str, Any]) -> str:
        try:
            return template.render(**context)
        except Exception as exc:
            msg = f"Layout rendering failed: {exc}"
            raise TemplateError(msg) from exc
