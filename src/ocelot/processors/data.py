"""Global data loader.

Every yaml, json or toml file under the data directory is parsed into the
site scope as ``data``; nested folders become nested mappings, so
``data/authors/jane.yaml`` is ``site.data.authors.jane``.
"""

from __future__ import annotations

import json
import posixpath
import tomllib
from typing import TYPE_CHECKING, Any

import yaml

from ocelot._errors import ContentError
from ocelot.pipeline.stages import Stage

if TYPE_CHECKING:
    from ocelot.config import OcelotConfig
    from ocelot.pipeline.context import BuildContext
    from ocelot.pipeline.registry import ProcessorRegistry


def _parse(path: str, text: str) -> Any:
    ext = posixpath.splitext(path)[1].lower()
    try:
        if ext in (".yaml", ".yml"):
            return yaml.safe_load(text)
        if ext == ".json":
            return json.loads(text)
        if ext == ".toml":
            return tomllib.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        msg = f"Invalid data file {path}: {exc}"
        raise ContentError(msg) from exc
    return None


class DataLoader:
    """BEFORE_LOAD stage processor filling ``site.data``."""

    name = "data"

    def process(self, stage: Stage, ctx: BuildContext) -> None:
        base = "/" + ctx.config.data_dir.strip("/")
        data: dict[str, Any] = {}
        for logical in ctx.fs.enumerate(base):
            ext = posixpath.splitext(logical)[1].lower()
            if ext not in (".yaml", ".yml", ".json", ".toml"):
                continue
            try:
                value = _parse(logical, ctx.fs.read_text(logical))
            except (ContentError, OSError, UnicodeDecodeError) as exc:
                ctx.log.error(f"{logical}: {exc}", exception=exc)
                continue
            parts = posixpath.splitext(logical[len(base) + 1:])[0].split("/")
            node = data
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = node[part] = {}
                node = child
            node[parts[-1]] = value
        ctx.site.set("data", data)


class DataPlugin:
    name = "data"

    def setup(self, registry: ProcessorRegistry, config: OcelotConfig) -> None:
        registry.add_stage_processor(DataLoader(), Stage.BEFORE_LOAD)
