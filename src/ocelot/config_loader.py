"""Load OcelotConfig from ocelot.yaml / ocelot.toml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import dataclasses
import tomllib
from pathlib import Path
from typing import Any

import yaml

from ocelot._errors import ConfigError
from ocelot.config import OcelotConfig

_FIELDS = frozenset(f.name for f in dataclasses.fields(OcelotConfig)) - {"root"}

_BOOL_FIELDS = frozenset({
    "url_as_file", "readme_as_index", "minify", "allow_raw_conversion", "verbose",
})
_STR_FIELDS = frozenset({
    "content_dir", "layouts_dir", "data_dir", "environment", "base_url",
    "default_layout",
})
_MAP_FIELDS = frozenset({"sections", "params"})


def load_config(root: Path, **overrides: object) -> OcelotConfig:
    """Load OcelotConfig from root, optionally merging a config file.

    Looks for ocelot.yaml, ocelot.yml, or ocelot.toml in root. If found,
    loads and merges with overrides. Overrides take precedence; ``None``
    overrides are ignored so unset CLI flags never mask file values.

    Raises:
        ConfigError: If the file cannot be parsed, names an unknown key,
            or gives a value of the wrong type.

    """
    root = Path(root)
    file_config = read_config_file(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    return OcelotConfig(root=root, **_coerce(merged))


def read_config_file(root: Path) -> dict[str, Any]:
    """Read ocelot config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("ocelot.yaml", "ocelot.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "ocelot.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping at the top level"
        raise ConfigError(msg)
    return _flatten_ocelot_section(data)


def _parse_toml(path: Path) -> dict[str, Any]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Cannot read {path.name}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_ocelot_section(data)


def _flatten_ocelot_section(data: dict[str, Any]) -> dict[str, Any]:
    """Extract ocelot.* keys into top-level config.

    Keys outside the ``ocelot`` section are accepted when they name a
    config field; anything else at the top level is left for layouts
    under ``params``.
    """
    result: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for k, v in data.items():
        if k == "ocelot":
            continue
        if k in _FIELDS:
            result[k] = v
        else:
            extra[k] = v
    section = data.get("ocelot")
    if section is not None:
        if not isinstance(section, dict):
            msg = "The 'ocelot' config section must be a mapping"
            raise ConfigError(msg)
        unknown = sorted(set(section) - _FIELDS)
        if unknown:
            msg = f"Unknown config keys: {', '.join(unknown)}"
            raise ConfigError(msg)
        result.update(section)
    if extra:
        params = dict(extra)
        params.update(result.get("params") or {})
        result["params"] = params
    return result


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    """Validate value types and normalise paths."""
    unknown = sorted(set(values) - _FIELDS)
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)
    out = dict(values)
    for key, value in values.items():
        if key in _BOOL_FIELDS and not isinstance(value, bool):
            msg = f"Config key {key!r} must be true or false, got {value!r}"
            raise ConfigError(msg)
        if key in _STR_FIELDS and not isinstance(value, str):
            msg = f"Config key {key!r} must be a string, got {value!r}"
            raise ConfigError(msg)
        if key in _MAP_FIELDS and not isinstance(value, dict):
            msg = f"Config key {key!r} must be a mapping, got {value!r}"
            raise ConfigError(msg)
    if "max_passes" in out:
        passes = out["max_passes"]
        if isinstance(passes, bool) or not isinstance(passes, int) or passes < 1:
            msg = f"Config key 'max_passes' must be a positive integer, got {passes!r}"
            raise ConfigError(msg)
    if "output" in out and not isinstance(out["output"], Path):
        out["output"] = Path(str(out["output"]))
    if "themes" in out:
        themes = out["themes"]
        if isinstance(themes, (str, Path)):
            themes = [themes]
        if not isinstance(themes, (list, tuple)):
            msg = f"Config key 'themes' must be a list of paths, got {themes!r}"
            raise ConfigError(msg)
        out["themes"] = tuple(Path(str(t)) for t in themes)
    return out
