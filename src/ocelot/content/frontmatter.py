"""YAML front matter parsing.

Front matter is a ``---`` delimited YAML block at the very start of the
file (a UTF-8 BOM is tolerated), split and loaded by python-frontmatter's
YAML handler.  Files without a complete block are returned as-is.
"""

from __future__ import annotations

from typing import Any

import yaml
from frontmatter.default_handlers import YAMLHandler

from ocelot._errors import ContentError

_HANDLER = YAMLHandler()


def split_front_matter(source: str) -> tuple[dict[str, Any] | None, str]:
    """Split ``source`` into (front matter, body).

    Returns ``(None, source)`` when the file has no front matter block.
    An empty block yields an empty dict, so the file still counts as a page.

    Raises:
        ContentError: If the block is not valid YAML or not a mapping.

    """
    text = source.removeprefix("\ufeff")
    if not _HANDLER.detect(text):
        return None, source
    try:
        raw, body = _HANDLER.split(text)
    except ValueError:
        # opening delimiter without a closing one
        return None, source

    try:
        data = _HANDLER.load(raw)
    except yaml.YAMLError as exc:
        msg = f"Invalid front matter: {exc}"
        raise ContentError(msg) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "Front matter must be a mapping"
        raise ContentError(msg)
    return data, body.lstrip("\n")
