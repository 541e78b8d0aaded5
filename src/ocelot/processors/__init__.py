"""Bundled plugins.

Each plugin registers its processors and converters into a
ProcessorRegistry from ``setup``; ``ocelot.app.compose`` wires the
default set.
"""

from ocelot.processors.data import DataPlugin
from ocelot.processors.layouts import LayoutsPlugin
from ocelot.processors.markdown import MarkdownPlugin
from ocelot.processors.minify import MinifyPlugin
from ocelot.processors.stylesheet import StylesheetPlugin

__all__ = [
    "DataPlugin",
    "LayoutsPlugin",
    "MarkdownPlugin",
    "MinifyPlugin",
    "StylesheetPlugin",
]
