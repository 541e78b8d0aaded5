"""Ocelot configuration.

OcelotConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ocelot._errors import ConfigError

CONFIG_FILENAMES = ("ocelot.yaml", "ocelot.yml", "ocelot.toml")


@dataclass(frozen=True, slots=True)
class OcelotConfig:
    """Configuration for an Ocelot site build.

    Attributes:
        root: Path to the site root directory (contains content/, layouts/, etc.).
              Always resolved to an absolute path on construction.
        output: Output directory for the built site.
        content_dir: Directory containing pages and static files.
        layouts_dir: Directory containing layout templates.
        data_dir: Directory containing global data files (yaml/json/toml).
        themes: Extra source roots overlaid below ``root``; first match wins.
        environment: Build environment name exposed to layouts as ``site.environment``.
        base_url: Base URL for the site (used for sitemap generation).
        default_layout: Layout name used when no scope sets ``layout``.
        url_as_file: Keep ``/a.html`` style URLs instead of ``/a/`` for pages.
        readme_as_index: Treat ``readme.*`` files like ``index.*``.
        max_passes: Upper bound of processor passes per item.
        minify: Minify emitted CSS and JS.
        allow_raw_conversion: Convert page markup even when no layout
            exists for the converted type.
        sections: Per-section bindings keyed by the first URL segment.
        params: Site-wide bindings exposed to layouts as ``site.params``.
        verbose: Print every diagnostic as it is recorded.

    """

    root: Path = field(default_factory=Path.cwd)
    output: Path = field(default_factory=lambda: Path("_site"))
    content_dir: str = "content"
    layouts_dir: str = "layouts"
    data_dir: str = "data"
    themes: tuple[Path, ...] = ()
    environment: str = "dev"
    base_url: str = ""
    default_layout: str = "_default"
    url_as_file: bool = False
    readme_as_index: bool = True
    max_passes: int = 32
    minify: bool = False
    allow_raw_conversion: bool = False
    sections: dict[str, dict[str, Any]] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    verbose: bool = False

    def __post_init__(self) -> None:
        # Resolve root to absolute so that watchfiles (which returns
        # absolute paths) can be compared via Path.relative_to().
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        resolved = tuple(
            theme if theme.is_absolute() else (self.root / theme).resolve()
            for theme in self.themes
        )
        object.__setattr__(self, "themes", resolved)
        self._check_output()

    def _check_output(self) -> None:
        # Full builds delete every unproduced file under the output directory.
        out = self.output_path.resolve()
        for root in self.source_roots:
            for name in (self.content_dir, self.layouts_dir, self.data_dir):
                source = (root / name).resolve()
                if out.is_relative_to(source) or source.is_relative_to(out):
                    msg = f"Output directory {out} overlaps source directory {source}"
                    raise ConfigError(msg)

    @property
    def source_roots(self) -> tuple[Path, ...]:
        """Overlay roots in lookup order: the site first, then each theme."""
        return (self.root, *self.themes)

    @property
    def content_path(self) -> Path:
        """Absolute path to content directory."""
        return self.root / self.content_dir

    @property
    def layouts_path(self) -> Path:
        """Absolute path to layouts directory."""
        return self.root / self.layouts_dir

    @property
    def data_path(self) -> Path:
        """Absolute path to data directory."""
        return self.root / self.data_dir

    @property
    def output_path(self) -> Path:
        """Absolute path to output directory."""
        if self.output.is_absolute():
            return self.output
        return self.root / self.output

    def is_config_file(self, path: Path) -> bool:
        """Whether ``path`` is one of the site configuration files."""
        return path.parent == self.root and path.name in CONFIG_FILENAMES
