"""Ocelot — an incremental, plugin-driven static site generator.

Content items flow through a staged pipeline of processors; layouts
render pages through template engines; a dependency tracker lets a
watched site rebuild only what a change affects.

Quick start::

    import ocelot

    ocelot.build("my-site/")      # Build once
    ocelot.watch("my-site/")      # Build, then rebuild on change

"""

__version__ = "0.1.0.dev0"
__all__ = [
    "OcelotConfig",
    "__version__",
    "build",
    "watch",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import ocelot`` fast while providing a clean top-level API.
    """
    if name == "OcelotConfig":
        from ocelot.config import OcelotConfig

        return OcelotConfig

    if name == "build":
        from ocelot.app import build

        return build

    if name == "watch":
        from ocelot.app import watch

        return watch

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
