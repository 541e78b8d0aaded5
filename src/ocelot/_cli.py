"""Ocelot CLI — ocelot build / ocelot watch.

Entry point for the ``ocelot`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys

from ocelot._errors import ConfigError


def _add_site_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("root", nargs="?", default=".", help="Site root directory")
    parser.add_argument("--output", default=None, help="Output directory")
    parser.add_argument(
        "--base-url", default=None, help="Base URL for sitemap generation",
    )
    parser.add_argument(
        "--environment", default=None, help="Build environment name (default: dev)",
    )
    parser.add_argument(
        "--minify", action="store_true", default=None, help="Minify CSS and JS output",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", default=None,
        help="Print every diagnostic",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ocelot CLI."""
    parser = argparse.ArgumentParser(
        prog="ocelot",
        description="Incremental static site generator.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ocelot build
    build_parser = subparsers.add_parser(
        "build",
        help="Build the site once",
    )
    _add_site_arguments(build_parser)

    # ocelot watch
    watch_parser = subparsers.add_parser(
        "watch",
        help="Build, then rebuild incrementally on file changes",
    )
    _add_site_arguments(watch_parser)

    return parser


def _get_version() -> str:
    """Get the package version."""
    from ocelot import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from ocelot.app import build, watch

    overrides = {
        "output": args.output,
        "base_url": args.base_url,
        "environment": args.environment,
        "minify": args.minify,
        "verbose": args.verbose,
    }
    try:
        if args.command == "build":
            result = build(root=args.root, **overrides)
            if not result.ok:
                sys.exit(1)
        elif args.command == "watch":
            watch(root=args.root, **overrides)
    except ConfigError as exc:
        print(f"  Config error: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
