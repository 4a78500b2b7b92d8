"""
CLI interface for qmlsync.

Converts and canonicalizes UI documents between the registered tree formats
(QML text and the JSON wire format). Pipe-friendly: reads stdin when no file
is given and writes the result to stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .config import get_config
from .formats import json as _json  # noqa: F401 - ensure json format is registered
from .formats import qml as _qml  # noqa: F401 - ensure qml format is registered
from .formats.base import TreeFormat, registry

DEFAULT_FORMAT = "qml"


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    names = [strategy.name for strategy in registry.strategies]

    parser = argparse.ArgumentParser(
        prog="qmlsync",
        description="Convert and canonicalize QML UI documents",
    )

    parser.add_argument(
        "file",
        nargs="?",
        help="Input file (reads from stdin if not provided)",
    )

    parser.add_argument(
        "--from",
        dest="source_format",
        choices=names,
        help="Input format (detected from extension or content by default)",
    )

    parser.add_argument(
        "--to",
        dest="target_format",
        choices=names,
        default=DEFAULT_FORMAT,
        help=f"Output format (default: {DEFAULT_FORMAT})",
    )

    parser.add_argument(
        "--check",
        action="store_true",
        help="Exit with status 1 if the input is not already in canonical form",
    )

    parser.add_argument(
        "--title",
        type=str,
        help="Override the window title",
    )

    parser.add_argument(
        "--width",
        type=int,
        help="Override the window width",
    )

    parser.add_argument(
        "--height",
        type=int,
        help="Override the window height",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log parse diagnostics to stderr",
    )

    return parser.parse_args(args)


def configure_logging(verbose: bool) -> None:
    """Set up the root logger from config, --verbose forces DEBUG."""
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, get_config().logging.level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def read_input(filepath: str | None) -> tuple[str, str | None]:
    """Read from file or stdin, return (content, filename)."""
    if filepath:
        with open(filepath, encoding="utf-8") as f:
            return f.read(), filepath
    return sys.stdin.read(), None


def select_source_format(name: str | None, content: str, filename: str | None) -> TreeFormat:
    """Forced format, else detection, else QML."""
    if name:
        strategy = registry.get_by_name(name)
        if strategy is not None:
            return strategy
    match = registry.detect(content, filename)
    if match is not None:
        return match.strategy
    return registry.get_by_name(DEFAULT_FORMAT)


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parsed = parse_args(args)
    configure_logging(parsed.verbose)

    try:
        content, filename = read_input(parsed.file)
    except FileNotFoundError:
        print(f"Error: File not found: {parsed.file}", file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 1

    source = select_source_format(parsed.source_format, content, filename)
    target = registry.get_by_name(parsed.target_format)

    document = source.parse(content)
    if parsed.title is not None:
        document.window.title = parsed.title
    if parsed.width is not None:
        document.window.width = parsed.width
    if parsed.height is not None:
        document.window.height = parsed.height

    output = target.generate(document)

    if parsed.check:
        if output != content:
            print(f"{filename or '<stdin>'}: not in canonical {target.name} form", file=sys.stderr)
            return 1
        return 0

    sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
