# gifstack command line tool
"""
Composite animated GIFs into one looping animated GIF.

Usage:
    # Layer sprite.gif on top of background.gif, write to stdout
    gifstack background.gif sprite.gif > out.gif

    # Write to a file instead
    gifstack background.gif sprite.gif --output out.gif

    # Read one layer from stdin
    cat sprite.gif | gifstack background.gif - > out.gif

    # Programmatic usage
    from gifstack import flatten
    result = flatten(['background.gif', 'sprite.gif'], sink)
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
from pathlib import Path

from gifstack.config import settings
from gifstack.pipeline import flatten

USAGE = (
    "Pass at least two gifs to composite together. Gifs are layered in the order "
    "they're passed: first on bottom, last on top.\n"
    "All image files must be the same width and height, and be aligned in "
    "frame duration and count."
)

TERMINAL_WARNING = (
    "This command returns an image file. Your terminal likely cannot display it "
    "directly!\n"
    "Redirect output to a file or `imgcat`. If you really want to see the bytes "
    "in your terminal pipe the result to `cat`."
)

STDIN_NAME = "-"


def _stdout_is_terminal() -> bool:
    return sys.stdout.isatty()


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser of the ``gifstack`` command."""
    parser = argparse.ArgumentParser(
        prog="gifstack",
        description="Composite animated GIFs into one looping animated GIF",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s bottom.gif top.gif > out.gif      # Write to stdout
  %(prog)s bottom.gif top.gif -o out.gif     # Write to a file
  cat top.gif | %(prog)s bottom.gif - > out.gif  # Read a layer from stdin
""",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        help="Input GIFs, first on bottom, last on top. '-' reads stdin.",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log progress to stderr",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    :param argv: Command line arguments without the program name. Defaults
        to ``sys.argv[1:]``.
    :return: The process exit status
    """
    args = build_parser().parse_args(argv)
    if not args.inputs:
        print(USAGE)
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.output is None and not settings.ALLOW_TTY_OUTPUT and _stdout_is_terminal():
        print(TERMINAL_WARNING)
        return 1

    sources = [
        sys.stdin.buffer if name == STDIN_NAME else name for name in args.inputs
    ]
    names = ["<stdin>" if name == STDIN_NAME else name for name in args.inputs]

    # Encode into memory so a failed run leaves no partial output behind
    buffer = io.BytesIO()
    result = flatten(sources, buffer, names=names)
    if not result.ok:
        print(result.error, file=sys.stderr)
        return 1

    data = buffer.getvalue()
    if args.output is not None:
        try:
            args.output.write_bytes(data)
        except OSError as e:
            print(f"{args.output} - {e.strerror or e}", file=sys.stderr)
            return 1
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
