"""Top-level ``wasthere`` command: builds the subcommand parser and dispatches."""

from __future__ import annotations

import argparse
import sys

from wasthere import __version__
from wasthere.cli import analyze, dates, match
from wasthere.utils.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wasthere",
        description="WasThere flyer conversion tools.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    dates.register(subparsers)
    match.register(subparsers)
    analyze.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv* and run the chosen command, returning its exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Results go to stdout; logs never do.  Only analyze is chatty enough
    # to warrant INFO output, and it configures its own level.
    if args.command != "analyze":
        configure_logging(log_level="WARNING", stream=sys.stderr)

    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
