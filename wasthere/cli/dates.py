"""Date subcommands: ``infer-year`` and ``candidates``.

Usage::

    wasthere infer-year 5 20 --weekday Friday      # -> 2005
    wasthere candidates 5 20 --weekday Friday      # -> 1994, 2005, 2011

Both print nothing and exit 1 when no year in the search window fits.  The
search and preferred windows come from the ``year_inference`` section of
config/config.yaml.
"""

from __future__ import annotations

import argparse
import sys

from wasthere.config.loader import load_config
from wasthere.services.year_inference import DateYearInferenceService
from wasthere.utils.errors import ConfigurationError


def register(subparsers: argparse._SubParsersAction) -> None:
    infer = subparsers.add_parser(
        "infer-year",
        help="Most likely year for a month/day printed without one",
    )
    _add_date_arguments(infer)
    infer.set_defaults(handler=run_infer_year)

    candidates = subparsers.add_parser(
        "candidates",
        help="Years a reviewer would choose from for a partial date",
    )
    _add_date_arguments(candidates)
    candidates.set_defaults(handler=run_candidates)


def _add_date_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("month", type=int, help="Month number (1-12)")
    parser.add_argument("day", type=int, help="Day of month (1-31)")
    parser.add_argument(
        "--weekday",
        "-w",
        default=None,
        help="Weekday printed on the flyer (e.g. Friday, Sat)",
    )


def _year_inference() -> DateYearInferenceService:
    """Year inference with the windows from config/config.yaml."""
    # Deferred import: wasthere.main pulls in the LLM SDKs.
    from wasthere.main import build_year_inference

    return build_year_inference(load_config())


def run_infer_year(args: argparse.Namespace) -> int:
    try:
        service = _year_inference()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    year = service.infer_year(args.month, args.day, args.weekday)
    if year is None:
        print(f"No year fits {args.month}/{args.day}", file=sys.stderr)
        return 1
    print(year)
    return 0


def run_candidates(args: argparse.Namespace) -> int:
    try:
        service = _year_inference()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    years = service.get_candidate_years(args.month, args.day, args.weekday)
    if not years:
        print(f"No year fits {args.month}/{args.day}", file=sys.stderr)
        return 1
    print(", ".join(str(year) for year in years))
    return 0
