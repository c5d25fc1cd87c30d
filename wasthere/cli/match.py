"""Name matching subcommands: ``similarity`` and ``match``.

Usage::

    wasthere similarity "fabric," "Fabric"                       # -> 1.000
    wasthere match "Fabric, Charterhouse Street" Fabric Turnmills  # -> Fabric
    wasthere match "Fabrik" Fabric Turnmills --show 3            # ranked scores too
"""

from __future__ import annotations

import argparse
import sys

from wasthere.config.loader import load_config
from wasthere.services.fuzzy_matcher import FuzzyMatchingService
from wasthere.utils.errors import ConfigurationError


def register(subparsers: argparse._SubParsersAction) -> None:
    similarity = subparsers.add_parser(
        "similarity",
        help="Similarity score (0-1) between two names",
    )
    similarity.add_argument("first")
    similarity.add_argument("second")
    similarity.set_defaults(handler=run_similarity)

    best = subparsers.add_parser(
        "match",
        help="Best known name for an extracted name",
    )
    best.add_argument("query", help="Name as extracted from a flyer")
    best.add_argument("candidates", nargs="+", help="Known canonical names")
    best.add_argument(
        "--min-similarity",
        type=float,
        default=None,
        help="Score the best candidate must reach (default: matching.min_similarity from config)",
    )
    best.add_argument(
        "--show",
        type=int,
        default=0,
        metavar="N",
        help="Also print the N best-scoring candidates",
    )
    best.set_defaults(handler=run_match)


def run_similarity(args: argparse.Namespace) -> int:
    score = FuzzyMatchingService().calculate_similarity(args.first, args.second)
    print(f"{score:.3f}")
    return 0


def run_match(args: argparse.Namespace) -> int:
    min_similarity = args.min_similarity
    if min_similarity is None:
        try:
            min_similarity = load_config()["matching"]["min_similarity"]
        except ConfigurationError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 2
    if not 0.0 <= min_similarity <= 1.0:
        print("Error: --min-similarity must be between 0 and 1", file=sys.stderr)
        return 2

    matcher = FuzzyMatchingService()
    if args.show > 0:
        for ranked in matcher.rank_matches(args.query, args.candidates, limit=args.show):
            print(f"{ranked.score:.3f}  {ranked.candidate}")

    best = matcher.find_best_match(args.query, args.candidates, min_similarity)
    if best is None:
        print(f"No match for '{args.query}'", file=sys.stderr)
        return 1
    print(best)
    return 0
