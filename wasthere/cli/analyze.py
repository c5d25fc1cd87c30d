# =============================================================================
# wasthere/cli/analyze.py: CLI Analyze Command (Flyer -> Club Nights)
# =============================================================================
#
# Runs the flyer conversion outside any web front end:
#
#   1. Analyse:   each image goes to the configured vision model; partial
#                 dates get candidate years and an inferred year
#   2. Reconcile: extracted event, venue and act names are matched against
#                 a JSON file of known names; unknown ones are reported new
#   3. Log:       every flyer gets a conversion log file recording the
#                 request, the raw response, the parsed result and what
#                 would be created
#
# Typical usage:
#   python -m wasthere.cli analyze flyer.jpg
#   python -m wasthere.cli analyze a.jpg b.png --known archive.json --json
#   python -m wasthere.cli analyze flyer.jpg --select 5-20=2005
#
# The known-names file looks like:
#   {"events": ["Fabric"], "venues": ["Fabric"], "acts": ["Dave Clarke"]}
#
# --quiet (implied by --json) sends logs to stderr at WARNING so stdout holds
# only the results.
# =============================================================================

"""Analyse flyer images and reconcile them with known archive names.

Usage::

    wasthere analyze flyer.jpg [more.jpg ...] [--known FILE.json] [--json]
                     [--select M-D=YYYY ...] [--quiet]

Exit status is 0 when every flyer was analysed, 1 when any failed and 2
for unusable arguments (unreadable known-names file, bad selection).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import re
import sys
import time
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wasthere.models.dates import YearSelection
from wasthere.models.flyer import FlyerAnalysisResult
from wasthere.models.reconciliation import KnownEntities, ReconciliationResult
from wasthere.utils.errors import ConfigurationError
from wasthere.utils.logging import configure_logging

_SELECTION_RE = re.compile(r"^\s*(\d{1,2})-(\d{1,2})\s*=\s*(\d{4})\s*$")


def register(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "analyze",
        help="Extract club nights from flyer images with a vision model",
    )
    parser.add_argument("images", nargs="+", type=Path, help="Flyer image files")
    parser.add_argument(
        "--known",
        type=Path,
        default=None,
        metavar="FILE.json",
        help="JSON file of known events, venues and acts",
    )
    parser.add_argument(
        "--select",
        type=parse_selection,
        action="append",
        default=[],
        metavar="M-D=YYYY",
        help="Year to use for a partial date, e.g. 5-20=2005 (repeatable)",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings, to stderr")
    parser.set_defaults(handler=run_analyze)


def parse_selection(text: str) -> YearSelection:
    """Parse ``M-D=YYYY`` into a :class:`YearSelection`."""
    match = _SELECTION_RE.match(text)
    if match is None:
        raise argparse.ArgumentTypeError(f"expected M-D=YYYY, got '{text}'")
    try:
        return YearSelection(
            month=int(match.group(1)), day=int(match.group(2)), year=int(match.group(3))
        )
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(f"invalid selection '{text}'") from exc


def load_known_entities(path: Path | None) -> KnownEntities:
    """Read the known-names JSON file; no file means nothing is known yet."""
    if path is None:
        return KnownEntities()
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return KnownEntities.model_validate(data)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_text_output(
    image: Path,
    result: FlyerAnalysisResult,
    reconciliation: ReconciliationResult | None,
    log_path: Path | None,
) -> str:
    lines: list[str] = []
    sep = "=" * 60

    lines.append(sep)
    lines.append(f"  {image.name}")
    lines.append(sep)
    if log_path is not None:
        lines.append(f"Conversion log: {log_path}")

    if not result.success:
        lines.append(f"FAILED: {result.error_message}")
        return "\n".join(lines)

    if reconciliation is not None:
        for night in reconciliation.club_nights:
            event = night.event.resolved if night.event else "?"
            venue = night.venue.resolved if night.venue else "?"
            lines.append(f"{night.date.isoformat()}  {event} @ {venue}")
            if night.acts:
                names = [
                    f"{act.resolved} (live)" if act.resolved in night.live_sets else act.resolved
                    for act in night.acts
                ]
                lines.append(f"    Acts: {', '.join(names)}")

        for unresolved in reconciliation.unresolved_dates:
            weekday = f" ({unresolved.day_of_week})" if unresolved.day_of_week else ""
            years = ", ".join(str(year) for year in unresolved.candidate_years) or "none"
            lines.append(
                f"UNDATED  {unresolved.month}/{unresolved.day}{weekday}: "
                f"{unresolved.reason}; candidates {years}"
            )

        for label, names in (
            ("New events", reconciliation.new_events),
            ("New venues", reconciliation.new_venues),
            ("New acts", reconciliation.new_acts),
        ):
            if names:
                lines.append(f"{label}: {', '.join(names)}")

    inferred = [night for night in result.club_nights if night.needs_year_selection]
    if inferred:
        lines.append("")
        lines.append("Inferred years (override with --select M-D=YYYY):")
        for night in inferred:
            years = ", ".join(str(year) for year in night.candidate_years)
            lines.append(
                f"    {night.month}-{night.day} {night.day_of_week or ''}".rstrip()
                + f" -> {night.inferred_year} (candidates {years})"
            )

    return "\n".join(lines)


def _format_json_entry(
    image: Path,
    result: FlyerAnalysisResult,
    reconciliation: ReconciliationResult | None,
    log_path: Path | None,
) -> dict[str, Any]:
    return {
        "image": str(image),
        "success": result.success,
        "error": result.error_message,
        "log_file": str(log_path) if log_path is not None else None,
        "analysis": result.model_dump(mode="json"),
        "reconciliation": reconciliation.model_dump(mode="json") if reconciliation else None,
    }


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


async def _analyze_all(
    analyzer: Any, images: list[Path], max_concurrent: int
) -> list[FlyerAnalysisResult]:
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def _one(image: Path) -> FlyerAnalysisResult:
        async with semaphore:
            return await analyzer.analyze_flyer(image)

    return list(await asyncio.gather(*(_one(image) for image in images)))


def _record_outcome(
    conversion_logger: Any,
    result: FlyerAnalysisResult,
    reconciliation: ReconciliationResult | None,
    selections: list[YearSelection],
) -> None:
    log_id = result.diagnostics.log_id
    if log_id is None:
        return

    if reconciliation is None:
        conversion_logger.complete_conversion_log(
            log_id, False, result.error_message or "Analysis failed"
        )
        return

    # Only selections that dated one of this flyer's partial dates.
    partial = {f"{night.month}-{night.day}" for night in result.club_nights if night.date is None}
    applied = [selection for selection in selections if selection.key in partial]
    if applied:
        conversion_logger.log_user_year_selection(log_id, applied)
    for entity_type, names in (
        ("Event", reconciliation.new_events),
        ("Venue", reconciliation.new_venues),
        ("Act", reconciliation.new_acts),
    ):
        for name in names:
            conversion_logger.log_entity_operation(log_id, "CREATE", entity_type, name)

    summary = (
        f"{len(reconciliation.club_nights)} club nights dated, "
        f"{len(reconciliation.unresolved_dates)} without a year"
    )
    conversion_logger.complete_conversion_log(
        log_id,
        True,
        summary,
        events_created=len(reconciliation.new_events),
        venues_created=len(reconciliation.new_venues),
        acts_created=len(reconciliation.new_acts),
        club_nights_created=len(reconciliation.club_nights),
    )


async def _run(args: argparse.Namespace, known: KnownEntities) -> int:
    # Deferred import: building services pulls in the LLM SDKs and Pillow.
    from wasthere.main import build_services

    try:
        services = build_services()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    analyzer = services["flyer_analyzer"]
    reconciler = services["entity_reconciler"]
    conversion_logger = services["conversion_logger"]
    llm = services["llm_provider"]
    max_concurrent = services["config"].get("analysis", {}).get("max_concurrent", 2)

    print(f"Analyzing {len(args.images)} flyer(s) with {llm.get_provider_name()}", file=sys.stderr)
    json_entries: list[dict[str, Any]] = []
    failures = 0
    start = time.monotonic()
    try:
        results = await _analyze_all(analyzer, args.images, max_concurrent)
        print(f"Done in {time.monotonic() - start:.1f}s", file=sys.stderr)

        for image, result in zip(args.images, results):
            reconciliation = (
                reconciler.reconcile(result, known, args.select) if result.success else None
            )
            if not result.success:
                failures += 1
            _record_outcome(conversion_logger, result, reconciliation, args.select)

            log_id = result.diagnostics.log_id
            log_path = conversion_logger.get_log_file_path(log_id) if log_id else None
            if args.json:
                json_entries.append(_format_json_entry(image, result, reconciliation, log_path))
            else:
                print(_format_text_output(image, result, reconciliation, log_path))
    finally:
        try:
            await llm.aclose()
        finally:
            conversion_logger.close()

    if args.json:
        print(json.dumps(json_entries, indent=2, default=str))
    return 1 if failures else 0


def run_analyze(args: argparse.Namespace) -> int:
    quiet = args.quiet or args.json
    if quiet:
        configure_logging(log_level="WARNING", stream=sys.stderr)
    else:
        from wasthere.config.settings import Settings

        configure_logging(log_level=Settings().log_level, stream=sys.stderr)

    try:
        known = load_known_entities(args.known)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        print(f"Error: cannot read known names from {args.known}: {exc}", file=sys.stderr)
        return 2

    return asyncio.run(_run(args, known))


def main(argv: list[str] | None = None) -> int:
    """Run ``analyze`` on its own: ``python -m wasthere.cli.analyze flyer.jpg``."""
    parser = argparse.ArgumentParser(prog="wasthere-analyze")
    register(parser.add_subparsers(dest="command"))
    args = parser.parse_args(["analyze", *(sys.argv[1:] if argv is None else argv)])
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
