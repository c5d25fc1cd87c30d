# =============================================================================
# wasthere/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Command-line tools for the WasThere flyer conversion services, run via
# `python -m wasthere.cli <command>` or the `wasthere` console script.
#
#   1. DATES    (dates.py)
#      `infer-year` and `candidates`: the year a partial flyer date most
#      likely refers to, and the short list a reviewer would choose from.
#
#   2. MATCHING (match.py)
#      `similarity` and `match`: fuzzy comparison of an extracted name with
#      known canonical names, as done before creating a venue or event.
#
#   3. ANALYSIS (analyze.py)
#      `analyze`: sends flyer images to the configured vision model, writes
#      per-flyer conversion logs and reconciles the extracted names with a
#      JSON file of known events, venues and acts.
#
# Architecture Notes:
#   - argparse subcommands; each module registers its own parsers.
#   - Heavy imports (LLM SDKs, Pillow) are deferred to the analyze command
#     so the date and matching tools start instantly.
#   - Exit codes: 0 success, 1 no result or failed analysis, 2 usage error.
# =============================================================================

"""CLI tools for WasThere.

- ``python -m wasthere.cli infer-year 5 20 --weekday Friday``
- ``python -m wasthere.cli candidates 5 20 --weekday Friday``
- ``python -m wasthere.cli similarity "fabric," "Fabric"``
- ``python -m wasthere.cli match "Fabrik" Fabric "Ministry of Sound"``
- ``python -m wasthere.cli analyze flyer.jpg --known archive.json``
"""
