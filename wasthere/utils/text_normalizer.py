"""Text normalization utilities for flyer entity names.

This module handles three normalization concerns:

1. **Name normalization for matching** -- lowercases, strips address
   fragments that leak into AI-extracted venue names
   (e.g. "Fabric, 77a Charterhouse Street, London EC1M 6HJ"), removes
   punctuation and collapses whitespace so "Fabric", "fabric," and
   "Fabric, London" compare equal or nearly so.

2. **Act listing splitting** -- flyers put several acts on one line joined
   by "b2b", "vs", "&" or commas.  The vision model is asked to split these
   itself, but it does not always do so.

3. **Live-set markers** -- "(live)", "(live PA)", "(DJ set)" annotations are
   removed from act names and turned into an ``is_live_set`` flag.
"""

import re

# Address-suffix patterns, applied in order against the lowercased name.
# Each is an independent best-effort heuristic, not an address parser:
# some addresses survive and some legitimate suffixes get stripped.
_ADDRESS_PATTERNS: list[re.Pattern[str]] = [
    # ", 123 Street Name, City Postcode"
    re.compile(r",\s*\d+\s+[a-z\s]+,\s*[a-z\s]+\s+[a-z0-9\s]+$", re.IGNORECASE),
    # ", Street Name, City Postcode"
    re.compile(r",\s*[a-z\s]+,\s*[a-z\s]+\s+[a-z0-9\s]+$", re.IGNORECASE),
    # ", something street..."
    re.compile(r",\s*[a-z\s]+street[a-z\s,]*$", re.IGNORECASE),
    # ", something road..."
    re.compile(r",\s*[a-z\s]+road[a-z\s,]*$", re.IGNORECASE),
    # ", something avenue..."
    re.compile(r",\s*[a-z\s]+avenue[a-z\s,]*$", re.IGNORECASE),
]

_WHITESPACE = re.compile(r"\s+")

# (old, new) pairs applied after address stripping.
_PUNCTUATION_REPLACEMENTS: list[tuple[str, str]] = [
    ("'", ""),
    ("’", ""),
    ("-", " "),
    ("_", " "),
    (".", ""),
    (",", ""),
]


def normalize_name(text: str | None) -> str:
    """Normalize an event, venue or act name for similarity scoring.

    Applying this twice gives the same result as applying it once.

    Args:
        text: Raw name, possibly with address fragments and punctuation.

    Returns:
        Lowercased, punctuation-free name with single spaces, or ``""``
        for blank input.
    """
    if text is None or not text.strip():
        return ""

    normalized = text.lower().strip()

    for pattern in _ADDRESS_PATTERNS:
        normalized = pattern.sub("", normalized)

    for old, new in _PUNCTUATION_REPLACEMENTS:
        normalized = normalized.replace(old, new)

    return _WHITESPACE.sub(" ", normalized).strip()


# Separators seen between acts on one flyer line: b2b, vs, &, feat./ft.,
# featuring and commas.
_SEPARATOR_PATTERN = re.compile(
    r"\s+[Bb]2[Bb]\s+|\s+[Vv][Ss]\.?\s+|\s+&\s+|\s+feat\.?\s+" r"|\s+ft\.?\s+|\s+featuring\s+|,\s*",
    re.IGNORECASE,
)


def split_act_names(raw: str) -> list[str]:
    """Split a raw act listing into individual names.

    "Sasha b2b John Digweed, Seb Fontaine" -> ["Sasha", "John Digweed", "Seb Fontaine"]

    Args:
        raw: Raw act string potentially containing multiple names.

    Returns:
        List of individual act names, stripped of whitespace.
    """
    parts = _SEPARATOR_PATTERN.split(raw)
    return [part.strip() for part in parts if part.strip()]


_LIVE_MARKER = re.compile(
    r"\s*[\(\[]\s*(?:live(?:\s+(?:set|pa|show))?|pa)\s*[\)\]]\s*$"
    r"|\s+-?\s*live(?:\s+(?:set|pa))?\s*$",
    re.IGNORECASE,
)
_DJ_MARKER = re.compile(r"\s*[\(\[]\s*dj(?:\s+set)?\s*[\)\]]\s*$", re.IGNORECASE)


def strip_performance_marker(name: str) -> tuple[str, bool]:
    """Remove a trailing live / DJ-set annotation from an act name.

    Args:
        name: Act name as printed, e.g. "Dave Clarke (live)".

    Returns:
        ``(clean_name, is_live_set)``; acts without a marker are DJ sets.
    """
    cleaned = name.strip()
    if _LIVE_MARKER.search(cleaned):
        return _LIVE_MARKER.sub("", cleaned).strip(), True
    return _DJ_MARKER.sub("", cleaned).strip(), False
