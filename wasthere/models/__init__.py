"""WasThere domain models — re-exports all public model classes.

The models are organized across three submodules by concern:
    - dates.py          — partial dates, weekdays and reviewer year choices
    - flyer.py          — flyer images, extracted club nights, diagnostics
    - reconciliation.py — matching extracted names against the archive
"""

from __future__ import annotations

from wasthere.models.dates import PartialDate, Weekday, YearSelection
from wasthere.models.flyer import (
    ActData,
    ClubNightData,
    DiagnosticInfo,
    DiagnosticStep,
    FlyerAnalysisResult,
    FlyerImage,
    StepStatus,
)
from wasthere.models.reconciliation import (
    EntityResolution,
    KnownEntities,
    MatchCandidate,
    ReconciliationResult,
    ResolvedClubNight,
    UnresolvedDate,
)

__all__ = [
    "ActData",
    "ClubNightData",
    "DiagnosticInfo",
    "DiagnosticStep",
    "EntityResolution",
    "FlyerAnalysisResult",
    "FlyerImage",
    "KnownEntities",
    "MatchCandidate",
    "PartialDate",
    "ReconciliationResult",
    "ResolvedClubNight",
    "StepStatus",
    "UnresolvedDate",
    "Weekday",
    "YearSelection",
]
