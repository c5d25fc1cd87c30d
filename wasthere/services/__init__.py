"""Flyer conversion services.

- **year_inference** -- candidate years for partial flyer dates.
- **fuzzy_matcher** -- name similarity and best-match lookup.
- **flyer_analyzer** -- vision-model extraction of club nights from a flyer.
- **conversion_logger** -- per-flyer audit log files.
- **entity_reconciler** -- dates and canonical names for extracted club nights.
"""

from wasthere.services.conversion_logger import FlyerConversionLogger
from wasthere.services.entity_reconciler import EntityReconciler
from wasthere.services.flyer_analyzer import EXTRACTION_PROMPT, FlyerAnalyzer
from wasthere.services.fuzzy_matcher import DEFAULT_MIN_SIMILARITY, FuzzyMatchingService
from wasthere.services.year_inference import (
    DateYearInferenceService,
    is_valid_date,
    parse_day_of_week,
)

__all__ = [
    "DEFAULT_MIN_SIMILARITY",
    "EXTRACTION_PROMPT",
    "DateYearInferenceService",
    "EntityReconciler",
    "FlyerAnalyzer",
    "FlyerConversionLogger",
    "FuzzyMatchingService",
    "is_valid_date",
    "parse_day_of_week",
]
