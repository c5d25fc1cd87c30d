"""Utility modules for WasThere.

- **errors** -- Domain exception hierarchy rooted at WasThereError.
- **image_loader** -- Pillow-based flyer loading, verification and downscaling.
- **logging** -- structlog setup: coloured console output in development,
  structured JSON in production.
- **text_normalizer** -- Name normalization for fuzzy matching, act listing
  splitting and live-set marker removal.
"""

from wasthere.utils.errors import (
    ConfigurationError,
    FlyerAnalysisError,
    FlyerImageError,
    LLMError,
    WasThereError,
)
from wasthere.utils.image_loader import load_flyer_image, mime_type_for
from wasthere.utils.logging import configure_logging, get_logger
from wasthere.utils.text_normalizer import normalize_name, split_act_names, strip_performance_marker

__all__ = [
    "ConfigurationError",
    "FlyerAnalysisError",
    "FlyerImageError",
    "LLMError",
    "WasThereError",
    "configure_logging",
    "get_logger",
    "load_flyer_image",
    "mime_type_for",
    "normalize_name",
    "split_act_names",
    "strip_performance_marker",
]
