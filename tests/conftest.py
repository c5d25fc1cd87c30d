"""Shared pytest fixtures for the WasThere test suite."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog
from PIL import Image, ImageDraw

from wasthere.config.settings import Settings
from wasthere.interfaces.llm_provider import ILLMProvider
from wasthere.services.conversion_logger import FlyerConversionLogger
from wasthere.services.fuzzy_matcher import FuzzyMatchingService
from wasthere.services.year_inference import DateYearInferenceService

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo any configure_logging() call made during a test.

    The CLI binds structlog and the root handler to the stream it was given;
    under capsys that stream is closed once the test ends.
    """
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(**overrides: Any) -> Settings:
    """Build Settings without reading .env.

    API keys are explicit so a developer's keys cannot leak in.  The matching
    threshold and logs dir stay unset unless overridden, so config.yaml values
    apply the way they do for a real run.
    """
    defaults: dict[str, Any] = {
        "gemini_api_key": "",
        "openai_api_key": "",
        "openai_base_url": "",
        "anthropic_api_key": "",
        "app_env": "test",
        "log_level": "WARNING",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def settings() -> Settings:
    return make_settings(gemini_api_key="test-gemini-key")


# ---------------------------------------------------------------------------
# Vision model answers
# ---------------------------------------------------------------------------


SAMPLE_ANALYSIS: dict[str, Any] = {
    "clubNights": [
        {
            "eventName": "Bugged Out!",
            "venueName": "Fabric, Charterhouse Street",
            "date": None,
            "dayOfWeek": "Friday",
            "month": 5,
            "day": 20,
            "acts": [
                {"name": "Dave Clarke", "isLiveSet": False},
                {"name": "Andrew Weatherall (live)", "isLiveSet": False},
                "Erol Alkan b2b Richard Fearless",
            ],
        },
        {
            "eventName": "Bugged Out!",
            "venueName": "Fabric",
            "date": "2005-06-17",
            "dayOfWeek": "Friday",
            "month": 6,
            "day": 17,
            "acts": [{"name": "Dave Clarke", "isLiveSet": False}],
        },
    ]
}


@pytest.fixture
def sample_analysis_json() -> str:
    """A well-formed vision answer: one partial date, one full date."""
    return json.dumps(SAMPLE_ANALYSIS)


@pytest.fixture
def fenced_analysis_json(sample_analysis_json: str) -> str:
    """The same answer wrapped the way models often return it."""
    return f"Here is the data:\n```json\n{sample_analysis_json}\n```"


# ---------------------------------------------------------------------------
# Providers and services
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm(sample_analysis_json: str) -> MagicMock:
    """Vision-capable LLM provider returning the sample analysis."""
    llm = MagicMock(spec=ILLMProvider)
    llm.vision_extract = AsyncMock(return_value=sample_analysis_json)
    llm.validate_credentials = AsyncMock(return_value=True)
    llm.aclose = AsyncMock()
    llm.supports_vision.return_value = True
    llm.is_available.return_value = True
    llm.get_provider_name.return_value = "mock-llm"
    llm.get_model_name.return_value = "mock-vision-1"
    return llm


@pytest.fixture
def year_inference() -> DateYearInferenceService:
    return DateYearInferenceService()


@pytest.fixture
def fuzzy_matcher() -> FuzzyMatchingService:
    return FuzzyMatchingService()


@pytest.fixture
def logs_dir(tmp_path: Path) -> Path:
    return tmp_path / "conversion-logs"


@pytest.fixture
def conversion_logger(logs_dir: Path):
    logger = FlyerConversionLogger(logs_dir)
    yield logger
    logger.close()


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def make_flyer_image(path: Path, size: tuple[int, int] = (600, 800), fmt: str = "PNG") -> Path:
    """Write a simple flyer-like image (dark background, light text block)."""
    img = Image.new("RGB", size, color=(20, 20, 30))
    draw = ImageDraw.Draw(img)
    draw.rectangle([40, 40, size[0] - 40, 160], fill=(230, 230, 230))
    draw.text((60, 80), "BUGGED OUT! FRIDAY 20TH MAY", fill=(10, 10, 10))
    img.save(path, format=fmt)
    return path


@pytest.fixture
def sample_flyer(tmp_path: Path) -> Path:
    return make_flyer_image(tmp_path / "flyer.png")


@pytest.fixture
def settings_factory():
    """Return :func:`make_settings` for tests that need custom keys."""
    return make_settings


@pytest.fixture
def flyer_factory():
    """Return :func:`make_flyer_image` for tests that need custom images."""
    return make_flyer_image
