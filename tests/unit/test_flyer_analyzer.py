"""Unit tests for FlyerAnalyzer — vision call, response parsing, year inference."""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from wasthere.models.flyer import StepStatus
from wasthere.services.conversion_logger import FlyerConversionLogger
from wasthere.services.flyer_analyzer import (
    EXTRACTION_PROMPT,
    STEP_CALL_VISION,
    STEP_CLEAN_RESPONSE,
    STEP_INFER_YEARS,
    STEP_PARSE_JSON,
    STEP_PROVIDER_CHECK,
    STEP_READ_IMAGE,
    STEP_VALIDATE_RESPONSE,
    FlyerAnalyzer,
)
from wasthere.services.year_inference import DateYearInferenceService
from wasthere.utils.errors import LLMError


def _analyzer(llm: MagicMock, year_inference: DateYearInferenceService, **kwargs) -> FlyerAnalyzer:
    return FlyerAnalyzer(llm_provider=llm, year_inference=year_inference, **kwargs)


# ======================================================================
# Successful analysis
# ======================================================================


class TestAnalyzeFlyerSuccess:
    @pytest.mark.asyncio
    async def test_returns_club_nights(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is True
        assert result.error_message is None
        assert len(result.club_nights) == 2
        assert result.club_nights[0].event_name == "Bugged Out!"
        assert result.club_nights[0].venue_name == "Fabric, Charterhouse Street"

    @pytest.mark.asyncio
    async def test_sends_image_and_prompt(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        mock_llm.vision_extract.assert_awaited_once()
        image_bytes, prompt, mime_type = mock_llm.vision_extract.await_args.args
        assert image_bytes == sample_flyer.read_bytes()
        assert prompt == EXTRACTION_PROMPT
        assert mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_partial_date_gets_candidate_years(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        partial = result.club_nights[0]
        assert partial.date is None
        assert (partial.month, partial.day, partial.day_of_week) == (5, 20, "Friday")
        assert partial.candidate_years == [1994, 2005, 2011]
        assert partial.inferred_year == 2005
        assert partial.needs_year_selection is True

    @pytest.mark.asyncio
    async def test_full_date_left_alone(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        full = result.club_nights[1]
        assert full.date == datetime.date(2005, 6, 17)
        assert full.candidate_years == []
        assert full.inferred_year is None
        assert full.needs_year_selection is False

    @pytest.mark.asyncio
    async def test_acts_split_and_live_markers(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        acts = [(act.name, act.is_live_set) for act in result.club_nights[0].acts]
        assert acts == [
            ("Dave Clarke", False),
            ("Andrew Weatherall", True),
            ("Erol Alkan", False),
            ("Richard Fearless", False),
        ]

    @pytest.mark.asyncio
    async def test_fenced_response_is_cleaned(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path, fenced_analysis_json: str
    ) -> None:
        mock_llm.vision_extract = AsyncMock(return_value=fenced_analysis_json)
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is True
        assert len(result.club_nights) == 2

    @pytest.mark.asyncio
    async def test_keys_are_case_insensitive(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        answer = {
            "ClubNights": [
                {
                    "EventName": "Shoom",
                    "VENUENAME": "Fitness Centre",
                    "DayOfWeek": "Sat",
                    "Month": "12",
                    "Day": 3.0,
                    "Acts": [{"NAME": "Danny Rampling", "IsLiveSet": True}],
                }
            ]
        }
        mock_llm.vision_extract = AsyncMock(return_value=json.dumps(answer))
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        night = result.club_nights[0]
        assert night.event_name == "Shoom"
        assert night.venue_name == "Fitness Centre"
        assert (night.month, night.day) == (12, 3)
        assert night.acts[0].name == "Danny Rampling"
        assert night.acts[0].is_live_set is True
        assert night.inferred_year is not None
        assert datetime.date(night.inferred_year, 12, 3).weekday() == 5

    @pytest.mark.asyncio
    async def test_invalid_iso_date_falls_back_to_month_and_day(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        answer = {"clubNights": [{"eventName": "X", "date": "2005-02-30", "month": 12, "day": 25}]}
        mock_llm.vision_extract = AsyncMock(return_value=json.dumps(answer))
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        night = result.club_nights[0]
        assert night.date is None
        assert night.inferred_year == 2002

    @pytest.mark.asyncio
    async def test_unparseable_month_and_day_become_none(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        answer = {
            "clubNights": [
                {"eventName": "X", "month": "²", "day": 5},
                {"eventName": "Y", "month": " 7 ", "day": "fifth"},
            ]
        }
        mock_llm.vision_extract = AsyncMock(return_value=json.dumps(answer))
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is True
        assert (result.club_nights[0].month, result.club_nights[0].day) == (None, 5)
        assert (result.club_nights[1].month, result.club_nights[1].day) == (7, None)
        assert result.club_nights[0].inferred_year is None

    @pytest.mark.asyncio
    async def test_records_every_step(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        names = [step.name for step in result.diagnostics.steps]
        assert names == [
            STEP_PROVIDER_CHECK,
            STEP_READ_IMAGE,
            STEP_CALL_VISION,
            STEP_VALIDATE_RESPONSE,
            STEP_CLEAN_RESPONSE,
            STEP_PARSE_JSON,
            STEP_INFER_YEARS,
        ]
        assert all(step.status is StepStatus.COMPLETED for step in result.diagnostics.steps)
        assert all(step.duration_ms is not None for step in result.diagnostics.steps)
        metadata = result.diagnostics.metadata
        assert metadata["mime_type"] == "image/png"
        assert metadata["provider"] == "mock-llm"
        assert int(metadata["image_size_bytes"]) == sample_flyer.stat().st_size

    @pytest.mark.asyncio
    async def test_large_image_is_downscaled(
        self, mock_llm: MagicMock, year_inference, tmp_path: Path, flyer_factory
    ) -> None:
        big = flyer_factory(tmp_path / "big.png", size=(1200, 1600))
        await _analyzer(mock_llm, year_inference, max_image_dim=400).analyze_flyer(big)

        _, _, mime_type = mock_llm.vision_extract.await_args.args
        assert mime_type == "image/jpeg"


# ======================================================================
# Failures
# ======================================================================


class TestAnalyzeFlyerFailures:
    @pytest.mark.asyncio
    async def test_unconfigured_provider(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        mock_llm.is_available.return_value = False
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is False
        assert result.error_message == "LLM provider is not configured"
        assert result.diagnostics.step(STEP_PROVIDER_CHECK).status is StepStatus.FAILED
        mock_llm.vision_extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_file(self, mock_llm: MagicMock, year_inference, tmp_path: Path) -> None:
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(tmp_path / "nope.jpg")

        assert result.success is False
        assert result.error_message.startswith("Error analyzing image:")
        assert result.diagnostics.step(STEP_READ_IMAGE).status is StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_unsupported_extension(
        self, mock_llm: MagicMock, year_inference, tmp_path: Path
    ) -> None:
        path = tmp_path / "flyer.txt"
        path.write_text("not an image")
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(path)

        assert result.success is False
        assert "Invalid file type" in result.error_message

    @pytest.mark.asyncio
    async def test_undecodable_image(
        self, mock_llm: MagicMock, year_inference, tmp_path: Path
    ) -> None:
        path = tmp_path / "flyer.jpg"
        path.write_bytes(b"definitely not a jpeg")
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(path)

        assert result.success is False
        assert result.error_message.startswith("Error analyzing image:")

    @pytest.mark.asyncio
    async def test_llm_error(self, mock_llm: MagicMock, year_inference, sample_flyer: Path) -> None:
        mock_llm.vision_extract = AsyncMock(
            side_effect=LLMError(message="quota exceeded", provider_name="mock-llm")
        )
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is False
        assert result.error_message == "Error calling mock-llm API: quota exceeded"
        assert result.diagnostics.step(STEP_CALL_VISION).status is StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_empty_response(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        mock_llm.vision_extract = AsyncMock(return_value="   ")
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is False
        assert result.error_message == "Empty response from AI"

    @pytest.mark.asyncio
    async def test_invalid_json(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        mock_llm.vision_extract = AsyncMock(return_value="I could not read this flyer, sorry.")
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is False
        assert result.error_message.startswith("Failed to parse AI response as JSON:")
        step = result.diagnostics.step(STEP_PARSE_JSON)
        assert step.status is StepStatus.FAILED
        assert step.error

    @pytest.mark.asyncio
    async def test_json_without_club_nights_list(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        mock_llm.vision_extract = AsyncMock(return_value='{"events": []}')
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is False
        assert result.error_message.startswith("Failed to parse AI response as JSON:")

    @pytest.mark.asyncio
    async def test_no_club_nights(
        self, mock_llm: MagicMock, year_inference, sample_flyer: Path
    ) -> None:
        mock_llm.vision_extract = AsyncMock(return_value='{"clubNights": []}')
        result = await _analyzer(mock_llm, year_inference).analyze_flyer(sample_flyer)

        assert result.success is False
        assert result.error_message == "No club nights found in flyer"


# ======================================================================
# Conversion log integration
# ======================================================================


class TestAnalyzeFlyerConversionLog:
    @pytest.mark.asyncio
    async def test_starts_log_and_records_sections(
        self,
        mock_llm: MagicMock,
        year_inference,
        sample_flyer: Path,
        conversion_logger: FlyerConversionLogger,
    ) -> None:
        analyzer = _analyzer(mock_llm, year_inference, conversion_logger=conversion_logger)
        result = await analyzer.analyze_flyer(sample_flyer)
        log_id = result.diagnostics.log_id
        assert log_id is not None

        conversion_logger.complete_conversion_log(log_id, True, "done")
        content = conversion_logger.get_log_file_path(log_id).read_text(encoding="utf-8")

        assert "--- VISION API REQUEST ---" in content
        assert "Provider: mock-llm" in content
        assert "--- VISION API RESPONSE ---" in content
        assert "Bugged Out!" in content
        assert "Candidate Years: 1994, 2005, 2011" in content
        assert "=== FLYER CONVERSION LOG END ===" in content

    @pytest.mark.asyncio
    async def test_uses_given_log_id(
        self,
        mock_llm: MagicMock,
        year_inference,
        sample_flyer: Path,
        conversion_logger: FlyerConversionLogger,
    ) -> None:
        log_id = conversion_logger.start_conversion_log(str(sample_flyer), sample_flyer.name)
        analyzer = _analyzer(mock_llm, year_inference, conversion_logger=conversion_logger)
        result = await analyzer.analyze_flyer(sample_flyer, log_id=log_id)

        assert result.diagnostics.log_id == log_id
        assert len(list(conversion_logger.logs_dir.iterdir())) == 1

    @pytest.mark.asyncio
    async def test_llm_error_is_logged(
        self,
        mock_llm: MagicMock,
        year_inference,
        sample_flyer: Path,
        conversion_logger: FlyerConversionLogger,
    ) -> None:
        mock_llm.vision_extract = AsyncMock(side_effect=LLMError(message="boom"))
        analyzer = _analyzer(mock_llm, year_inference, conversion_logger=conversion_logger)
        result = await analyzer.analyze_flyer(sample_flyer)

        conversion_logger.complete_conversion_log(result.diagnostics.log_id, False, "failed")
        content = conversion_logger.get_log_file_path(result.diagnostics.log_id).read_text(
            encoding="utf-8"
        )
        assert "!!! ERROR !!!" in content
        assert "Exception Type: LLMError" in content
        assert "Error: boom" in content
