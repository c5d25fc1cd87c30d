"""Vision-model analysis of uploaded club flyers.

Sends a flyer image to an :class:`ILLMProvider` with an extraction prompt
that encodes club flyer conventions (one entry per date, residents on every
date, act separators like b2b / vs / &, live-set markers).  The JSON answer
is cleaned, parsed case-insensitively and mapped into frozen
:class:`ClubNightData` models.  Partial dates ("Friday 20th May") are then
given candidate years and a best guess by :class:`DateYearInferenceService`.

Every stage is recorded as a timed :class:`DiagnosticStep`, and any failure
ends the analysis with ``success=False`` and a human-readable message rather
than an exception, so a batch of flyers keeps going when one is unreadable.
"""

from __future__ import annotations

import datetime
import json
import re
import time
from pathlib import Path
from typing import Any

from wasthere.interfaces.llm_provider import ILLMProvider
from wasthere.models.flyer import (
    ActData,
    ClubNightData,
    DiagnosticInfo,
    DiagnosticStep,
    FlyerAnalysisResult,
    FlyerImage,
    StepStatus,
)
from wasthere.services.conversion_logger import FlyerConversionLogger
from wasthere.services.year_inference import DateYearInferenceService
from wasthere.utils.errors import FlyerImageError, LLMError
from wasthere.utils.image_loader import MAX_IMAGE_DIM, load_flyer_image
from wasthere.utils.logging import get_logger
from wasthere.utils.text_normalizer import split_act_names, strip_performance_marker

# Matches markdown code fences (```json ... ``` or ``` ... ```) that vision
# models wrap around JSON despite being asked not to.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

_RESPONSE_PREVIEW_CHARS = 500

EXTRACTION_PROMPT = """\
Analyze this club/event flyer image and extract the following information in JSON format:

{
  "clubNights": [
    {
      "eventName": "The event name (e.g., 'Fabric', 'Ministry of Sound')",
      "venueName": "The venue name",
      "date": "The FULL date in ISO format (YYYY-MM-DD) if the year is visible, otherwise null",
      "dayOfWeek": "Day of week if visible (e.g., 'Friday', 'Saturday') - IMPORTANT for date inference",
      "month": numeric month (1-12) if visible,
      "day": numeric day of month (1-31) if visible,
      "acts": [
        {
          "name": "Act name without performance type indicators",
          "isLiveSet": true or false
        }
      ]
    }
  ]
}

Important instructions:
1. Extract ALL dates shown on the flyer - create a separate club night entry for each date
2. For 'Residents' or 'Resident DJs', add them as acts on EVERY club night date
3. Include the event name (the recurring night name like 'Fabric' or the specific event title)
4. Include all performing artists/DJs listed
5. If a listing combines multiple acts with separators like '&', 'B2B', 'b2b', 'vs' or 'VS',
   split them into separate act entries:
   - 'DJ A & DJ B' becomes two acts: 'DJ A' and 'DJ B'
   - 'Artist X B2B Artist Y' becomes two acts: 'Artist X' and 'Artist Y'
6. For each act, decide whether it is a live set:
   - isLiveSet is true for indicators like '(live)', '(live set)', '(live PA)' or 'live'
   - isLiveSet is false for '(DJ set)', '(DJ)' or no indicator
   - Remove the indicator from the name ('Dave Clarke (live)' becomes 'Dave Clarke')
7. DATE EXTRACTION:
   - If the full date with year is visible (e.g., '27 May 2003'), put it in 'date' as 'YYYY-MM-DD'
   - If only a partial date is visible (e.g., 'Friday 27th May'), set 'date' to null and provide
     'dayOfWeek', 'month' and 'day'
8. Only extract information that is clearly visible in the flyer
9. Return ONLY valid JSON, no additional text or markdown

Please analyze the flyer and return the JSON:"""

STEP_PROVIDER_CHECK = "Provider Check"
STEP_READ_IMAGE = "Read Image File"
STEP_CALL_VISION = "Call Vision API"
STEP_VALIDATE_RESPONSE = "Validate Response"
STEP_CLEAN_RESPONSE = "Clean Response Text"
STEP_PARSE_JSON = "Parse JSON Response"
STEP_INFER_YEARS = "Infer Years"


class FlyerAnalyzer:
    """Turns a flyer image into a list of club nights via a vision LLM.

    Parameters
    ----------
    llm_provider:
        Vision-capable provider the image is sent to.
    year_inference:
        Fills candidate years and a best guess for partial dates.
    conversion_logger:
        Optional per-flyer audit log.  When given, the request, raw response
        and parsed result are written under the conversion's log id.
    max_image_dim:
        Longest side, in pixels, an image is downscaled to before upload.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        year_inference: DateYearInferenceService,
        conversion_logger: FlyerConversionLogger | None = None,
        max_image_dim: int = MAX_IMAGE_DIM,
    ) -> None:
        self._llm = llm_provider
        self._year_inference = year_inference
        self._conversion_logger = conversion_logger
        self._max_image_dim = max_image_dim
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze_flyer(
        self, image_path: str | Path, log_id: str | None = None
    ) -> FlyerAnalysisResult:
        """Analyse one flyer image.

        When a conversion logger is attached and *log_id* is ``None``, a new
        conversion log is started; its id is returned in
        ``result.diagnostics.log_id`` and completing it is left to the
        caller, which knows what was created from the result.
        """
        path = Path(image_path)
        if self._conversion_logger is not None and log_id is None:
            log_id = self._conversion_logger.start_conversion_log(str(path), path.name)

        diagnostics = DiagnosticInfo(log_id=log_id)
        diagnostics.metadata["image_path"] = str(path)
        diagnostics.metadata["provider"] = self._llm.get_provider_name()
        diagnostics.metadata["model"] = self._llm.get_model_name()

        result = await self._run(path, diagnostics)

        if result.success:
            self._logger.info(
                "flyer_analysis_complete",
                image=path.name,
                club_nights=len(result.club_nights),
                needs_year_selection=sum(
                    1 for night in result.club_nights if night.needs_year_selection
                ),
            )
        else:
            self._logger.warning(
                "flyer_analysis_failed",
                image=path.name,
                error=result.error_message,
            )

        if self._conversion_logger is not None and log_id is not None:
            self._conversion_logger.log_analysis_result(log_id, result)
        return result

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(self, path: Path, diagnostics: DiagnosticInfo) -> FlyerAnalysisResult:
        # 1. Provider check
        step, started = self._begin_step(diagnostics, STEP_PROVIDER_CHECK)
        if not self._llm.is_available() or not self._llm.supports_vision():
            self._end_step(step, started, StepStatus.FAILED, error="Provider unavailable")
            return self._failure(diagnostics, "LLM provider is not configured")
        self._end_step(
            step,
            started,
            StepStatus.COMPLETED,
            details=f"{self._llm.get_provider_name()} ({self._llm.get_model_name()})",
        )

        # 2. Read image
        step, started = self._begin_step(diagnostics, STEP_READ_IMAGE)
        try:
            flyer = load_flyer_image(path, max_dim=self._max_image_dim)
        except (OSError, FlyerImageError) as exc:
            message = exc.message if isinstance(exc, FlyerImageError) else str(exc)
            self._end_step(step, started, StepStatus.FAILED, error=message)
            self._log_error(diagnostics, "Error reading flyer image", exc)
            return self._failure(diagnostics, f"Error analyzing image: {message}")
        self._end_step(
            step,
            started,
            StepStatus.COMPLETED,
            details=f"Read {flyer.size_bytes} bytes ({flyer.width}x{flyer.height})",
        )
        diagnostics.metadata["image_size_bytes"] = str(flyer.size_bytes)
        diagnostics.metadata["mime_type"] = flyer.mime_type
        diagnostics.metadata["downscaled"] = str(flyer.downscaled).lower()

        # 3. Vision call
        response_text = await self._call_vision(flyer, diagnostics)
        if isinstance(response_text, FlyerAnalysisResult):
            return response_text

        # 4. Validate
        step, started = self._begin_step(diagnostics, STEP_VALIDATE_RESPONSE)
        if not response_text.strip():
            self._end_step(step, started, StepStatus.FAILED, error="Empty text response")
            diagnostics.metadata["response_text_empty"] = "true"
            return self._failure(diagnostics, "Empty response from AI")
        self._end_step(
            step, started, StepStatus.COMPLETED, details=f"Received {len(response_text)} characters"
        )
        diagnostics.metadata["response_length"] = str(len(response_text))
        diagnostics.metadata["response_preview"] = (
            response_text[:_RESPONSE_PREVIEW_CHARS] + "..."
            if len(response_text) > _RESPONSE_PREVIEW_CHARS
            else response_text
        )

        # 5. Clean
        step, started = self._begin_step(diagnostics, STEP_CLEAN_RESPONSE)
        cleaned = self._clean_response(response_text)
        self._end_step(step, started, StepStatus.COMPLETED)

        # 6. Parse
        step, started = self._begin_step(diagnostics, STEP_PARSE_JSON)
        try:
            entries = self._parse_club_nights(cleaned)
        except ValueError as exc:
            self._end_step(step, started, StepStatus.FAILED, error=str(exc))
            diagnostics.error_message = f"Failed to parse JSON: {exc}"
            self._logger.warning(
                "flyer_json_parse_failed",
                error=str(exc),
                response_preview=cleaned[:200],
            )
            return self._failure(diagnostics, f"Failed to parse AI response as JSON: {exc}")
        club_nights = [self._to_club_night(entry) for entry in entries]
        self._end_step(
            step, started, StepStatus.COMPLETED, details=f"Parsed {len(club_nights)} club nights"
        )

        if not club_nights:
            return self._failure(diagnostics, "No club nights found in flyer")

        # 7. Year inference
        step, started = self._begin_step(diagnostics, STEP_INFER_YEARS)
        club_nights = [self._with_inferred_year(night) for night in club_nights]
        partial = sum(1 for night in club_nights if night.date is None)
        self._end_step(
            step, started, StepStatus.COMPLETED, details=f"{partial} partial dates"
        )
        diagnostics.metadata["club_nights_count"] = str(len(club_nights))

        return FlyerAnalysisResult(success=True, club_nights=club_nights, diagnostics=diagnostics)

    async def _call_vision(
        self, flyer: FlyerImage, diagnostics: DiagnosticInfo
    ) -> str | FlyerAnalysisResult:
        provider = self._llm.get_provider_name()
        log_id = diagnostics.log_id
        if self._conversion_logger is not None and log_id is not None:
            self._conversion_logger.log_llm_request(
                log_id,
                EXTRACTION_PROMPT,
                flyer.path,
                flyer.size_bytes,
                flyer.mime_type,
                provider,
            )

        step, started = self._begin_step(diagnostics, STEP_CALL_VISION)
        try:
            response_text = await self._llm.vision_extract(
                flyer.image_data or b"", EXTRACTION_PROMPT, flyer.mime_type
            )
        except LLMError as exc:
            self._end_step(step, started, StepStatus.FAILED, error=exc.message)
            if self._conversion_logger is not None and log_id is not None:
                self._conversion_logger.log_llm_response(log_id, "", False, exc.message)
            self._log_error(diagnostics, f"{provider} API call failed", exc)
            return self._failure(diagnostics, f"Error calling {provider} API: {exc.message}")

        self._end_step(step, started, StepStatus.COMPLETED)
        if self._conversion_logger is not None and log_id is not None:
            self._conversion_logger.log_llm_response(log_id, response_text, True)
        return response_text

    # ------------------------------------------------------------------
    # Response handling
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_response(response: str) -> str:
        """Strip code fences and any chatter outside the outermost braces."""
        text = response.strip()

        fence_match = _JSON_FENCE_RE.search(text)
        if fence_match:
            text = fence_match.group(1).strip()

        if not text.startswith("{"):
            brace_start = text.find("{")
            brace_end = text.rfind("}")
            if brace_start != -1 and brace_end > brace_start:
                text = text[brace_start : brace_end + 1]
        return text

    @staticmethod
    def _parse_club_nights(text: str) -> list[dict[str, Any]]:
        """Return the ``clubNights`` entries with lower-cased keys.

        Raises ``ValueError`` (``json.JSONDecodeError`` included) when the
        text is not a JSON object holding a ``clubNights`` list.
        """
        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        nights = _lower_keys(parsed).get("clubnights")
        if not isinstance(nights, list):
            raise ValueError("response has no clubNights list")
        return [_lower_keys(entry) for entry in nights if isinstance(entry, dict)]

    def _to_club_night(self, entry: dict[str, Any]) -> ClubNightData:
        month = _coerce_int(entry.get("month"))
        day = _coerce_int(entry.get("day"))
        full_date = _parse_iso_date(entry.get("date"))
        if full_date is not None:
            month = month if month is not None else full_date.month
            day = day if day is not None else full_date.day

        return ClubNightData(
            event_name=_clean_str(entry.get("eventname")),
            venue_name=_clean_str(entry.get("venuename")),
            date=full_date,
            day_of_week=_clean_str(entry.get("dayofweek")),
            month=month,
            day=day,
            acts=self._parse_acts(entry.get("acts")),
        )

    @staticmethod
    def _parse_acts(raw_acts: Any) -> list[ActData]:
        if not isinstance(raw_acts, list):
            return []

        acts: list[ActData] = []
        for raw in raw_acts:
            if isinstance(raw, str):
                listing, flagged_live = raw, False
            elif isinstance(raw, dict):
                fields = _lower_keys(raw)
                listing = fields.get("name")
                flagged_live = fields.get("isliveset") is True
                if not isinstance(listing, str):
                    continue
            else:
                continue

            for part in split_act_names(listing):
                name, marked_live = strip_performance_marker(part)
                if name:
                    acts.append(ActData(name=name, is_live_set=flagged_live or marked_live))
        return acts

    def _with_inferred_year(self, night: ClubNightData) -> ClubNightData:
        if night.date is not None or night.month is None or night.day is None:
            return night
        return night.model_copy(
            update={
                "candidate_years": self._year_inference.get_candidate_years(
                    night.month, night.day, night.day_of_week
                ),
                "inferred_year": self._year_inference.infer_year(
                    night.month, night.day, night.day_of_week
                ),
            }
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @staticmethod
    def _begin_step(diagnostics: DiagnosticInfo, name: str) -> tuple[DiagnosticStep, float]:
        step = DiagnosticStep(name=name)
        diagnostics.steps.append(step)
        return step, time.perf_counter()

    @staticmethod
    def _end_step(
        step: DiagnosticStep,
        started: float,
        status: StepStatus,
        details: str | None = None,
        error: str | None = None,
    ) -> None:
        step.status = status
        step.duration_ms = int((time.perf_counter() - started) * 1000)
        step.details = details
        step.error = error

    @staticmethod
    def _failure(diagnostics: DiagnosticInfo, message: str) -> FlyerAnalysisResult:
        if diagnostics.error_message is None:
            diagnostics.error_message = message
        return FlyerAnalysisResult(success=False, error_message=message, diagnostics=diagnostics)

    def _log_error(self, diagnostics: DiagnosticInfo, message: str, exc: Exception) -> None:
        self._logger.error(
            "flyer_analysis_error", stage=message, error=str(exc), error_type=type(exc).__name__
        )
        diagnostics.stack_trace = f"{type(exc).__name__}: {exc}"
        if self._conversion_logger is not None and diagnostics.log_id is not None:
            self._conversion_logger.log_error(diagnostics.log_id, message, exc)


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _lower_keys(mapping: dict[str, Any]) -> dict[str, Any]:
    """Lower-case keys so ``eventName`` / ``EventName`` / ``eventname`` agree."""
    return {str(key).lower(): value for key, value in mapping.items()}


def _clean_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        # Models occasionally emit digit-like text such as "²".
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _parse_iso_date(value: Any) -> datetime.date | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None
