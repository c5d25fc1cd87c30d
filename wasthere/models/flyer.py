"""Flyer analysis models for the WasThere conversion workflow.

Defines Pydantic v2 models for the data a vision model extracts from a club
flyer and for the diagnostics recorded while doing so.  All models use
frozen config; services build updated copies with ``model_copy``.

These models represent the stages of a flyer conversion:
    1. A contributor uploads a flyer image        -> FlyerImage
    2. The vision model reads it                   -> ClubNightData / ActData
    3. Partial dates get candidate years           -> ClubNightData.candidate_years
    4. Every step is timed and recorded            -> DiagnosticInfo / DiagnosticStep
    5. The whole outcome is returned to the caller -> FlyerAnalysisResult
"""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class FlyerImage(BaseModel):
    """An uploaded flyer image ready to be sent to a vision model.

    The raw bytes live in a private attribute so that serialising the model
    (for logs or JSON output) does not embed the image.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    file_name: str
    # MIME type derived from the file extension (image/jpeg, image/png, ...).
    mime_type: str
    # Size of the bytes actually sent, after any downscaling.
    size_bytes: int
    width: int
    height: int
    downscaled: bool = False
    _image_data: bytes | None = PrivateAttr(default=None)

    @property
    def image_data(self) -> bytes | None:
        """Return the raw image bytes (excluded from serialization)."""
        return self._image_data


class ActData(BaseModel):
    """One act on a club night, with performance-type markers removed."""

    model_config = ConfigDict(frozen=True)

    name: str
    is_live_set: bool = False


class ClubNightData(BaseModel):
    """One dated night extracted from a flyer.

    A flyer advertising a monthly residency produces one of these per date.
    When the year is printed, ``date`` is set.  Otherwise ``month``/``day``
    (and usually ``day_of_week``) are set and year inference fills
    ``candidate_years`` and ``inferred_year`` for the reviewer.
    """

    model_config = ConfigDict(frozen=True)

    event_name: str | None = None
    venue_name: str | None = None
    date: datetime.date | None = None
    day_of_week: str | None = None
    month: int | None = None
    day: int | None = None
    acts: list[ActData] = Field(default_factory=list)
    candidate_years: list[int] = Field(default_factory=list)
    inferred_year: int | None = None

    @property
    def needs_year_selection(self) -> bool:
        """True when a reviewer has to pick a year for this night."""
        return (
            self.date is None
            and self.month is not None
            and self.day is not None
            and len(self.candidate_years) > 0
        )


class StepStatus(str, Enum):  # noqa: UP042
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class DiagnosticStep(BaseModel):
    """One timed step of a flyer analysis.

    Not frozen: the analyzer opens a step, runs it, and then records the
    outcome on the same object.
    """

    name: str
    status: StepStatus = StepStatus.STARTED
    timestamp: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(tz=datetime.timezone.utc)  # noqa: UP017
    )
    duration_ms: int | None = None
    details: str | None = None
    error: str | None = None


class DiagnosticInfo(BaseModel):
    """Step log and string metadata describing how an analysis went."""

    log_id: str | None = None
    steps: list[DiagnosticStep] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)
    error_message: str | None = None
    stack_trace: str | None = None

    def step(self, name: str) -> DiagnosticStep | None:
        """Return the first step called *name*, if recorded."""
        for recorded in self.steps:
            if recorded.name == name:
                return recorded
        return None


class FlyerAnalysisResult(BaseModel):
    """Outcome of analysing one flyer image.

    Failures are reported here (``success=False`` plus ``error_message``)
    rather than raised, so a batch of flyers keeps going when one fails.
    """

    success: bool
    error_message: str | None = None
    club_nights: list[ClubNightData] = Field(default_factory=list)
    diagnostics: DiagnosticInfo = Field(default_factory=DiagnosticInfo)
