"""Date models used when a flyer shows a day and month but no year.

Flyers from the archive's era routinely print "Friday 20th May" and leave
the year out.  These models carry that partial information from the vision
model's answer through year inference to the reviewer's final choice.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Weekday(int, Enum):  # noqa: UP042
    """Day of the week, valued like :meth:`datetime.date.weekday`."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class PartialDate(BaseModel):
    """A month/day pair recovered from a flyer, optionally with a weekday name.

    ``day`` is only range-checked here; whether it exists in a given month
    is decided per candidate year (29 February only exists in leap years).
    """

    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)
    # Free text as printed ("Fri", "SATURDAY"); unrecognised names are ignored.
    day_of_week: str | None = None

    @property
    def key(self) -> str:
        """Lookup key shared with :class:`YearSelection` (``"<month>-<day>"``)."""
        return f"{self.month}-{self.day}"


class YearSelection(BaseModel):
    """A reviewer's choice of year for one partial date on a flyer."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)
    year: int

    @property
    def key(self) -> str:
        return f"{self.month}-{self.day}"
