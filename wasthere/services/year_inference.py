"""Year inference for partial flyer dates.

Club flyers from the archive's era usually print the weekday, day and month
("Friday 20th May") but rarely the year.  Because a given month/day only
falls on a given weekday in a handful of years, the weekday narrows the year
down a lot, and the archive's subject matter narrows it further.

Two windows drive the search:

* the **preferred window** (1995-2010 by default) is the era the archive
  covers, and every answer inside it beats any answer outside it;
* the **search window** (1990-2025 by default) is the outer limit.

Candidates are ranked by distance from the middle of the preferred window
(``(1995 + 2010) // 2 == 2002``).  Exact ties keep the year scanned first,
i.e. the lower year.

Bad numeric input (month 13, day 0) gives ``None`` / ``[]``; an unrecognised
weekday name is ignored and the search runs unconstrained.  Nothing here
raises for bad input.
"""

from __future__ import annotations

import calendar
import datetime
from collections.abc import Iterable

from wasthere.models.dates import Weekday
from wasthere.utils.errors import ConfigurationError

PREFERRED_START_YEAR = 1995
PREFERRED_END_YEAR = 2010
SEARCH_START_YEAR = 1990
SEARCH_END_YEAR = 2025

_DAY_OF_WEEK_ALIASES: dict[str, Weekday] = {
    "monday": Weekday.MONDAY,
    "mon": Weekday.MONDAY,
    "tuesday": Weekday.TUESDAY,
    "tue": Weekday.TUESDAY,
    "tues": Weekday.TUESDAY,
    "wednesday": Weekday.WEDNESDAY,
    "wed": Weekday.WEDNESDAY,
    "thursday": Weekday.THURSDAY,
    "thu": Weekday.THURSDAY,
    "thur": Weekday.THURSDAY,
    "thurs": Weekday.THURSDAY,
    "friday": Weekday.FRIDAY,
    "fri": Weekday.FRIDAY,
    "saturday": Weekday.SATURDAY,
    "sat": Weekday.SATURDAY,
    "sunday": Weekday.SUNDAY,
    "sun": Weekday.SUNDAY,
}


def parse_day_of_week(text: str | None) -> Weekday | None:
    """Map a printed weekday name ("Fri", "SATURDAY") to a :class:`Weekday`.

    Returns ``None`` for blank or unrecognised text.
    """
    if text is None:
        return None
    return _DAY_OF_WEEK_ALIASES.get(text.strip().lower())


def is_valid_date(year: int, month: int, day: int) -> bool:
    """Return True if (year, month, day) exists on the Gregorian calendar."""
    if not 1 <= month <= 12 or year < 1:
        return False
    return 1 <= day <= calendar.monthrange(year, month)[1]


class DateYearInferenceService:
    """Picks plausible years for a month/day pair, biased toward the archive's era.

    Stateless once constructed; one instance can be shared across threads
    and tasks.
    """

    def __init__(
        self,
        preferred_start: int = PREFERRED_START_YEAR,
        preferred_end: int = PREFERRED_END_YEAR,
        search_start: int = SEARCH_START_YEAR,
        search_end: int = SEARCH_END_YEAR,
    ) -> None:
        if not search_start <= preferred_start <= preferred_end <= search_end:
            raise ConfigurationError(
                message=(
                    f"Preferred years {preferred_start}-{preferred_end} must lie "
                    f"within search years {search_start}-{search_end}"
                )
            )
        self._preferred_start = preferred_start
        self._preferred_end = preferred_end
        self._search_start = search_start
        self._search_end = search_end
        self._target_year = (preferred_start + preferred_end) // 2

    @property
    def target_year(self) -> int:
        """Midpoint of the preferred window that candidates are ranked against."""
        return self._target_year

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def infer_year(self, month: int, day: int, day_of_week: str | None = None) -> int | None:
        """Return the single most plausible year for *month*/*day*.

        Args:
            month: Month number, 1-12.
            day: Day of month, 1-31 (checked per year, not per month).
            day_of_week: Optional printed weekday name the date must fall on.

        Returns:
            The year closest to the preferred window's midpoint, searching the
            preferred window first and the rest of the search window only if
            nothing in the preferred window fits; ``None`` if no year fits.
        """
        if not self._in_range(month, day):
            return None

        target = parse_day_of_week(day_of_week)

        preferred = self._matching_years(self._preferred_years(), month, day, target)
        if preferred:
            return self._closest_to_target(preferred)

        outside = self._matching_years(
            [*self._years_below(), *self._years_above()], month, day, target
        )
        if outside:
            return self._closest_to_target(outside)

        return None

    def get_candidate_years(
        self, month: int, day: int, day_of_week: str | None = None
    ) -> list[int]:
        """Return a short, ascending list of years for a reviewer to choose from.

        Contains every fitting year in the preferred window plus at most one
        fitting year on each side of it: the closest one below and the
        closest one above.
        """
        if not self._in_range(month, day):
            return []

        target = parse_day_of_week(day_of_week)

        below = self._matching_years(self._years_below(), month, day, target)
        preferred = self._matching_years(self._preferred_years(), month, day, target)
        above = self._matching_years(self._years_above(), month, day, target)

        candidates: list[int] = []
        if below:
            candidates.append(below[-1])
        candidates.extend(preferred)
        if above:
            candidates.append(above[0])
        return candidates

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _in_range(month: int, day: int) -> bool:
        return 1 <= month <= 12 and 1 <= day <= 31

    def _preferred_years(self) -> range:
        return range(self._preferred_start, self._preferred_end + 1)

    def _years_below(self) -> range:
        return range(self._search_start, self._preferred_start)

    def _years_above(self) -> range:
        return range(self._preferred_end + 1, self._search_end + 1)

    @staticmethod
    def _matching_years(
        years: Iterable[int], month: int, day: int, target: Weekday | None
    ) -> list[int]:
        matches: list[int] = []
        for year in years:
            if not is_valid_date(year, month, day):
                continue
            if target is not None and datetime.date(year, month, day).weekday() != target.value:
                continue
            matches.append(year)
        return matches

    def _closest_to_target(self, years: list[int]) -> int:
        # min() keeps the first of equally close years, so ties go to the
        # year scanned first.
        return min(years, key=lambda year: abs(year - self._target_year))
