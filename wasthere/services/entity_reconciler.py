"""Reconcile an analysed flyer with the names already in the archive.

A flyer analysis produces raw names ("fabric,", "Fabric, Charterhouse
Street", "Dave Clarke") and possibly partial dates.  Before anything is
stored, each club night needs a concrete date and each name needs to be
either an existing canonical name or an explicitly new one.  This service
makes those decisions without touching storage: it returns a
:class:`ReconciliationResult` describing what the archive would reuse and
what it would create.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from wasthere.models.dates import YearSelection
from wasthere.models.flyer import ClubNightData, FlyerAnalysisResult
from wasthere.models.reconciliation import (
    EntityResolution,
    KnownEntities,
    ReconciliationResult,
    ResolvedClubNight,
    UnresolvedDate,
)
from wasthere.services.fuzzy_matcher import DEFAULT_MIN_SIMILARITY, FuzzyMatchingService
from wasthere.services.year_inference import is_valid_date
from wasthere.utils.logging import get_logger


class _NamePool:
    """Canonical names of one entity type plus those created during a run."""

    def __init__(self, known: Iterable[str]) -> None:
        self.names: list[str] = [name for name in known if name and name.strip()]
        self.created: list[str] = []

    def add(self, name: str) -> None:
        self.names.append(name)
        self.created.append(name)


class EntityReconciler:
    """Dates club nights and matches their names against known entities."""

    def __init__(
        self,
        fuzzy_matcher: FuzzyMatchingService,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> None:
        self._matcher = fuzzy_matcher
        self._min_similarity = min_similarity
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def apply_year_selections(
        self,
        club_nights: Iterable[ClubNightData],
        selections: Iterable[YearSelection] = (),
    ) -> tuple[list[ClubNightData], list[UnresolvedDate]]:
        """Give every club night a full date where possible.

        A reviewer's selection for a (month, day) wins over the inferred
        year.  Returns the dated club nights, in input order, and the partial
        dates that could not be completed.
        """
        dated, unresolved = self._date_club_nights(club_nights, selections)
        return [night for night, _ in dated], unresolved

    def _date_club_nights(
        self,
        club_nights: Iterable[ClubNightData],
        selections: Iterable[YearSelection],
    ) -> tuple[list[tuple[ClubNightData, datetime.date]], list[UnresolvedDate]]:
        chosen = {selection.key: selection.year for selection in selections}

        dated: list[tuple[ClubNightData, datetime.date]] = []
        unresolved: list[UnresolvedDate] = []
        for night in club_nights:
            if night.date is not None:
                dated.append((night, night.date))
                continue

            if night.month is None or night.day is None:
                unresolved.append(self._unresolved(night, "Month or day missing"))
                continue

            year = chosen.get(f"{night.month}-{night.day}", night.inferred_year)
            if year is None:
                unresolved.append(self._unresolved(night, "No year selected or inferred"))
                continue
            if not is_valid_date(year, night.month, night.day):
                unresolved.append(
                    self._unresolved(
                        night, f"{year}-{night.month:02d}-{night.day:02d} is not a valid date"
                    )
                )
                continue

            date = datetime.date(year, night.month, night.day)
            dated.append((night.model_copy(update={"date": date}), date))
        return dated, unresolved

    @staticmethod
    def _unresolved(night: ClubNightData, reason: str) -> UnresolvedDate:
        return UnresolvedDate(
            month=night.month,
            day=night.day,
            day_of_week=night.day_of_week,
            candidate_years=night.candidate_years,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def reconcile(
        self,
        result: FlyerAnalysisResult,
        known: KnownEntities,
        selections: Iterable[YearSelection] = (),
    ) -> ReconciliationResult:
        """Resolve dates and names for every club night in *result*.

        Names with no close known match are kept as extracted and listed
        once in ``new_events`` / ``new_venues`` / ``new_acts``; later club
        nights on the same flyer then match against them.
        """
        dated, unresolved = self._date_club_nights(result.club_nights, selections)

        events = _NamePool(known.events)
        venues = _NamePool(known.venues)
        acts = _NamePool(known.acts)

        resolved_nights: list[ResolvedClubNight] = []
        for night, date in dated:
            resolved_acts: list[EntityResolution] = []
            live_sets: list[str] = []
            seen: set[str] = set()
            for act in night.acts:
                resolution = self._resolve(act.name, acts)
                if resolution is None or resolution.resolved in seen:
                    continue
                seen.add(resolution.resolved)
                resolved_acts.append(resolution)
                if act.is_live_set:
                    live_sets.append(resolution.resolved)

            resolved_nights.append(
                ResolvedClubNight(
                    date=date,
                    event=self._resolve(night.event_name, events),
                    venue=self._resolve(night.venue_name, venues),
                    acts=resolved_acts,
                    live_sets=live_sets,
                )
            )

        self._logger.info(
            "reconciliation_complete",
            club_nights=len(resolved_nights),
            unresolved_dates=len(unresolved),
            new_events=len(events.created),
            new_venues=len(venues.created),
            new_acts=len(acts.created),
        )
        return ReconciliationResult(
            club_nights=resolved_nights,
            unresolved_dates=unresolved,
            new_events=events.created,
            new_venues=venues.created,
            new_acts=acts.created,
        )

    def _resolve(self, name: str | None, pool: _NamePool) -> EntityResolution | None:
        if name is None or not name.strip():
            return None
        extracted = name.strip()

        match = self._matcher.find_best_match(extracted, pool.names, self._min_similarity)
        if match is None:
            pool.add(extracted)
            return EntityResolution(extracted=extracted, resolved=extracted, matched=False)

        score = self._matcher.calculate_similarity(extracted, match)
        if match in pool.created:
            # Same new name seen earlier on this flyer.
            return EntityResolution(
                extracted=extracted, resolved=match, matched=False, score=score
            )
        return EntityResolution(extracted=extracted, resolved=match, matched=True, score=score)
