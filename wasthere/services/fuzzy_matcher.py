"""Fuzzy matching of extracted entity names against known canonical names.

The vision model reads venue and event names off flyers with small
variations: trailing commas, apostrophes, a street address glued on.  Before
a new venue or event is created, the extracted name is compared with the
names already in the archive and the closest one is reused if it is close
enough.

Similarity is ``1 - levenshtein / max_length`` on normalised names (see
:func:`wasthere.utils.text_normalizer.normalize_name`), using rapidfuzz's
Levenshtein implementation.  Blank or unmatched input gives ``None`` or a
score of 0.0; nothing here raises.
"""

from __future__ import annotations

from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

from wasthere.models.reconciliation import MatchCandidate
from wasthere.utils.logging import get_logger
from wasthere.utils.text_normalizer import normalize_name

DEFAULT_MIN_SIMILARITY = 0.8


class FuzzyMatchingService:
    """Scores name similarity and picks the best canonical match."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    def calculate_similarity(self, first: str | None, second: str | None) -> float:
        """Return a similarity score between 0.0 and 1.0.

        Empty against empty is 1.0 and empty against anything else is 0.0.
        The score is symmetric in its arguments.
        """
        if not first and not second:
            return 1.0
        if not first or not second:
            return 0.0

        normalized_first = normalize_name(first)
        normalized_second = normalize_name(second)

        max_length = max(len(normalized_first), len(normalized_second))
        # Both were pure punctuation/whitespace; they normalise identically.
        if max_length == 0:
            return 1.0

        distance = Levenshtein.distance(normalized_first, normalized_second)
        return 1.0 - (distance / max_length)

    def find_best_match(
        self,
        query: str | None,
        candidates: Iterable[str],
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> str | None:
        """Return the candidate most similar to *query*, if similar enough.

        Args:
            query: Name as extracted from the flyer.
            candidates: Canonical names to compare against, in priority order.
            min_similarity: Score the best candidate must reach.

        Returns:
            The original candidate string, or ``None`` for blank input, no
            candidates, or no candidate reaching *min_similarity*.  When two
            candidates tie, the earlier one wins.
        """
        if query is None or not query.strip():
            return None

        candidate_list = list(candidates)
        if not candidate_list:
            return None

        normalized_query = normalize_name(query)

        best_match: str | None = None
        best_score = 0.0

        for candidate in candidate_list:
            score = self.calculate_similarity(normalized_query, normalize_name(candidate))
            self._logger.debug(
                "fuzzy_compare",
                query=query,
                candidate=candidate,
                similarity=round(score, 3),
            )
            if score > best_score:
                best_score = score
                best_match = candidate

        if best_match is not None and best_score >= min_similarity:
            self._logger.info(
                "fuzzy_match_found",
                query=query,
                match=best_match,
                similarity=round(best_score, 3),
            )
            return best_match

        self._logger.info(
            "fuzzy_match_not_found",
            query=query,
            best_similarity=round(best_score, 3),
            threshold=min_similarity,
        )
        return None

    def rank_matches(
        self,
        query: str | None,
        candidates: Iterable[str],
        limit: int = 5,
    ) -> list[MatchCandidate]:
        """Score every candidate against *query*, best first.

        Equal scores keep their input order.  Used to show a reviewer the
        near misses when :meth:`find_best_match` finds nothing.
        """
        if query is None or not query.strip() or limit <= 0:
            return []

        normalized_query = normalize_name(query)
        scored = [
            MatchCandidate(
                candidate=candidate,
                normalized=normalize_name(candidate),
                score=self.calculate_similarity(normalized_query, normalize_name(candidate)),
            )
            for candidate in candidates
        ]
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:limit]
