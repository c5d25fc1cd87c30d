"""Models for reconciling extracted flyer data with the existing archive.

After analysis, each extracted event, venue and act name is matched against
the canonical names already in the archive so that "fabric," and
"Fabric, Charterhouse Street" do not become new venues.  These models carry
the canonical names in and the resolution decisions out.
"""

from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field


class KnownEntities(BaseModel):
    """Canonical names already present in the archive."""

    model_config = ConfigDict(frozen=True)

    events: list[str] = Field(default_factory=list)
    venues: list[str] = Field(default_factory=list)
    acts: list[str] = Field(default_factory=list)


class MatchCandidate(BaseModel):
    """A candidate name scored against a query."""

    model_config = ConfigDict(frozen=True)

    candidate: str
    normalized: str
    score: float = Field(ge=0.0, le=1.0)


class EntityResolution(BaseModel):
    """How one extracted name was resolved.

    ``matched`` is True when ``resolved`` is an existing canonical name, in
    which case ``score`` is the similarity that justified the match.
    """

    model_config = ConfigDict(frozen=True)

    extracted: str
    resolved: str
    matched: bool
    score: float = Field(default=0.0, ge=0.0, le=1.0)


class ResolvedClubNight(BaseModel):
    """A club night with a concrete date and resolved entity names."""

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    event: EntityResolution | None = None
    venue: EntityResolution | None = None
    acts: list[EntityResolution] = Field(default_factory=list)
    # Resolved names of the acts that played live.
    live_sets: list[str] = Field(default_factory=list)


class UnresolvedDate(BaseModel):
    """A partial date for which no usable year was chosen or inferred."""

    model_config = ConfigDict(frozen=True)

    month: int | None = None
    day: int | None = None
    day_of_week: str | None = None
    candidate_years: list[int] = Field(default_factory=list)
    reason: str


class ReconciliationResult(BaseModel):
    """Everything the archive would need to create for one flyer."""

    model_config = ConfigDict(frozen=True)

    club_nights: list[ResolvedClubNight] = Field(default_factory=list)
    unresolved_dates: list[UnresolvedDate] = Field(default_factory=list)
    new_events: list[str] = Field(default_factory=list)
    new_venues: list[str] = Field(default_factory=list)
    new_acts: list[str] = Field(default_factory=list)
