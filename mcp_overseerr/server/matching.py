"""Search candidate selection and season validation."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from ..common.errors import EmptyCandidateSetError, UpstreamError
from ..common.text import ExpectedMediaType, title_similarity
from ..common.types import MediaDetails, SearchCandidate

logger = logging.getLogger(__name__)

MEDIUM_CONFIDENCE_THRESHOLD = 0.8


class MatchConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class MatchSelection:
    """Chosen candidate plus the remaining rows in search order."""

    match: SearchCandidate
    alternates: list[SearchCandidate] = field(default_factory=list)
    confidence: MatchConfidence = MatchConfidence.HIGH


@dataclass
class SeasonResolution:
    """Result of checking that a TV match actually has the requested season.

    ``match`` and ``details`` are ``None`` when neither the first match nor
    any TV alternate declares enough seasons.
    """

    match: SearchCandidate | None
    details: MediaDetails | None
    substituted: bool = False

    @property
    def found(self) -> bool:
        return self.match is not None


def select_match(
    candidates: Sequence[SearchCandidate],
    expected_type: ExpectedMediaType,
    normalized_title: str,
) -> MatchSelection:
    """Pick the best search candidate for *normalized_title*.

    Search order is trusted as relevance order. With a type constraint the
    first candidate of that type wins outright; otherwise the first row is
    scored against the title to grade confidence.
    """

    if not candidates:
        raise EmptyCandidateSetError("cannot select a match from zero candidates")

    if expected_type != "any":
        typed = [c for c in candidates if c.media_type == expected_type]
        if typed:
            match = typed[0]
            return MatchSelection(
                match=match,
                alternates=[c for c in candidates if c is not match],
                confidence=MatchConfidence.HIGH,
            )

    match = candidates[0]
    score = title_similarity(match.display_title, normalized_title)
    confidence = (
        MatchConfidence.MEDIUM
        if score > MEDIUM_CONFIDENCE_THRESHOLD
        else MatchConfidence.LOW
    )
    if confidence is MatchConfidence.LOW:
        logger.warning(
            "Low confidence match for %r: picked %r (id=%s, score=%.2f)",
            normalized_title,
            match.display_title,
            match.id,
            score,
        )
    return MatchSelection(
        match=match,
        alternates=list(candidates[1:]),
        confidence=confidence,
    )


async def resolve_season_match(
    selection: MatchSelection,
    season_hint: int | None,
    fetch_details: Callable[[SearchCandidate], Awaitable[MediaDetails]],
) -> SeasonResolution:
    """Fetch details for the match, falling back to alternates for seasons.

    When *season_hint* exceeds the seasons the TV match declares, each TV
    alternate is tried once in search order and the first one declaring
    enough seasons replaces the match.
    """

    details = await fetch_details(selection.match)
    if (
        season_hint is None
        or selection.match.media_type != "tv"
        or season_hint <= details.declared_season_count
    ):
        return SeasonResolution(match=selection.match, details=details)

    tv_alternates = [c for c in selection.alternates if c.media_type == "tv"]
    for alternate in tv_alternates:
        try:
            alternate_details = await fetch_details(alternate)
        except UpstreamError as exc:
            if not exc.is_client_error:
                raise
            logger.debug("Skipping alternate %s: %s", alternate.id, exc)
            continue
        if season_hint <= alternate_details.declared_season_count:
            logger.info(
                "Season %d not declared by %r; using alternate %r (id=%s)",
                season_hint,
                selection.match.display_title,
                alternate.display_title,
                alternate.id,
            )
            return SeasonResolution(
                match=alternate, details=alternate_details, substituted=True
            )
    return SeasonResolution(match=None, details=None)


__all__ = [
    "MEDIUM_CONFIDENCE_THRESHOLD",
    "MatchConfidence",
    "MatchSelection",
    "SeasonResolution",
    "resolve_season_match",
    "select_match",
]
