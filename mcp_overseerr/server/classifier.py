"""Availability classification for matched titles.

Rules are evaluated in order and the first one that applies decides the
verdict. For whole-series TV queries the show-level ``AVAILABLE`` flag is
checked before any per-season data, because Overseerr can mark a show
available without ever populating its season rows.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from ..common.types import (
    IN_LIBRARY_STATUSES,
    MediaDetails,
    MediaInfo,
    MediaStatus,
    MediaType,
    media_status_label,
)


class DedupeStatus(str, Enum):
    PASS = "pass"
    BLOCKED = "blocked"


class ReasonCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    ALREADY_AVAILABLE = "ALREADY_AVAILABLE"
    ALREADY_REQUESTED = "ALREADY_REQUESTED"
    SEASON_AVAILABLE = "SEASON_AVAILABLE"
    SEASON_REQUESTED = "SEASON_REQUESTED"
    AVAILABLE_FOR_REQUEST = "AVAILABLE_FOR_REQUEST"
    LOOKUP_FAILED = "LOOKUP_FAILED"


@dataclass(frozen=True)
class Verdict:
    status: DedupeStatus
    reason_code: ReasonCode
    is_actionable: bool
    reason: str | None = None
    franchise_summary: str | None = None
    # Seasons still open when a whole-series verdict passes on partial coverage.
    open_seasons: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        if self.is_actionable and self.status is not DedupeStatus.PASS:
            raise ValueError("actionable verdicts must pass")
        if (
            self.status is DedupeStatus.BLOCKED
            and self.reason_code is ReasonCode.AVAILABLE_FOR_REQUEST
        ):
            raise ValueError("blocked verdicts cannot be available for request")

    @classmethod
    def requestable(
        cls,
        reason: str,
        franchise_summary: str | None = None,
        *,
        open_seasons: Iterable[int] | None = None,
    ) -> "Verdict":
        return cls(
            status=DedupeStatus.PASS,
            reason_code=ReasonCode.AVAILABLE_FOR_REQUEST,
            is_actionable=True,
            reason=reason,
            franchise_summary=franchise_summary,
            open_seasons=tuple(open_seasons) if open_seasons is not None else None,
        )

    @classmethod
    def blocked(
        cls,
        reason_code: ReasonCode,
        reason: str,
        franchise_summary: str | None = None,
    ) -> "Verdict":
        return cls(
            status=DedupeStatus.BLOCKED,
            reason_code=reason_code,
            is_actionable=False,
            reason=reason,
            franchise_summary=franchise_summary,
        )


def not_found(reason: str = "No matching title found") -> Verdict:
    return Verdict.blocked(ReasonCode.NOT_FOUND, reason)


def lookup_failed(reason: str) -> Verdict:
    return Verdict.blocked(ReasonCode.LOOKUP_FAILED, reason)


def humanize_status(status: int | None) -> str:
    """``PARTIALLY_AVAILABLE`` -> ``partially available``."""

    return media_status_label(status).replace("_", " ").lower()


def format_seasons(numbers: Iterable[int]) -> str:
    ordered = sorted(set(numbers))
    if len(ordered) == 1:
        return f"Season {ordered[0]}"
    return "Seasons " + ", ".join(str(n) for n in ordered)


def request_covers(info: MediaInfo, season_number: int) -> bool:
    for request in info.requests:
        requested = request.requested_seasons
        if not requested or season_number in requested:
            return True
    return False


def _season_breakdown(
    details: MediaDetails, info: MediaInfo | None
) -> tuple[list[int], list[int], list[int]]:
    """Split regular seasons into (in library, requested, open)."""

    available: list[int] = []
    requested: list[int] = []
    open_seasons: list[int] = []
    for season in details.regular_seasons:
        number = season.season_number
        if info is not None and info.season_status(number) in IN_LIBRARY_STATUSES:
            available.append(number)
        elif info is not None and request_covers(info, number):
            requested.append(number)
        else:
            open_seasons.append(number)
    return available, requested, open_seasons


def franchise_summary(
    available: list[int], requested: list[int], open_seasons: list[int]
) -> str:
    parts: list[str] = []
    if available:
        parts.append(f"In library: {format_seasons(available)}")
    if requested:
        parts.append(f"Requested: {format_seasons(requested)}")
    if open_seasons:
        parts.append(f"Not requested: {format_seasons(open_seasons)}")
    return " | ".join(parts)


def classify_movie(details: MediaDetails) -> Verdict:
    info = details.media_info
    if info is not None and info.status in IN_LIBRARY_STATUSES:
        return Verdict.blocked(
            ReasonCode.ALREADY_AVAILABLE,
            f"{details.display_name} is already {humanize_status(info.status)}",
        )
    if info is not None and info.requests:
        return Verdict.blocked(
            ReasonCode.ALREADY_REQUESTED,
            f"{details.display_name} has already been requested",
        )
    return Verdict.requestable(f"{details.display_name} can be requested")


def classify_tv_season(details: MediaDetails, season: int) -> Verdict:
    info = details.media_info
    name = details.display_name
    season_status = info.season_status(season) if info is not None else None
    if season_status in IN_LIBRARY_STATUSES:
        return Verdict.blocked(
            ReasonCode.SEASON_AVAILABLE,
            f"{name} Season {season} is already {humanize_status(season_status)}",
        )
    if info is not None and request_covers(info, season):
        return Verdict.blocked(
            ReasonCode.SEASON_REQUESTED,
            f"{name} Season {season} has already been requested",
        )
    summary = f"Season {season} can be requested"
    breakdown = franchise_summary(*_season_breakdown(details, info))
    if breakdown:
        summary = f"{summary} | {breakdown}"
    return Verdict.requestable(f"{name} Season {season} can be requested", summary)


def classify_tv_series(details: MediaDetails) -> Verdict:
    info = details.media_info
    name = details.display_name

    if info is not None and info.status == MediaStatus.AVAILABLE:
        return Verdict.blocked(
            ReasonCode.ALREADY_AVAILABLE, f"{name} is already available"
        )
    if info is not None and any(not r.requested_seasons for r in info.requests):
        return Verdict.blocked(
            ReasonCode.ALREADY_REQUESTED, f"{name} has already been requested"
        )

    summary: str | None = None
    if details.regular_seasons:
        available, requested, open_seasons = _season_breakdown(details, info)
        summary = franchise_summary(available, requested, open_seasons)
        if not requested and not open_seasons:
            return Verdict.blocked(
                ReasonCode.ALREADY_AVAILABLE,
                f"Every season of {name} is already in the library",
                summary,
            )
        if not open_seasons:
            return Verdict.blocked(
                ReasonCode.ALREADY_REQUESTED,
                f"Every season of {name} is already requested or in the library",
                summary,
            )
        if available or requested:
            return Verdict.requestable(
                f"{name} has {format_seasons(open_seasons)} open to request",
                summary,
                open_seasons=open_seasons,
            )

    if info is not None and info.status in IN_LIBRARY_STATUSES:
        return Verdict.blocked(
            ReasonCode.ALREADY_AVAILABLE,
            f"{name} is already {humanize_status(info.status)}",
            summary,
        )
    if info is not None and info.requests:
        return Verdict.blocked(
            ReasonCode.ALREADY_REQUESTED,
            f"{name} has already been requested",
            summary,
        )
    return Verdict.requestable(f"{name} can be requested", summary)


def classify(
    media_type: MediaType, season_hint: int | None, details: MediaDetails
) -> Verdict:
    """Decide whether *details* can still be requested."""

    if media_type == "movie":
        return classify_movie(details)
    if season_hint is not None:
        return classify_tv_season(details, season_hint)
    return classify_tv_series(details)


__all__ = [
    "DedupeStatus",
    "ReasonCode",
    "Verdict",
    "classify",
    "classify_movie",
    "classify_tv_season",
    "classify_tv_series",
    "format_seasons",
    "franchise_summary",
    "humanize_status",
    "lookup_failed",
    "not_found",
    "request_covers",
]
