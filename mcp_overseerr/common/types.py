"""Type definitions for Overseerr API payloads."""

from __future__ import annotations

import re
from enum import IntEnum
from typing import Any, Literal, Optional, TypeAlias

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MediaType: TypeAlias = Literal["movie", "tv"]

_YEAR_RE = re.compile(r"^(\d{4})")


class MediaStatus(IntEnum):
    """Library status Overseerr tracks for a title or season."""

    UNKNOWN = 1
    PENDING = 2
    PROCESSING = 3
    PARTIALLY_AVAILABLE = 4
    AVAILABLE = 5
    DELETED = 6


class RequestStatus(IntEnum):
    """Approval status of a media request."""

    PENDING_APPROVAL = 1
    APPROVED = 2
    DECLINED = 3


IN_LIBRARY_STATUSES: frozenset[int] = frozenset(
    {
        MediaStatus.PENDING,
        MediaStatus.PROCESSING,
        MediaStatus.PARTIALLY_AVAILABLE,
        MediaStatus.AVAILABLE,
    }
)


def media_status_label(status: int | None) -> str:
    """Return the symbolic name of a media status code."""

    try:
        return MediaStatus(status).name
    except ValueError:
        return MediaStatus.UNKNOWN.name


def request_status_label(status: int | None) -> str:
    """Return the symbolic name of a request status code."""

    try:
        return RequestStatus(status).name
    except ValueError:
        return "UNKNOWN"


def _year_from(date: str | None) -> str | None:
    if not date:
        return None
    match = _YEAR_RE.match(date)
    return match.group(1) if match else None


class OverseerrModel(BaseModel):
    """Base model mapping snake_case attributes to Overseerr's camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class RequestUser(OverseerrModel):
    id: Optional[int] = None
    display_name: Optional[str] = None
    email: Optional[str] = None


class RequestSeason(OverseerrModel):
    season_number: int
    status: Optional[int] = None


class RequestMedia(OverseerrModel):
    id: Optional[int] = None
    tmdb_id: Optional[int] = None
    media_type: Optional[str] = None
    status: int = MediaStatus.UNKNOWN


class MediaRequest(OverseerrModel):
    """A request tracked by Overseerr."""

    id: int
    status: int = RequestStatus.PENDING_APPROVAL
    media: Optional[RequestMedia] = None
    seasons: list[RequestSeason] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    requested_by: Optional[RequestUser] = None
    is4k: bool = False

    @property
    def requested_seasons(self) -> list[int]:
        return [season.season_number for season in self.seasons]

    @property
    def requester(self) -> str | None:
        if self.requested_by is None:
            return None
        return self.requested_by.display_name or self.requested_by.email

    @property
    def status_label(self) -> str:
        return request_status_label(self.status)


class MediaSeasonStatus(OverseerrModel):
    season_number: int
    status: int = MediaStatus.UNKNOWN


class MediaInfo(OverseerrModel):
    """Overseerr's knowledge of a title it already tracks."""

    id: Optional[int] = None
    tmdb_id: Optional[int] = None
    status: int = MediaStatus.UNKNOWN
    requests: list[MediaRequest] = Field(default_factory=list)
    seasons: list[MediaSeasonStatus] = Field(default_factory=list)

    def season_status(self, season_number: int) -> int | None:
        for season in self.seasons:
            if season.season_number == season_number:
                return season.status
        return None


class SearchCandidate(OverseerrModel):
    """One row of an Overseerr search response."""

    id: int
    media_type: str
    title: Optional[str] = None
    name: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    release_date: Optional[str] = None
    first_air_date: Optional[str] = None
    vote_average: Optional[float] = None
    media_info: Optional[MediaInfo] = None

    @property
    def display_title(self) -> str:
        return self.title or self.name or "Unknown"

    @property
    def release_year(self) -> str | None:
        return _year_from(self.release_date or self.first_air_date)

    @property
    def rating(self) -> float | None:
        return self.vote_average


class SearchResponse(OverseerrModel):
    page: int = 1
    total_pages: int = 0
    total_results: int = 0
    results: list[SearchCandidate] = Field(default_factory=list)

    @property
    def media_results(self) -> list[SearchCandidate]:
        """Search rows that are movies or TV shows (people are dropped)."""

        return [row for row in self.results if row.media_type in ("movie", "tv")]


class Genre(OverseerrModel):
    id: int
    name: str


class SeasonSummary(OverseerrModel):
    season_number: int
    episode_count: int = 0
    air_date: Optional[str] = None
    name: Optional[str] = None


class MediaDetails(OverseerrModel):
    """Movie or TV details as returned by ``/movie/{id}`` or ``/tv/{id}``."""

    id: int
    media_type: Optional[str] = None
    title: Optional[str] = None
    name: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    first_air_date: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    genres: list[Genre] = Field(default_factory=list)
    vote_average: Optional[float] = None
    runtime: Optional[int] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    seasons: list[SeasonSummary] = Field(default_factory=list)
    original_title: Optional[str] = None
    original_name: Optional[str] = None
    popularity: Optional[float] = None
    homepage: Optional[str] = None
    status: Optional[str] = None
    tagline: Optional[str] = None
    media_info: Optional[MediaInfo] = None

    @property
    def display_name(self) -> str:
        return self.title or self.name or "Unknown"

    @property
    def year(self) -> str | None:
        return _year_from(self.release_date or self.first_air_date)

    @property
    def regular_seasons(self) -> list[SeasonSummary]:
        """Declared seasons excluding season 0 (specials)."""

        return [season for season in self.seasons if season.season_number > 0]

    @property
    def declared_season_count(self) -> int:
        if self.number_of_seasons is not None:
            return self.number_of_seasons
        regular = self.regular_seasons
        if regular:
            return max(season.season_number for season in regular)
        return 0

    def season(self, season_number: int) -> SeasonSummary | None:
        for season in self.seasons:
            if season.season_number == season_number:
                return season
        return None


class PageInfo(OverseerrModel):
    pages: int = 0
    page_size: int = 0
    results: int = 0
    page: int = 1


class RequestListResponse(OverseerrModel):
    page_info: PageInfo = Field(default_factory=PageInfo)
    results: list[MediaRequest] = Field(default_factory=list)


def request_body(
    media_type: MediaType,
    media_id: int,
    *,
    seasons: list[int] | None = None,
    is4k: bool = False,
    server_id: int | None = None,
    profile_id: int | None = None,
    root_folder: str | None = None,
) -> dict[str, Any]:
    """Build the JSON body for ``POST /request``."""

    body: dict[str, Any] = {"mediaType": media_type, "mediaId": media_id}
    if seasons is not None:
        body["seasons"] = seasons
    if is4k:
        body["is4k"] = True
    if server_id is not None:
        body["serverId"] = server_id
    if profile_id is not None:
        body["profileId"] = profile_id
    if root_folder is not None:
        body["rootFolder"] = root_folder
    return body


__all__ = [
    "Genre",
    "IN_LIBRARY_STATUSES",
    "MediaDetails",
    "MediaInfo",
    "MediaRequest",
    "MediaSeasonStatus",
    "MediaStatus",
    "MediaType",
    "PageInfo",
    "RequestListResponse",
    "RequestMedia",
    "RequestSeason",
    "RequestStatus",
    "RequestUser",
    "SearchCandidate",
    "SearchResponse",
    "SeasonSummary",
    "media_status_label",
    "request_status_label",
    "request_body",
]
