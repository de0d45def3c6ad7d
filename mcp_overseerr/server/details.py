"""Field selection for media detail payloads and the details lookups."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from ..common.errors import MediaValidationError
from ..common.retry import RetryPolicy, batch_with_retry
from ..common.types import (
    MediaDetails,
    MediaType,
    SeasonSummary,
    media_status_label,
)
from ..common.validation import coerce_media_id, require_media_type
from .media import MediaLookup
from .models import (
    BatchSummary,
    MediaDetailsBatchResponse,
    MediaDetailsResponse,
    batch_error,
)

DetailLevel = Literal["basic", "standard", "full"]


class MediaField(str, Enum):
    """Fields that can be requested from a :class:`MediaDetails` payload."""

    ID = "id"
    TITLE = "title"
    MEDIA_TYPE = "mediaType"
    YEAR = "year"
    POSTER_PATH = "posterPath"
    RATING = "rating"
    OVERVIEW = "overview"
    GENRES = "genres"
    RUNTIME = "runtime"
    NUMBER_OF_SEASONS = "numberOfSeasons"
    NUMBER_OF_EPISODES = "numberOfEpisodes"
    SEASONS = "seasons"
    RELEASE_DATE = "releaseDate"
    FIRST_AIR_DATE = "firstAirDate"
    ORIGINAL_TITLE = "originalTitle"
    ORIGINAL_NAME = "originalName"
    POPULARITY = "popularity"
    BACKDROP_PATH = "backdropPath"
    HOMEPAGE = "homepage"
    STATUS = "status"
    TAGLINE = "tagline"
    MEDIA_STATUS = "mediaStatus"
    HAS_REQUESTS = "hasRequests"
    REQUEST_COUNT = "requestCount"


_BASIC_FIELDS = (
    MediaField.ID,
    MediaField.TITLE,
    MediaField.MEDIA_TYPE,
    MediaField.YEAR,
    MediaField.POSTER_PATH,
)
_STANDARD_FIELDS = _BASIC_FIELDS + (
    MediaField.RATING,
    MediaField.OVERVIEW,
    MediaField.GENRES,
    MediaField.RUNTIME,
    MediaField.NUMBER_OF_SEASONS,
    MediaField.NUMBER_OF_EPISODES,
    MediaField.MEDIA_STATUS,
)
LEVEL_FIELDS: dict[str, tuple[MediaField, ...]] = {
    "basic": _BASIC_FIELDS,
    "standard": _STANDARD_FIELDS,
    "full": tuple(MediaField),
}

# Fields that identify the title and are never repeated in dedupe details.
_IDENTITY_FIELDS = frozenset({MediaField.ID, MediaField.TITLE})


def parse_fields(names: Sequence[str]) -> list[MediaField]:
    """Convert field names to :class:`MediaField`, rejecting unknown names."""

    fields: list[MediaField] = []
    unknown: list[str] = []
    for name in names:
        try:
            field = MediaField(name)
        except ValueError:
            unknown.append(name)
            continue
        if field not in fields:
            fields.append(field)
    if unknown:
        supported = ", ".join(f.value for f in MediaField)
        raise MediaValidationError(
            f"Unknown detail fields: {', '.join(unknown)}. Supported: {supported}"
        )
    return fields


def _season_row(details: MediaDetails, season: SeasonSummary) -> dict[str, Any]:
    info = details.media_info
    status = info.season_status(season.season_number) if info else None
    return {
        "seasonNumber": season.season_number,
        "episodeCount": season.episode_count,
        "airDate": season.air_date,
        "status": media_status_label(status),
    }


def extract_field(details: MediaDetails, field: MediaField) -> Any:
    """Return the value of *field*; every :class:`MediaField` is handled."""

    info = details.media_info
    if field is MediaField.ID:
        return details.id
    if field is MediaField.TITLE:
        return details.display_name
    if field is MediaField.MEDIA_TYPE:
        return details.media_type
    if field is MediaField.YEAR:
        return details.year
    if field is MediaField.POSTER_PATH:
        return details.poster_path
    if field is MediaField.RATING:
        return details.vote_average
    if field is MediaField.OVERVIEW:
        return details.overview
    if field is MediaField.GENRES:
        return [genre.name for genre in details.genres]
    if field is MediaField.RUNTIME:
        return details.runtime
    if field is MediaField.NUMBER_OF_SEASONS:
        return details.number_of_seasons
    if field is MediaField.NUMBER_OF_EPISODES:
        return details.number_of_episodes
    if field is MediaField.SEASONS:
        if not details.seasons:
            return None
        return [_season_row(details, season) for season in details.seasons]
    if field is MediaField.RELEASE_DATE:
        return details.release_date
    if field is MediaField.FIRST_AIR_DATE:
        return details.first_air_date
    if field is MediaField.ORIGINAL_TITLE:
        return details.original_title
    if field is MediaField.ORIGINAL_NAME:
        return details.original_name
    if field is MediaField.POPULARITY:
        return details.popularity
    if field is MediaField.BACKDROP_PATH:
        return details.backdrop_path
    if field is MediaField.HOMEPAGE:
        return details.homepage
    if field is MediaField.STATUS:
        return details.status
    if field is MediaField.TAGLINE:
        return details.tagline
    if field is MediaField.MEDIA_STATUS:
        return media_status_label(info.status if info else None)
    if field is MediaField.HAS_REQUESTS:
        return bool(info and info.requests)
    if field is MediaField.REQUEST_COUNT:
        return len(info.requests) if info else 0
    raise AssertionError(f"unhandled media field {field!r}")


def select_fields(
    details: MediaDetails, fields: Sequence[MediaField]
) -> dict[str, Any]:
    """Return ``{field: value}`` for *fields*, dropping empty values."""

    selected: dict[str, Any] = {}
    for field in fields:
        value = extract_field(details, field)
        if value is None:
            continue
        selected[field.value] = value
    return selected


def fields_for(
    level: DetailLevel = "standard", fields: Sequence[str] | None = None
) -> list[MediaField]:
    """Resolve an explicit field list, or the fields of a detail level."""

    if fields:
        return parse_fields(fields)
    try:
        return list(LEVEL_FIELDS[level])
    except KeyError as exc:
        raise MediaValidationError(
            f"Unknown detail level {level!r}; expected basic, standard or full"
        ) from exc


def target_season(details: MediaDetails, season_number: int) -> dict[str, Any] | None:
    """Describe one season of *details*, or ``None`` if it is not declared."""

    season = details.season(season_number)
    if season is None:
        return None
    return _season_row(details, season)


def enriched_details(
    details: MediaDetails,
    fields: Sequence[MediaField],
    *,
    season_hint: int | None = None,
    include_season: bool = True,
) -> dict[str, Any]:
    """Build the optional ``details`` block attached to dedupe results."""

    enriched = select_fields(
        details, [field for field in fields if field not in _IDENTITY_FIELDS]
    )
    if include_season and season_hint is not None and details.media_type == "tv":
        season = target_season(details, season_hint)
        if season is not None:
            enriched["targetSeason"] = season
    return enriched


@dataclass(frozen=True)
class DetailItem:
    media_type: MediaType
    media_id: int


async def get_media_details(
    lookup: MediaLookup,
    media_type: MediaType,
    media_id: int,
    *,
    level: DetailLevel = "standard",
    fields: Sequence[str] | None = None,
    language: str | None = None,
) -> MediaDetailsResponse:
    """Fetch one title and project it onto a detail level or field list."""

    require_media_type(media_type)
    media_id = coerce_media_id(media_id)
    selected = fields_for(level, fields)
    details = await lookup.details(media_type, media_id, language=language)
    return MediaDetailsResponse(
        media_type=media_type,
        media_id=media_id,
        level="custom" if fields else level,
        details=select_fields(details, selected),
    )


async def get_media_details_many(
    lookup: MediaLookup,
    items: Sequence[DetailItem],
    *,
    level: DetailLevel = "standard",
    fields: Sequence[str] | None = None,
    language: str | None = None,
    retry_policy: RetryPolicy | None = None,
) -> MediaDetailsBatchResponse:
    # Unknown field names fail the whole call, not each item.
    fields_for(level, fields)

    batch = await batch_with_retry(
        list(items),
        lambda item: get_media_details(
            lookup,
            item.media_type,
            item.media_id,
            level=level,
            fields=fields,
            language=language,
        ),
        retry_policy,
    )
    results: list[MediaDetailsResponse] = []
    errors = []
    for index, entry in enumerate(batch):
        if entry.success and entry.result is not None:
            results.append(entry.result)
            continue
        errors.append(
            batch_error(
                index,
                {"mediaType": entry.item.media_type, "mediaId": entry.item.media_id},
                entry.error,
            )
        )
        results.append(
            MediaDetailsResponse(
                media_type=entry.item.media_type,
                media_id=entry.item.media_id,
                level="custom" if fields else level,
                error=entry.error_message,
            )
        )
    failed = len(errors)
    return MediaDetailsBatchResponse(
        summary=BatchSummary(
            total=len(batch), successful=len(batch) - failed, failed=failed
        ),
        results=results,
        errors=errors,
    )


__all__ = [
    "DetailItem",
    "DetailLevel",
    "LEVEL_FIELDS",
    "MediaField",
    "enriched_details",
    "extract_field",
    "fields_for",
    "get_media_details",
    "get_media_details_many",
    "parse_fields",
    "select_fields",
    "target_season",
]
