"""Deduplication and request tools for the Overseerr MCP server."""

from __future__ import annotations

from typing import Annotated, Literal, TYPE_CHECKING

from pydantic import Field

from ...common.errors import MediaValidationError
from ..dedupe import DedupeOptions, DetailOptions, RequestDefaults
from ..details import (
    DetailItem,
    DetailLevel,
    get_media_details as fetch_media_details,
    get_media_details_many,
    parse_fields,
)
from ..models import (
    ConfirmationRequired,
    DedupeReport,
    ManageRequestsResponse,
    MediaDetailsBatchResponse,
    MediaDetailsResponse,
    MediaItemInput,
    RequestBatchResponse,
    RequestOutcome,
    SearchMediaResponse,
)
from ..requests import RequestAction, RequestItem

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .. import OverseerrServer


MediaTypeParam = Annotated[
    Literal["movie", "tv"] | None,
    Field(description="Kind of title: movie or tv", examples=["tv"]),
]
MediaIdParam = Annotated[
    int | None,
    Field(description="TMDB identifier of the title", gt=0, examples=[1429]),
]
SeasonsParam = Annotated[
    Literal["all"] | list[int] | None,
    Field(
        description=(
            "TV seasons to request: 'all' for every regular season (specials "
            "excluded) or explicit season numbers"
        ),
        examples=["all", [4]],
    ),
]
LanguageParam = Annotated[
    str | None,
    Field(
        description="Metadata language; defaults to OVERSEERR_LANGUAGE",
        examples=["en"],
    ),
]
ItemsParam = Annotated[
    list[MediaItemInput] | None,
    Field(
        description="Process several titles in one call instead of media_type/media_id",
        examples=[[{"mediaType": "movie", "mediaId": 603}]],
    ),
]


def _items(raw: list[MediaItemInput] | list[dict] | None) -> list[MediaItemInput]:
    return [MediaItemInput.model_validate(item) for item in raw or []]


def _require_single(
    media_type: str | None, media_id: int | None
) -> tuple[Literal["movie", "tv"], int]:
    if media_type is None or media_id is None:
        raise MediaValidationError("media_type and media_id are required without items")
    return media_type, media_id  # type: ignore[return-value]


def register_overseerr_tools(server: "OverseerrServer") -> None:
    """Register the Overseerr tools on the provided server."""

    def _overseerr_tool(name: str, *, title: str, operation: str):
        return server.tool(
            name,
            title=title,
            meta={"category": "overseerr", "operation": operation},
        )

    @_overseerr_tool("search-media", title="Search Overseerr", operation="search")
    async def search_media(
        query: Annotated[
            str,
            Field(
                description="Movie or TV title to look up",
                min_length=1,
                examples=["Attack on Titan"],
            ),
        ],
        page: Annotated[
            int,
            Field(description="Result page to return", ge=1, examples=[1]),
        ] = 1,
        limit: Annotated[
            int,
            Field(
                description="Maximum number of rows to return",
                ge=1,
                le=50,
                examples=[10],
            ),
        ] = 20,
        language: LanguageParam = None,
    ) -> SearchMediaResponse:
        """Search Overseerr and return compact rows with their library status."""

        return await server.media_lookup.search_summary(
            query, page=page, language=language, limit=limit
        )

    @_overseerr_tool(
        "classify-titles", title="Check titles before requesting", operation="dedupe"
    )
    async def classify_titles(
        titles: Annotated[
            list[str],
            Field(
                description="Free-text titles, optionally with season hints",
                min_length=1,
                examples=[["Attack on Titan Season 4", "The Matrix (1999)"]],
            ),
        ],
        auto_normalize: Annotated[
            bool,
            Field(
                description=(
                    "Strip season markers, years and trailing punctuation "
                    "before searching"
                ),
                examples=[True],
            ),
        ] = True,
        auto_request: Annotated[
            bool,
            Field(
                description="Request every actionable title after classification",
                examples=[False],
            ),
        ] = False,
        language: LanguageParam = None,
        detail_fields: Annotated[
            list[str] | None,
            Field(
                description="Detail fields to attach to each result",
                examples=[["year", "rating", "mediaStatus"]],
            ),
        ] = None,
        include_season: Annotated[
            bool,
            Field(
                description="Attach the hinted season's details to TV results",
                examples=[True],
            ),
        ] = True,
        seasons: Annotated[
            Literal["all"] | list[int],
            Field(
                description=(
                    "Seasons auto-requested for TV titles without a season hint"
                ),
                examples=["all"],
            ),
        ] = "all",
        is4k: Annotated[
            bool, Field(description="Request the 4K version", examples=[False])
        ] = False,
        server_id: Annotated[
            int | None, Field(description="Target Radarr/Sonarr server id")
        ] = None,
        profile_id: Annotated[
            int | None, Field(description="Quality profile id")
        ] = None,
        root_folder: Annotated[
            str | None, Field(description="Root folder for new downloads")
        ] = None,
        dry_run: Annotated[
            bool,
            Field(
                description="Report what would be requested without creating requests",
                examples=[True],
            ),
        ] = False,
    ) -> DedupeReport:
        """Check which titles are already available or requested in Overseerr."""

        include_details = None
        if detail_fields is not None:
            include_details = DetailOptions(
                fields=tuple(parse_fields(detail_fields)),
                include_season=include_season,
            )
        options = DedupeOptions(
            auto_normalize=auto_normalize,
            auto_request=auto_request,
            language=language,
            include_details=include_details,
            request_defaults=RequestDefaults(
                seasons=seasons,
                is4k=is4k,
                server_id=server_id,
                profile_id=profile_id,
                root_folder=root_folder,
                dry_run=dry_run,
            ),
        )
        return await server.dedupe.classify_titles(titles, options)

    @_overseerr_tool("request-media", title="Request media", operation="request")
    async def request_media(
        media_type: MediaTypeParam = None,
        media_id: MediaIdParam = None,
        seasons: SeasonsParam = None,
        is4k: Annotated[
            bool, Field(description="Request the 4K version", examples=[False])
        ] = False,
        items: ItemsParam = None,
        server_id: Annotated[
            int | None, Field(description="Target Radarr/Sonarr server id")
        ] = None,
        profile_id: Annotated[
            int | None, Field(description="Quality profile id")
        ] = None,
        root_folder: Annotated[
            str | None, Field(description="Root folder for new downloads")
        ] = None,
        validate_first: Annotated[
            bool,
            Field(
                description="Skip titles that are already available or requested",
                examples=[True],
            ),
        ] = True,
        dry_run: Annotated[
            bool,
            Field(
                description="Validate and report without creating the request",
                examples=[False],
            ),
        ] = False,
        confirmed: Annotated[
            bool,
            Field(
                description=(
                    "Confirm a large TV request after a requiresConfirmation "
                    "response"
                ),
                examples=[False],
            ),
        ] = False,
        language: LanguageParam = None,
    ) -> RequestOutcome | ConfirmationRequired | RequestBatchResponse:
        """Request a movie or TV seasons, or a batch of titles via ``items``."""

        service = server.request_service
        if items:
            return await service.request_many(
                [
                    RequestItem(
                        media_type=item.media_type,
                        media_id=item.media_id,
                        seasons=item.seasons,
                        is4k=item.is4k,
                    )
                    for item in _items(items)
                ],
                server_id=server_id,
                profile_id=profile_id,
                root_folder=root_folder,
                validate_first=validate_first,
                dry_run=dry_run,
                confirmed=confirmed,
                language=language,
            )
        media_type, media_id = _require_single(media_type, media_id)
        return await service.request_media(
            media_type,
            media_id,
            seasons=seasons,
            is4k=is4k,
            server_id=server_id,
            profile_id=profile_id,
            root_folder=root_folder,
            validate_first=validate_first,
            dry_run=dry_run,
            confirmed=confirmed,
            language=language,
        )

    @_overseerr_tool(
        "manage-requests", title="Manage media requests", operation="manage"
    )
    async def manage_requests(
        action: Annotated[
            RequestAction,
            Field(
                description="get, list, approve, decline or delete",
                examples=["list"],
            ),
        ],
        request_id: Annotated[
            int | None,
            Field(description="Request id for single-request actions", gt=0),
        ] = None,
        request_ids: Annotated[
            list[int] | None,
            Field(
                description="Request ids for batch approve, decline or delete",
                examples=[[12, 13]],
            ),
        ] = None,
        take: Annotated[
            int,
            Field(description="Page size for list", ge=1, le=100, examples=[20]),
        ] = 20,
        skip: Annotated[
            int, Field(description="Offset for list", ge=0, examples=[0])
        ] = 0,
        filter: Annotated[
            Literal[
                "all",
                "approved",
                "available",
                "pending",
                "processing",
                "unavailable",
                "failed",
            ],
            Field(description="Status filter for list", examples=["pending"]),
        ] = "all",
        sort: Annotated[
            Literal["added", "modified"],
            Field(description="Sort order for list", examples=["added"]),
        ] = "added",
        summary: Annotated[
            bool,
            Field(description="Add per-status counts to list results"),
        ] = False,
    ) -> ManageRequestsResponse:
        """Inspect, approve, decline or delete Overseerr requests."""

        return await server.request_service.manage_requests(
            action,
            request_id=request_id,
            request_ids=request_ids,
            take=take,
            skip=skip,
            filter=filter,
            sort=sort,
            summary=summary,
        )

    @_overseerr_tool(
        "get-media-details", title="Get media details", operation="lookup"
    )
    async def get_media_details(
        media_type: MediaTypeParam = None,
        media_id: MediaIdParam = None,
        items: ItemsParam = None,
        level: Annotated[
            DetailLevel,
            Field(description="basic, standard or full", examples=["standard"]),
        ] = "standard",
        fields: Annotated[
            list[str] | None,
            Field(
                description="Explicit fields; overrides level",
                examples=[["title", "year", "numberOfSeasons"]],
            ),
        ] = None,
        language: LanguageParam = None,
    ) -> MediaDetailsResponse | MediaDetailsBatchResponse:
        """Fetch details for one title, or several via ``items``."""

        if items:
            return await get_media_details_many(
                server.media_lookup,
                [
                    DetailItem(media_type=item.media_type, media_id=item.media_id)
                    for item in _items(items)
                ],
                level=level,
                fields=fields,
                language=language,
                retry_policy=server.retry_policy,
            )
        media_type, media_id = _require_single(media_type, media_id)
        return await fetch_media_details(
            server.media_lookup,
            media_type,
            media_id,
            level=level,
            fields=fields,
            language=language,
        )


__all__ = ["register_overseerr_tools"]
