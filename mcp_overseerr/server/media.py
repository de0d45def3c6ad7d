"""Cached access to Overseerr lookups used by the server tools."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from ..common.cache import CacheCategory, ResponseCache
from ..common.types import (
    MediaDetails,
    MediaRequest,
    MediaType,
    RequestListResponse,
    SearchResponse,
    media_status_label,
)
from .models import SearchMediaResponse, SearchResultItem

logger = logging.getLogger(__name__)

_MUTATION_CATEGORIES = (CacheCategory.REQUESTS, CacheCategory.MEDIA_DETAILS)


class MediaApi(Protocol):
    """Operations the core needs from an Overseerr API client."""

    async def search(
        self, query: str, page: int = 1, language: str = "en"
    ) -> SearchResponse: ...

    async def fetch_details(
        self, media_type: MediaType, media_id: int, language: str = "en"
    ) -> MediaDetails: ...

    async def create_request(self, body: dict[str, Any]) -> MediaRequest: ...

    async def get_request(self, request_id: int) -> MediaRequest: ...

    async def list_requests(
        self, *, take: int = 20, skip: int = 0, filter: str = "all", sort: str = "added"
    ) -> RequestListResponse: ...

    async def approve_request(self, request_id: int) -> MediaRequest: ...

    async def decline_request(self, request_id: int) -> MediaRequest: ...

    async def delete_request(self, request_id: int) -> None: ...


class MediaLookup:
    """Read-through cache in front of a :class:`MediaApi`.

    Mutating calls invalidate the request and details categories before
    returning, so a follow-up read in the same call never sees stale
    request state.
    """

    def __init__(
        self,
        api: MediaApi,
        cache: ResponseCache,
        *,
        default_language: str = "en",
    ) -> None:
        self.api = api
        self.cache = cache
        self.default_language = default_language

    async def search(
        self, query: str, *, page: int = 1, language: str | None = None
    ) -> SearchResponse:
        language = language or self.default_language
        params = {"query": query, "page": page, "language": language}
        cached = self.cache.get(CacheCategory.SEARCH, params)
        if cached is not None:
            return cached
        result = await self.api.search(query, page=page, language=language)
        self.cache.set(CacheCategory.SEARCH, params, result)
        return result

    async def search_summary(
        self,
        query: str,
        *,
        page: int = 1,
        language: str | None = None,
        limit: int | None = None,
    ) -> SearchMediaResponse:
        """Search and reduce each movie/TV row to a compact summary."""

        response = await self.search(query.strip(), page=page, language=language)
        rows = response.media_results
        if limit is not None:
            rows = rows[:limit]
        return SearchMediaResponse(
            query=query,
            page=response.page,
            total_pages=response.total_pages,
            total_results=response.total_results,
            results=[
                SearchResultItem(
                    id=row.id,
                    type=row.media_type,
                    title=row.display_title,
                    year=row.release_year,
                    rating=row.rating,
                    status=(
                        media_status_label(row.media_info.status)
                        if row.media_info
                        else None
                    ),
                )
                for row in rows
            ],
        )

    async def details(
        self, media_type: MediaType, media_id: int, *, language: str | None = None
    ) -> MediaDetails:
        language = language or self.default_language
        params = {"mediaType": media_type, "mediaId": media_id, "language": language}
        cached = self.cache.get(CacheCategory.MEDIA_DETAILS, params)
        if cached is not None:
            return cached
        result = await self.api.fetch_details(media_type, media_id, language=language)
        if result.media_type is None:
            result = result.model_copy(update={"media_type": media_type})
        self.cache.set(CacheCategory.MEDIA_DETAILS, params, result)
        return result

    async def get_request(self, request_id: int) -> MediaRequest:
        params = {"requestId": request_id}
        cached = self.cache.get(CacheCategory.REQUESTS, params)
        if cached is not None:
            return cached
        result = await self.api.get_request(request_id)
        self.cache.set(CacheCategory.REQUESTS, params, result)
        return result

    async def list_requests(
        self,
        *,
        take: int = 20,
        skip: int = 0,
        filter: str = "all",
        sort: str = "added",
    ) -> RequestListResponse:
        params = {"take": take, "skip": skip, "filter": filter, "sort": sort}
        cached = self.cache.get(CacheCategory.REQUESTS, params)
        if cached is not None:
            return cached
        result = await self.api.list_requests(
            take=take, skip=skip, filter=filter, sort=sort
        )
        self.cache.set(CacheCategory.REQUESTS, params, result)
        return result

    def invalidate_after_mutation(self) -> None:
        removed = sum(
            self.cache.invalidate(category) for category in _MUTATION_CATEGORIES
        )
        logger.debug("Dropped %d cached entries after a request mutation", removed)

    async def create_request(self, body: dict[str, Any]) -> MediaRequest:
        try:
            return await self.api.create_request(body)
        finally:
            self.invalidate_after_mutation()

    async def approve_request(self, request_id: int) -> MediaRequest:
        try:
            return await self.api.approve_request(request_id)
        finally:
            self.invalidate_after_mutation()

    async def decline_request(self, request_id: int) -> MediaRequest:
        try:
            return await self.api.decline_request(request_id)
        finally:
            self.invalidate_after_mutation()

    async def delete_request(self, request_id: int) -> None:
        try:
            await self.api.delete_request(request_id)
        finally:
            self.invalidate_after_mutation()


__all__ = ["MediaApi", "MediaLookup"]
