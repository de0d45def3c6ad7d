"""Async HTTP client for the Overseerr REST API."""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx
from pydantic import ValidationError

from ..common.errors import UpstreamError
from ..common.types import (
    MediaDetails,
    MediaRequest,
    MediaType,
    RequestListResponse,
    SearchResponse,
)

logger = logging.getLogger(__name__)

RequestFilter = Literal[
    "all", "approved", "available", "pending", "processing", "unavailable", "failed"
]
RequestSort = Literal["added", "modified"]


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return response.reason_phrase or f"HTTP {response.status_code}"


class OverseerrClient:
    """Thin wrapper over :class:`httpx.AsyncClient` for Overseerr endpoints.

    Every failure surfaces as :class:`UpstreamError` carrying the HTTP status
    (``None`` for timeouts and network failures) so callers can tell
    transient errors from terminal ones.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"X-Api-Key": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._http.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise UpstreamError(_error_message(exc.response), status=status) from exc
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"request to {path} timed out", timeout=True) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"request to {path} failed: {exc}") from exc
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"invalid JSON from {path}", status=response.status_code
            ) from exc

    async def _request_model(
        self, model: type[Any], method: str, path: str, **kwargs: Any
    ) -> Any:
        payload = await self._request(method, path, **kwargs)
        try:
            return model.model_validate(payload or {})
        except ValidationError as exc:
            logger.debug("Unexpected payload from %s: %s", path, payload)
            raise UpstreamError(
                f"unexpected response shape from {path}: {exc}", malformed=True
            ) from exc

    async def search(
        self, query: str, page: int = 1, language: str = "en"
    ) -> SearchResponse:
        return await self._request_model(
            SearchResponse,
            "GET",
            "/search",
            params={"query": query, "page": page, "language": language},
        )

    async def fetch_details(
        self, media_type: MediaType, media_id: int, language: str = "en"
    ) -> MediaDetails:
        details: MediaDetails = await self._request_model(
            MediaDetails,
            "GET",
            f"/{media_type}/{media_id}",
            params={"language": language},
        )
        return details.model_copy(update={"media_type": media_type})

    async def create_request(self, body: dict[str, Any]) -> MediaRequest:
        return await self._request_model(MediaRequest, "POST", "/request", json=body)

    async def get_request(self, request_id: int) -> MediaRequest:
        return await self._request_model(MediaRequest, "GET", f"/request/{request_id}")

    async def list_requests(
        self,
        *,
        take: int = 20,
        skip: int = 0,
        filter: RequestFilter = "all",
        sort: RequestSort = "added",
    ) -> RequestListResponse:
        return await self._request_model(
            RequestListResponse,
            "GET",
            "/request",
            params={"take": take, "skip": skip, "filter": filter, "sort": sort},
        )

    async def approve_request(self, request_id: int) -> MediaRequest:
        return await self._request_model(
            MediaRequest, "POST", f"/request/{request_id}/approve"
        )

    async def decline_request(self, request_id: int) -> MediaRequest:
        return await self._request_model(
            MediaRequest, "POST", f"/request/{request_id}/decline"
        )

    async def delete_request(self, request_id: int) -> None:
        await self._request("DELETE", f"/request/{request_id}")


__all__ = ["OverseerrClient", "RequestFilter", "RequestSort"]
