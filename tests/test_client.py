import asyncio
import json

import httpx
import pytest

from mcp_overseerr.common.errors import UpstreamError
from mcp_overseerr.server.client import OverseerrClient


def _client(handler) -> OverseerrClient:
    return OverseerrClient(
        "http://overseerr.local/api/v1",
        "secret",
        transport=httpx.MockTransport(handler),
    )


def test_search_sends_api_key_and_query():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "page": 1,
                "totalPages": 1,
                "totalResults": 2,
                "results": [
                    {"id": 1429, "mediaType": "tv", "name": "Attack on Titan"},
                    {"id": 5, "mediaType": "person", "name": "Someone"},
                ],
            },
        )

    async def _run():
        client = _client(handler)
        try:
            return await client.search("Attack on Titan", language="ja")
        finally:
            await client.close()

    response = asyncio.run(_run())
    request = seen[0]
    assert request.url.path == "/api/v1/search"
    assert request.url.params["query"] == "Attack on Titan"
    assert request.url.params["language"] == "ja"
    assert request.headers["X-Api-Key"] == "secret"
    assert [row.id for row in response.media_results] == [1429]


def test_fetch_details_sets_media_type():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/tv/1429"
        return httpx.Response(
            200,
            json={
                "id": 1429,
                "name": "Attack on Titan",
                "numberOfSeasons": 4,
                "seasons": [{"seasonNumber": 1, "episodeCount": 25}],
                "mediaInfo": {"status": 4, "seasons": [{"seasonNumber": 1, "status": 5}]},
            },
        )

    async def _run():
        client = _client(handler)
        try:
            return await client.fetch_details("tv", 1429)
        finally:
            await client.close()

    details = asyncio.run(_run())
    assert details.media_type == "tv"
    assert details.declared_season_count == 4
    assert details.media_info.season_status(1) == 5


def test_create_request_posts_body():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"id": 77, "status": 1})

    async def _run():
        client = _client(handler)
        try:
            return await client.create_request(
                {"mediaType": "tv", "mediaId": 1429, "seasons": [4]}
            )
        finally:
            await client.close()

    created = asyncio.run(_run())
    assert created.id == 77
    assert created.status_label == "PENDING_APPROVAL"
    assert bodies == [{"mediaType": "tv", "mediaId": 1429, "seasons": [4]}]


def test_http_errors_become_upstream_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/movie/1"):
            return httpx.Response(404, json={"message": "Movie not found"})
        return httpx.Response(503, text="unavailable")

    async def _run(media_id: int):
        client = _client(handler)
        try:
            return await client.fetch_details("movie", media_id)
        finally:
            await client.close()

    with pytest.raises(UpstreamError) as missing:
        asyncio.run(_run(1))
    assert missing.value.status == 404
    assert missing.value.message == "Movie not found"
    assert not missing.value.retryable

    with pytest.raises(UpstreamError) as unavailable:
        asyncio.run(_run(2))
    assert unavailable.value.status == 503
    assert unavailable.value.retryable


def test_timeouts_are_retryable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async def _run():
        client = _client(handler)
        try:
            return await client.get_request(1)
        finally:
            await client.close()

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(_run())
    assert exc_info.value.timeout
    assert exc_info.value.status is None
    assert exc_info.value.retryable


def test_unexpected_payload_shape():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": "nope"})

    async def _run():
        client = _client(handler)
        try:
            return await client.list_requests()
        finally:
            await client.close()

    with pytest.raises(UpstreamError, match="unexpected response shape") as exc_info:
        asyncio.run(_run())
    assert exc_info.value.malformed
    assert not exc_info.value.retryable


def test_delete_accepts_empty_body():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        return httpx.Response(204)

    async def _run():
        client = _client(handler)
        try:
            return await client.delete_request(9)
        finally:
            await client.close()

    assert asyncio.run(_run()) is None
