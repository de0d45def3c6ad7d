from __future__ import annotations

import asyncio

import pytest
from starlette.testclient import TestClient

from mcp_overseerr import server as server_module
from mcp_overseerr.common.cache import CacheCategory, CacheSettings, ResponseCache
from mcp_overseerr.server import OverseerrServer
from mcp_overseerr.server.config import Settings

from fakes import FakeOverseerr, movie_details, movie_row, tv_details, tv_row


@pytest.fixture
def fake_api():
    server = server_module.server
    original_cache = server.cache
    api = FakeOverseerr(
        searches={
            "The Matrix": [
                movie_row(
                    603,
                    "The Matrix",
                    releaseDate="1999-03-30",
                    mediaInfo={"status": 5},
                )
            ],
            "Frieren": [tv_row(209867, "Frieren: Beyond Journey's End")],
        },
        details={
            ("movie", 603): movie_details(603, "The Matrix", media_info={"status": 5}),
            ("tv", 209867): tv_details(
                209867, "Frieren: Beyond Journey's End", {0: 2, 1: 10, 2: 10, 3: 8}
            ),
        },
    )
    server.cache = ResponseCache()
    server.api = api
    try:
        yield api
    finally:
        server.cache = original_cache
        server.api = None
        asyncio.run(server.close())


def test_tools_have_metadata():
    expected = {
        "search_media": ("Search Overseerr", "search"),
        "classify_titles": ("Check titles before requesting", "dedupe"),
        "request_media": ("Request media", "request"),
        "manage_requests": ("Manage media requests", "manage"),
        "get_media_details": ("Get media details", "lookup"),
    }
    for attr, (title, operation) in expected.items():
        tool = getattr(server_module, attr)
        assert tool.title == title
        assert tool.description
        assert tool.meta is not None
        assert tool.meta.get("category") == "overseerr"
        assert tool.meta.get("operation") == operation


def test_health_and_cache_stats():
    client = TestClient(server_module.server.http_app())
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "mcp-overseerr"}

    stats = client.get("/cache-stats").json()
    assert set(stats["categories"]) == {"search", "mediaDetails", "requests"}
    assert "hitRate" in stats["categories"]["search"]


def test_cache_stats_purges_expired_entries():
    server = server_module.server
    original_cache = server.cache
    now = [0.0]
    server.cache = ResponseCache(
        CacheSettings(ttl={CacheCategory.SEARCH: 10.0}), clock=lambda: now[0]
    )
    try:
        server.cache.set(CacheCategory.SEARCH, {"query": "Frieren"}, "rows")
        client = TestClient(server.http_app())
        assert client.get("/cache-stats").json()["size"] == 1
        now[0] = 11.0
        assert client.get("/cache-stats").json()["size"] == 0
    finally:
        server.cache = original_cache


def test_unconfigured_server_fails_on_first_use(monkeypatch):
    monkeypatch.delenv("OVERSEERR_URL", raising=False)
    monkeypatch.delenv("OVERSEERR_API_KEY", raising=False)
    server = OverseerrServer(settings=Settings())
    with pytest.raises(RuntimeError, match="OVERSEERR_URL"):
        server.media_lookup


def test_configured_server_builds_http_client(monkeypatch):
    monkeypatch.setenv("OVERSEERR_URL", "http://overseerr.local:5055")
    monkeypatch.setenv("OVERSEERR_API_KEY", "secret")
    server = OverseerrServer(settings=Settings())
    client = server.api
    assert str(client.base_url) == "http://overseerr.local:5055/api/v1"
    asyncio.run(server.close())
    assert server._api is None


def test_search_tool_direct_call(fake_api):
    response = asyncio.run(server_module.search_media.fn(query="The Matrix"))
    assert response.results[0].status == "AVAILABLE"
    assert fake_api.count("search") == 1


def test_rest_classify_titles(fake_api):
    client = TestClient(server_module.server.http_app())
    resp = client.post(
        "/rest/classify-titles",
        json={"titles": ["The Matrix (1999)", "Frieren Season 2"], "detail_fields": ["year"]},
    )
    assert resp.status_code == 200
    payload = resp.json()
    matrix, frieren = payload["results"]
    assert matrix["reasonCode"] == "ALREADY_AVAILABLE"
    assert matrix["isActionable"] is False
    assert frieren["reasonCode"] == "AVAILABLE_FOR_REQUEST"
    assert frieren["requestedSeason"] == 2
    assert frieren["enrichedDetails"]["targetSeason"]["episodeCount"] == 10
    assert payload["summary"]["pass"] == 1
    assert payload["summary"]["passRate"] == "50.0%"
    assert "autoRequest" not in payload


def test_rest_request_confirmation_round_trip(fake_api):
    client = TestClient(server_module.server.http_app())
    resp = client.post(
        "/rest/request-media",
        json={"media_type": "tv", "media_id": 209867, "seasons": "all"},
    )
    assert resp.status_code == 200
    first = resp.json()
    assert first["requiresConfirmation"] is True
    assert first["media"]["totalEpisodes"] == 28
    assert fake_api.created == []

    resp = client.post("/rest/request-media", json=first["confirmWith"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "CREATED"
    assert fake_api.created[0]["seasons"] == [1, 2, 3]


def test_rest_batch_details_with_items(fake_api):
    client = TestClient(server_module.server.http_app())
    resp = client.post(
        "/rest/get-media-details",
        json={
            "items": [
                {"mediaType": "movie", "mediaId": 603},
                {"mediaType": "tv", "mediaId": 1},
            ],
            "level": "basic",
        },
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["summary"] == {"total": 2, "successful": 1, "failed": 1}
    assert payload["results"][0]["details"]["title"] == "The Matrix"
    assert "error" in payload["results"][1]


def test_rest_error_statuses(fake_api):
    client = TestClient(server_module.server.http_app())

    resp = client.post("/rest/request-media", json={"media_type": "movie"})
    assert resp.status_code == 400
    assert "media_id" in resp.json()["error"]

    resp = client.post("/rest/request-media", json=[1, 2])
    assert resp.status_code == 400

    resp = client.post(
        "/rest/get-media-details", json={"media_type": "movie", "media_id": 999}
    )
    assert resp.status_code == 502
    assert "404" in resp.json()["error"]


def test_openapi_and_docs():
    client = TestClient(server_module.server.http_app())
    openapi = client.get("/openapi.json").json()

    def _resolve(schema: dict):
        if "$ref" in schema:
            ref = schema["$ref"].split("/")[-1]
            return openapi["components"]["schemas"][ref]
        return schema

    for name in (
        "search-media",
        "classify-titles",
        "request-media",
        "manage-requests",
        "get-media-details",
    ):
        assert f"/rest/{name}" in openapi["paths"]

    classify = openapi["paths"]["/rest/classify-titles"]["post"]
    assert classify["description"].startswith("Check which titles")
    schema = _resolve(
        classify["requestBody"]["content"]["application/json"]["schema"]
    )
    assert "titles" in schema["required"]
    assert schema["properties"]["auto_request"]["default"] is False

    resp = client.get("/rest")
    assert resp.status_code == 200
