"""FastMCP server exposing Overseerr deduplication and request tools."""

from __future__ import annotations

import importlib.metadata
import inspect
import logging
from typing import Any, Callable, TYPE_CHECKING

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.openapi.utils import get_openapi
from fastmcp.server import FastMCP
from fastmcp.server.context import Context as FastMCPContext
from pydantic import BaseModel, create_model
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..common.cache import ResponseCache
from ..common.errors import UpstreamError
from ..common.retry import RetryPolicy
from .client import OverseerrClient
from .config import Settings
from .dedupe import DedupeOrchestrator
from .media import MediaApi, MediaLookup
from .requests import RequestService
from .tools.media_requests import register_overseerr_tools


logger = logging.getLogger(__name__)


settings = Settings()
SERVER_NAME = "Overseerr Requests"
SERVICE_NAME = "mcp-overseerr"


try:
    __version__ = importlib.metadata.version("mcp-overseerr")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"


class OverseerrServer(FastMCP):
    """FastMCP server with an attached Overseerr API client and cache."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        api: MediaApi | None = None,
    ) -> None:  # noqa: D401 - short description inherited
        self._settings = settings or Settings()
        self._api = api
        self._owns_api = api is None

        class _ServerLifespan:
            def __init__(self, overseerr_server: "OverseerrServer") -> None:
                self._overseerr_server = overseerr_server

            async def __aenter__(self) -> None:  # noqa: D401 - matching protocol
                return None

            async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
                await self._overseerr_server.close()

        def _lifespan(app: FastMCP) -> _ServerLifespan:  # noqa: ARG001
            return _ServerLifespan(self)

        super().__init__(name=SERVER_NAME, lifespan=_lifespan)
        self.cache = ResponseCache(self.settings.cache_settings())
        self.retry_policy: RetryPolicy = self.settings.retry_policy()
        self._media_lookup: MediaLookup | None = None
        self._request_service: RequestService | None = None
        self._dedupe: DedupeOrchestrator | None = None

    @property
    def settings(self) -> Settings:  # type: ignore[override]
        return self._settings

    def _build_default_client(self) -> OverseerrClient:
        """Construct the HTTP client from the server settings."""

        base_url = self.settings.api_base_url
        api_key = self.settings.overseerr_api_key
        if base_url is None or not api_key:
            raise RuntimeError(
                "OVERSEERR_URL and OVERSEERR_API_KEY must be set to use Overseerr tools"
            )
        return OverseerrClient(base_url, api_key, timeout=self.settings.http_timeout)

    @property
    def api(self) -> MediaApi:
        if self._api is None:
            self._api = self._build_default_client()
            self._owns_api = True
        return self._api

    @api.setter
    def api(self, api: MediaApi | None) -> None:
        self._api = api
        self._owns_api = False
        self._media_lookup = None
        self._request_service = None
        self._dedupe = None

    @property
    def media_lookup(self) -> MediaLookup:
        if self._media_lookup is None:
            self._media_lookup = MediaLookup(
                self.api,
                self.cache,
                default_language=self.settings.default_language,
            )
        return self._media_lookup

    @property
    def request_service(self) -> RequestService:
        if self._request_service is None:
            self._request_service = RequestService(
                self.media_lookup,
                retry_policy=self.retry_policy,
                confirm_episode_threshold=self.settings.confirm_episode_threshold,
            )
        return self._request_service

    @property
    def dedupe(self) -> DedupeOrchestrator:
        if self._dedupe is None:
            self._dedupe = DedupeOrchestrator(
                self.media_lookup,
                self.request_service,
                retry_policy=self.retry_policy,
            )
        return self._dedupe

    async def close(self) -> None:
        if self._owns_api and isinstance(self._api, OverseerrClient):
            await self._api.close()
            self._api = None
            self._media_lookup = None
            self._request_service = None
            self._dedupe = None


server = OverseerrServer(settings=settings)
register_overseerr_tools(server)

_TOOL_EXPORTS = {
    "search_media": "search-media",
    "classify_titles": "classify-titles",
    "request_media": "request-media",
    "manage_requests": "manage-requests",
    "get_media_details": "get-media-details",
}

for attr_name, tool_name in _TOOL_EXPORTS.items():
    globals()[attr_name] = server._tool_manager._tools[tool_name]


@server.custom_route("/health", methods=["GET"])
async def health(request: Request) -> Response:  # noqa: ARG001
    """Report liveness without contacting Overseerr."""
    return JSONResponse({"status": "ok", "service": SERVICE_NAME})


@server.custom_route("/cache-stats", methods=["GET"])
async def cache_stats(request: Request) -> Response:  # noqa: ARG001
    """Drop expired entries, then return the response cache counters."""
    server.cache.purge_expired()
    return JSONResponse(server.cache.stats())


def _request_model(name: str, fn: Callable[..., object]) -> type[BaseModel] | None:
    """Generate a Pydantic model representing the callable's parameters."""

    signature = inspect.signature(fn, eval_str=True)
    if not signature.parameters:
        return None

    fields: dict[str, tuple[object, object]] = {}
    for param_name, parameter in signature.parameters.items():
        if parameter.kind in {
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        }:
            continue

        annotation: object
        if parameter.annotation is inspect.Signature.empty:
            annotation = object
        else:
            annotation = parameter.annotation

        default: object
        if parameter.default is inspect.Signature.empty:
            default = ...
        else:
            default = parameter.default

        fields[param_name] = (annotation, default)

    if not fields:
        return None

    model_name = "".join(
        part.capitalize() for part in name.replace("-", "_").split("_")
    )
    model_name = f"{model_name or 'Request'}Request"
    request_model = create_model(model_name, **fields)  # type: ignore[arg-type]
    return request_model


@server.custom_route("/rest", methods=["GET"])
async def rest_docs(request: Request) -> Response:  # noqa: ARG001
    """Serve Swagger UI for REST endpoints."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="MCP REST API")


def _build_openapi_schema() -> dict[str, object]:
    app = FastAPI()
    for name, tool in server._tool_manager._tools.items():
        request_model = _request_model(name, tool.fn)

        async def _tool_stub(payload: Any) -> None:  # noqa: ARG001
            pass

        _tool_stub.__name__ = f"tool_{name.replace('-', '_')}"
        _tool_stub.__doc__ = tool.fn.__doc__
        parameters = []
        if request_model is not None:
            parameters.append(
                inspect.Parameter(
                    "payload",
                    inspect.Parameter.POSITIONAL_OR_KEYWORD,
                    annotation=request_model,
                )
            )
        _tool_stub.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
            parameters=parameters,
            return_annotation=inspect.Signature.empty,
        )
        app.post(f"/rest/{name}")(_tool_stub)
    return get_openapi(title="MCP REST API", version=__version__, routes=app.routes)


_OPENAPI_SCHEMA = _build_openapi_schema()


@server.custom_route("/openapi.json", methods=["GET"])
async def openapi_json(request: Request) -> Response:  # noqa: ARG001
    """Return the OpenAPI schema for REST endpoints."""
    return JSONResponse(_OPENAPI_SCHEMA)


def _jsonable(result: object) -> object:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)
    return jsonable_encoder(result)


def _register_rest_endpoints() -> None:
    for name, tool in server._tool_manager._tools.items():

        async def _rest_tool(
            request: Request, _tool=tool, _name=name
        ) -> Response:
            try:
                arguments = await request.json()
            except ValueError:
                arguments = {}
            if not isinstance(arguments, dict):
                return JSONResponse(
                    {"error": "request body must be a JSON object"}, status_code=400
                )
            async with FastMCPContext(fastmcp=server):
                try:
                    result = await _tool.fn(**arguments)
                except (TypeError, ValueError) as exc:
                    return JSONResponse({"error": str(exc)}, status_code=400)
                except UpstreamError as exc:
                    logger.warning("REST call to %s failed: %s", _name, exc)
                    return JSONResponse({"error": str(exc)}, status_code=502)
            return JSONResponse(_jsonable(result))

        _rest_tool.__name__ = f"rest_{name.replace('-', '_')}"
        _rest_tool.__doc__ = tool.fn.__doc__
        server.custom_route(f"/rest/{name}", methods=["POST"])(_rest_tool)


_register_rest_endpoints()


def main(argv: list[str] | None = None) -> None:
    """Entry point delegating to :func:`mcp_overseerr.server.cli.main`."""

    from .cli import main as cli_main

    cli_main(argv)


if __name__ == "__main__":
    main()


if TYPE_CHECKING:
    from .cli import RunConfig as RunConfig


def __getattr__(name: str) -> Any:
    if name == "RunConfig":
        from .cli import RunConfig as _RunConfig

        return _RunConfig
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "OverseerrServer",
    "server",
    "settings",
    "main",
    "RunConfig",
]
