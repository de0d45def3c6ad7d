"""Launch the Overseerr request tools on an MCP transport."""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass

from ..common.cache import ResponseCache
from . import OverseerrServer, server, settings


overseerr_server: OverseerrServer = server


@dataclass
class RunConfig:
    """Where the HTTP transports listen; unused for stdio."""

    host: str | None = None
    port: int | None = None
    path: str | None = None

    def to_kwargs(self) -> dict[str, object]:
        """Only the options that were set, ready for ``OverseerrServer.run``."""

        kwargs: dict[str, object] = {}
        if self.host is not None:
            kwargs["host"] = self.host
        if self.port is not None:
            kwargs["port"] = self.port
        if self.path:
            kwargs["path"] = self.path
        return kwargs


def _resolve_log_level(cli_value: str | None) -> str:
    """``--log-level`` wins over ``LOG_LEVEL``; both fall back to ``info``."""

    env_value = os.getenv("LOG_LEVEL")
    if cli_value:
        return cli_value
    if env_value:
        return env_value.lower()
    return "info"


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, apply Overseerr overrides and serve until stopped."""

    parser = argparse.ArgumentParser(
        description="Serve the Overseerr request tools over MCP"
    )
    parser.add_argument(
        "--bind", help="Interface for sse or streamable-http (env: MCP_HOST)"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="TCP port for sse or streamable-http (env: MCP_PORT)",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="How MCP clients connect (env: MCP_TRANSPORT)",
    )
    parser.add_argument(
        "--mount", help="URL path the MCP endpoint is served under (env: MCP_MOUNT)"
    )
    parser.add_argument(
        "--overseerr-url",
        default=None,
        help="Base URL of the Overseerr instance (env: OVERSEERR_URL)",
    )
    parser.add_argument(
        "--language",
        default=settings.default_language,
        help="Default metadata language (env: OVERSEERR_LANGUAGE)",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable the response cache (env: CACHE_ENABLED=false)",
    )
    parser.add_argument(
        "--log-level",
        type=str.lower,
        choices=["critical", "error", "warning", "info", "debug", "notset"],
        help="Logging verbosity (env: LOG_LEVEL)",
    )
    args = parser.parse_args(argv)

    env_transport = os.getenv("MCP_TRANSPORT")
    env_host = (
        os.getenv("MCP_HOST")
        if os.getenv("MCP_HOST") is not None
        else os.getenv("MCP_BIND")
    )
    env_port = os.getenv("MCP_PORT")
    env_mount = os.getenv("MCP_MOUNT")

    transport = env_transport or args.transport
    valid_transports = {"stdio", "sse", "streamable-http"}
    if transport not in valid_transports:
        parser.error(
            "transport must be one of stdio, sse, or streamable-http (via --transport or MCP_TRANSPORT)"
        )

    host = env_host or args.bind
    port: int | None
    if env_port is not None:
        try:
            port = int(env_port)
        except ValueError:
            parser.error("MCP_PORT must be an integer")
    else:
        port = args.port

    mount = env_mount or args.mount

    if transport != "stdio":
        if host is None or port is None:
            parser.error(
                "--bind/--port or MCP_HOST/MCP_PORT are required when transport is not stdio"
            )
    if transport == "stdio" and mount:
        parser.error("--mount or MCP_MOUNT is not allowed when transport is stdio")

    run_config = RunConfig()
    if transport != "stdio":
        if host is not None:
            run_config.host = host
        if port is not None:
            run_config.port = port
        if mount:
            run_config.path = mount

    if args.overseerr_url:
        settings.overseerr_url = args.overseerr_url
    settings.default_language = args.language
    if args.no_cache:
        settings.cache_enabled = False
        overseerr_server.cache = ResponseCache(settings.cache_settings())

    log_level_name = _resolve_log_level(args.log_level)
    logging.basicConfig(level=getattr(logging, log_level_name.upper(), logging.INFO))

    overseerr_server.run(transport=transport, **run_config.to_kwargs())


__all__ = [
    "OverseerrServer",
    "RunConfig",
    "main",
    "overseerr_server",
    "server",
    "settings",
]
