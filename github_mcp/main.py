from __future__ import annotations

import logging
import sys
from typing import Optional

import anyio
import pydantic
from anyio.abc import SocketStream

from .backend import GitHubBackend
from .config import Settings, get_settings
from .dispatcher import Dispatcher
from .github_client import GitHubClient
from .server import ProtocolServer
from .tools import ToolRegistry
from .tools import content_tools, issue_tools, repo_tools
from .transport import StdioTransport, StreamTransport

logger = logging.getLogger(__name__)


def create_registry() -> ToolRegistry:
    """Build the tool catalog. Registration order is the discovery order."""
    registry = ToolRegistry()

    # Register tool groups
    repo_tools.register_tools(registry)
    issue_tools.register_tools(registry)
    content_tools.register_tools(registry)

    return registry


def create_server(settings: Settings, backend: GitHubBackend) -> ProtocolServer:
    """
    Create the protocol server with all registered tools bound to `backend`.
    """
    registry = create_registry()
    dispatcher = Dispatcher(registry, backend, settings.tool_config())
    return ProtocolServer(registry, dispatcher)


async def run_stdio(settings: Settings) -> None:
    async with GitHubClient.from_settings(settings) as backend:
        server = create_server(settings, backend)
        await server.serve(StdioTransport(max_frame_bytes=settings.max_frame_bytes))


async def run_tcp(settings: Settings) -> None:
    """Accept TCP callers; each connection gets its own serialized session."""
    async with GitHubClient.from_settings(settings) as backend:
        listener = await anyio.create_tcp_listener(
            local_host=settings.server_host,
            local_port=settings.server_port,
        )
        logger.info("Listening on %s:%s", settings.server_host, settings.server_port)

        async def handle(stream: SocketStream) -> None:
            server = create_server(settings, backend)
            await server.serve(StreamTransport(stream, max_frame_bytes=settings.max_frame_bytes))

        await listener.serve(handle)


async def run_http(settings: Settings) -> None:
    from .http_server import run_http_server

    async with GitHubClient.from_settings(settings) as backend:
        server = create_server(settings, backend)
        await run_http_server(server, settings.server_host, settings.server_port)


def configure_logging(settings: Optional[Settings] = None) -> None:
    # stdout carries protocol frames, so logs always go to stderr.
    level = settings.log_level.upper() if settings else "INFO"
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """
    Entrypoint for running the MCP server.

    Supports three transport modes:
    - stdio: newline-delimited JSON-RPC over stdin/stdout (default)
    - tcp: the same framing over accepted TCP connections
    - http: HTTP/SSE transport behind reverse proxy
    """
    try:
        settings = get_settings()
    except pydantic.ValidationError as exc:
        configure_logging()
        logger.error("Invalid configuration (is GITHUB_TOKEN set?):\n%s", exc)
        sys.exit(1)

    configure_logging(settings)

    if settings.transport == "http":
        anyio.run(run_http, settings)
    elif settings.transport == "tcp":
        anyio.run(run_tcp, settings)
    elif settings.transport == "stdio":
        anyio.run(run_stdio, settings)
    else:
        logger.error("Unknown transport '%s'; expected stdio, tcp or http", settings.transport)
        sys.exit(1)


if __name__ == "__main__":
    main()
