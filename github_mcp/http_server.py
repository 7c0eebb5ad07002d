from __future__ import annotations

import json
import logging
from typing import AsyncIterator

import anyio
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from mcp import types

from .server import ProtocolServer, error_frame

logger = logging.getLogger(__name__)


def create_http_app(protocol_server: ProtocolServer) -> FastAPI:
    """
    Create FastAPI app that wraps the protocol server for HTTP/SSE transport.

    - Client sends POST requests with one JSON-RPC message in the body
    - Server responds with an SSE stream holding the single JSON-RPC response
    - Each SSE event format: "data: <json-rpc-response>\\n\\n"

    Requests are answered one at a time, the same discipline the stdio
    transport follows.
    """
    app = FastAPI(
        title="GitHub MCP Server",
        version=protocol_server.version,
        description="MCP tool server for the GitHub REST API",
    )
    dispatch_lock = anyio.Lock()

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "service": protocol_server.name}

    @app.get("/")
    async def root():
        """Root endpoint with service info."""
        return {
            "service": protocol_server.name,
            "version": protocol_server.version,
            "protocol": "mcp",
            "transport": "http/sse",
            "endpoints": {
                "health": "/health",
                "mcp_stream": "/mcp/stream",
            },
        }

    @app.post("/mcp/stream")
    async def mcp_stream(request: Request):
        """
        MCP SSE stream endpoint.

        Supported MCP methods: initialize, ping, tools/list, tools/call.
        Notifications are acknowledged with 202 and no body.
        """
        body = await request.body()
        if not body:
            return JSONResponse(
                error_frame(None, types.INVALID_REQUEST, "Invalid Request: empty body"),
                status_code=400,
            )
        try:
            message = json.loads(body)
        except ValueError as e:
            return JSONResponse(
                error_frame(None, types.PARSE_ERROR, f"Parse error: {e}"),
                status_code=400,
            )
        if not isinstance(message, dict):
            return JSONResponse(
                error_frame(None, types.INVALID_REQUEST, "Invalid Request: expected a JSON object"),
                status_code=400,
            )

        async with dispatch_lock:
            response = await protocol_server.handle_message(message)

        if response is None:
            return Response(status_code=202)
        if "error" in response and response["error"]["code"] == types.INVALID_REQUEST:
            return JSONResponse(response, status_code=400)

        async def generate_sse() -> AsyncIterator[str]:
            yield f"data: {json.dumps(response)}\n\n"

        return StreamingResponse(
            generate_sse(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering
            },
        )

    return app


async def run_http_server(protocol_server: ProtocolServer, host: str, port: int) -> None:
    """Run the HTTP server using uvicorn."""
    import uvicorn

    app = create_http_app(protocol_server)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=True,
    )
    server = uvicorn.Server(config)
    await server.serve()
