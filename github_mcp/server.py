from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Optional, Union

import anyio
from anyio import CancelScope
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp import types

from .dispatcher import Dispatcher, InvocationRequest
from .errors import TransportError
from .tools import ToolRegistry
from .transport import Transport

logger = logging.getLogger(__name__)

SERVER_NAME = "github-mcp-server"
SERVER_VERSION = "0.1.0"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

Frame = Union[Dict[str, Any], TransportError]


class ServerState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_REQUEST = "awaiting_request"
    PROCESSING = "processing"
    CLOSED = "closed"


def result_frame(message_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": message_id, "result": result}


def error_frame(message_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": message_id,
        "error": {"code": code, "message": message},
    }


class ProtocolServer:
    """
    JSON-RPC 2.0 front end for the tool catalog.

    Answers `initialize`, `ping`, `tools/list` (discovery) and `tools/call`
    (invocation). Over a `Transport`, frames are processed strictly one at a
    time, so every request gets exactly one response and responses leave in
    the order the requests arrived.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        dispatcher: Dispatcher,
        *,
        name: str = SERVER_NAME,
        version: str = SERVER_VERSION,
        backlog: int = 16,
    ) -> None:
        self.name = name
        self.version = version
        self._registry = registry
        self._dispatcher = dispatcher
        self._backlog = backlog
        self.state = ServerState.IDLE

    def _set_state(self, state: ServerState) -> None:
        if self.state is ServerState.CLOSED:
            return
        logger.debug("Server state %s -> %s", self.state.value, state.value)
        self.state = state

    async def serve(self, transport: Transport) -> None:
        """
        Serve one caller until its transport closes.

        A reader task keeps parsing incoming frames while the current request
        is being processed; processing itself is serialized. When the input
        side closes, every frame already received is still answered. When the
        output side fails, the in-flight request is cancelled and nothing more
        is written.
        """
        send_stream, receive_stream = anyio.create_memory_object_stream(self._backlog)
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._process_frames, transport, receive_stream, tg.cancel_scope)
                if await self._read_frames(transport, send_stream):
                    logger.info("Transport input closed by peer")
        finally:
            self._set_state(ServerState.CLOSED)
            await transport.aclose()

    async def _read_frames(
        self,
        transport: Transport,
        send_stream: "MemoryObjectSendStream[Frame]",
    ) -> bool:
        """Pump frames into the queue. Returns True when the peer closed."""
        async with send_stream:
            while True:
                try:
                    message = await transport.receive()
                except TransportError as exc:
                    await send_stream.send(exc)
                    return False
                if message is None:
                    return True
                await send_stream.send(message)

    async def _process_frames(
        self,
        transport: Transport,
        receive_stream: "MemoryObjectReceiveStream[Frame]",
        cancel_scope: CancelScope,
    ) -> None:
        async with receive_stream:
            self._set_state(ServerState.AWAITING_REQUEST)
            async for frame in receive_stream:
                if isinstance(frame, TransportError):
                    logger.warning("Closing connection after malformed frame: %s", frame)
                    frame_error = error_frame(None, types.PARSE_ERROR, str(frame))
                    await self._send(transport, frame_error, cancel_scope)
                    break

                self._set_state(ServerState.PROCESSING)
                response = await self.handle_message(frame)
                if response is not None:
                    await self._send(transport, response, cancel_scope)
                if self.state is ServerState.CLOSED:
                    break
                self._set_state(ServerState.IDLE)
                self._set_state(ServerState.AWAITING_REQUEST)
        cancel_scope.cancel()

    async def _send(
        self,
        transport: Transport,
        frame: Dict[str, Any],
        cancel_scope: CancelScope,
    ) -> None:
        if self.state is ServerState.CLOSED:
            return
        try:
            await transport.send(frame)
        except TransportError as exc:
            logger.warning("Failed to write response: %s", exc)
            self._set_state(ServerState.CLOSED)
            cancel_scope.cancel()

    async def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Answer one decoded frame.

        Returns the response frame, or None for notifications and for
        responses sent by the client.
        """
        message_id = message.get("id")
        is_notification = "id" not in message

        if message.get("jsonrpc") != "2.0":
            if is_notification:
                logger.debug("Ignoring notification with invalid envelope: %s", message)
                return None
            return error_frame(
                message_id, types.INVALID_REQUEST, "Invalid Request: jsonrpc must be '2.0'"
            )

        method = message.get("method")
        if not isinstance(method, str) or not method:
            if "result" in message or "error" in message:
                logger.debug("Ignoring client response frame id=%s", message_id)
                return None
            if is_notification:
                logger.debug("Ignoring notification without method: %s", message)
                return None
            return error_frame(
                message_id, types.INVALID_REQUEST, "Invalid Request: method is required"
            )

        if is_notification:
            logger.debug("Received notification %s", method)
            return None

        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return error_frame(
                message_id, types.INVALID_PARAMS, "Invalid params: expected an object"
            )

        try:
            if method == "initialize":
                return result_frame(message_id, self._initialize(params))
            elif method == "ping":
                return result_frame(message_id, {})
            elif method == "tools/list":
                tools = self._registry.list_tools()
                return result_frame(
                    message_id,
                    {"tools": [tool.model_dump(by_alias=True, exclude_none=True) for tool in tools]},
                )
            elif method == "tools/call":
                tool_name = params.get("name")
                if not isinstance(tool_name, str) or not tool_name:
                    return error_frame(
                        message_id, types.INVALID_PARAMS, "Invalid params: 'name' is required"
                    )
                arguments = params.get("arguments")
                request = InvocationRequest(
                    tool_name=tool_name,
                    arguments=arguments if arguments is not None else {},
                )
                result = await self._dispatcher.dispatch(request)
                return result_frame(message_id, result.model_dump(by_alias=True, exclude_none=True))
            else:
                return error_frame(message_id, types.METHOD_NOT_FOUND, f"Method not found: {method}")
        except Exception as e:
            logger.exception("Error handling MCP method %s", method)
            return error_frame(message_id, types.INTERNAL_ERROR, f"Internal error: {e}")

    def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        if requested in SUPPORTED_PROTOCOL_VERSIONS:
            version = requested
        else:
            version = SUPPORTED_PROTOCOL_VERSIONS[-1]
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.name, "version": self.version},
        }
