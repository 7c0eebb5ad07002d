from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from mcp import types
from pydantic import BaseModel

from .backend import GitHubBackend
from .config import ToolConfig
from .errors import BackendError, ToolServerError, UnknownToolError, ValidationError
from .tools import ToolRegistry
from .validator import validate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationRequest:
    tool_name: str
    arguments: Any = field(default_factory=dict)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


def render_text(value: Any) -> str:
    """Canonical text form of a handler result: pretty-printed JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(_jsonable(value), indent=2, ensure_ascii=False, default=str)


def text_result(text: str, *, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
    )


class Dispatcher:
    """
    Routes invocation requests to tool handlers.

    Every tool-level failure (unknown tool, invalid arguments, backend
    rejection, unexpected handler exception) comes back as a
    `CallToolResult` with `isError=True`; nothing raised by a tool reaches
    the transport.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        backend: GitHubBackend,
        config: ToolConfig,
    ) -> None:
        self._registry = registry
        self._backend = backend
        self._config = config

    async def dispatch(self, request: InvocationRequest) -> types.CallToolResult:
        name = request.tool_name
        logger.debug("Dispatching tool %s", name)

        try:
            definition = self._registry.lookup(name)
        except UnknownToolError as exc:
            available = ", ".join(self._registry.names()) or "none"
            return self._error(name, exc, f"{exc}. Available tools: {available}")

        try:
            validate(definition.input_schema, request.arguments)
        except ValidationError as exc:
            return self._error(name, exc, f"Invalid arguments for tool '{name}': {exc}")

        handler = self._registry.get_handler(name)
        arguments: Dict[str, Any] = request.arguments
        try:
            result = await handler(arguments, self._backend, self._config)
        except ValidationError as exc:
            return self._error(name, exc, f"Invalid arguments for tool '{name}': {exc}")
        except BackendError as exc:
            return self._error(name, exc, f"GitHub request failed for tool '{name}': {exc}")
        except Exception as exc:
            logger.exception("Error executing tool %s", name)
            return text_result(f"Tool '{name}' failed: {exc}", is_error=True)

        return text_result(render_text(result))

    def _error(self, name: str, exc: ToolServerError, text: str) -> types.CallToolResult:
        error = exc.to_protocol_error()
        logger.warning(
            "Tool %s failed (%s): %s detail=%s",
            name,
            error.code.value,
            error.message,
            error.detail,
        )
        return text_result(text, is_error=True)
