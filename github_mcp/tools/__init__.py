"""
Tool registration utilities.

Each module in this package exposes a `register_tools(registry)` function that
adds its tools to the central registry used by the MCP server.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List

from mcp import types

from ..backend import GitHubBackend
from ..config import ToolConfig
from ..errors import DuplicateToolError, UnknownToolError
from ..schema import SchemaNode

ToolHandler = Callable[[Dict[str, Any], GitHubBackend, ToolConfig], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: SchemaNode

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool name must be non-empty")
        if self.input_schema.kind != "object":
            raise ValueError(f"Tool '{self.name}' input schema must be an object schema")

    def to_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema.to_json_schema(),
        )


@dataclass(frozen=True)
class RegisteredTool:
    definition: ToolDefinition
    handler: ToolHandler


class ToolRegistry:
    """
    In-memory registry mapping MCP tool names to their definitions and handlers.

    Populated once at startup; afterwards it is only read.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        if definition.name in self._tools:
            raise DuplicateToolError(definition.name)
        self._tools[definition.name] = RegisteredTool(definition=definition, handler=handler)

    def add_tool(self, tool: types.Tool, handler: ToolHandler) -> None:
        self.register(
            ToolDefinition(
                name=tool.name,
                description=tool.description or "",
                input_schema=SchemaNode.from_json_schema(tool.inputSchema),
            ),
            handler,
        )

    def list(self) -> List[ToolDefinition]:
        return [rt.definition for rt in self._tools.values()]

    def list_tools(self) -> List[types.Tool]:
        return [definition.to_tool() for definition in self.list()]

    def lookup(self, name: str) -> ToolDefinition:
        return self._get(name).definition

    def get_handler(self, name: str) -> ToolHandler:
        return self._get(name).handler

    def names(self) -> List[str]:
        return list(self._tools)

    def _get(self, name: str) -> RegisteredTool:
        if name not in self._tools:
            raise UnknownToolError(name)
        return self._tools[name]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
