from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any, Optional, Sequence, Tuple, Union

PathItem = Union[str, int]


class ErrorKind(str, Enum):
    UNKNOWN_TOOL = "unknown_tool"
    VALIDATION = "validation"
    BACKEND = "backend"
    TRANSPORT = "transport"
    DUPLICATE_TOOL = "duplicate_tool"


@dataclass(frozen=True)
class ProtocolError:
    """
    Structured error as surfaced to the caller.

    Tool-level errors are rendered into the text of an error-flagged
    `CallToolResult`; transport errors become JSON-RPC error frames.
    """

    code: ErrorKind
    message: str
    detail: Optional[Any] = field(default=None)


class ToolServerError(Exception):
    """Base class for every error raised by the tool server."""

    kind: ErrorKind

    def to_protocol_error(self) -> ProtocolError:
        return ProtocolError(code=self.kind, message=str(self))


class DuplicateToolError(ToolServerError):
    kind = ErrorKind.DUPLICATE_TOOL

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' already registered")
        self.name = name


class UnknownToolError(ToolServerError, KeyError):
    kind = ErrorKind.UNKNOWN_TOOL

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool '{name}'")
        self.name = name

    # KeyError.__str__ would repr() the message.
    def __str__(self) -> str:
        return self.args[0]

    def to_protocol_error(self) -> ProtocolError:
        return ProtocolError(code=self.kind, message=str(self), detail={"tool": self.name})


class ValidationError(ToolServerError, ValueError):
    """
    Argument shape mismatch.

    `path` is the sequence of property names / array indexes leading to the
    offending value; it is empty when the top-level value itself is wrong.
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, path: Sequence[PathItem], reason: str) -> None:
        self.path: Tuple[PathItem, ...] = tuple(path)
        self.reason = reason
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.path:
            return self.reason
        return f"{self.reason} (at {format_path(self.path)})"

    def to_protocol_error(self) -> ProtocolError:
        return ProtocolError(
            code=self.kind,
            message=str(self),
            detail={"path": list(self.path), "reason": self.reason},
        )


class BackendError(ToolServerError):
    """The external system rejected or failed a call."""

    kind = ErrorKind.BACKEND

    def __init__(self, status_code: Optional[int], message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(self._render())

    def _render(self) -> str:
        if self.status_code is None:
            return self.message
        try:
            phrase = HTTPStatus(self.status_code).phrase
        except ValueError:
            return f"{self.status_code}: {self.message}"
        return f"{self.status_code} {phrase}: {self.message}"

    def to_protocol_error(self) -> ProtocolError:
        return ProtocolError(
            code=self.kind,
            message=str(self),
            detail={"status_code": self.status_code},
        )


class TransportError(ToolServerError):
    """Malformed frame or decode failure. Fatal for the connection."""

    kind = ErrorKind.TRANSPORT


def format_path(path: Sequence[PathItem]) -> str:
    """Render `("files", 0, "name")` as `files[0].name`."""
    rendered = ""
    for item in path:
        if isinstance(item, int):
            rendered += f"[{item}]"
        elif rendered:
            rendered += f".{item}"
        else:
            rendered = item
    return rendered
