"""Shared pytest fixtures and test doubles."""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, Tuple

import anyio
import pytest
from anyio.abc import ByteStream

from github_mcp.backend import (
    CommitResult,
    DirectoryEntry,
    FileContent,
    Issue,
    IssueFilters,
    PullRequest,
    PullRequestFilters,
    RepositoryMetadata,
    SearchHit,
)
from github_mcp.config import ToolConfig
from github_mcp.dispatcher import Dispatcher
from github_mcp.main import create_registry
from github_mcp.server import ProtocolServer
from github_mcp.tools import ToolRegistry
from github_mcp.transport import Transport


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    if os.getenv("RUN_INTEGRATION_TESTS") == "1":
        return
    skip_marker = pytest.mark.skip(
        reason="Integration tests are disabled by default. Set RUN_INTEGRATION_TESTS=1."
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeBackend:
    """
    In-memory `GitHubBackend` that records every call.

    `errors` maps a method name to the exception it raises, `delays` to the
    seconds it sleeps first. `entered` / `gate` are optional anyio events set
    by a test to observe and hold an in-flight call.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.errors: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.entered: Optional[anyio.Event] = None
        self.gate: Optional[anyio.Event] = None

    async def _call(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if self.entered is not None:
            self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if method in self.delays:
            await anyio.sleep(self.delays[method])
        if method in self.errors:
            raise self.errors[method]

    async def get_repository(self, owner: str, name: str) -> RepositoryMetadata:
        await self._call("get_repository", owner, name)
        return RepositoryMetadata(full_name=f"{owner}/{name}", description="Test repo", stars=7)

    async def list_issues(self, owner: str, name: str, filters: IssueFilters) -> List[Issue]:
        await self._call("list_issues", owner, name, filters.state)
        return [Issue(number=1, title="First issue", state="open")]

    async def get_issue(self, owner: str, name: str, number: int) -> Issue:
        await self._call("get_issue", owner, name, number)
        return Issue(number=number, title="Crash on startup", state="open", author="octocat")

    async def list_pull_requests(
        self, owner: str, name: str, filters: PullRequestFilters
    ) -> List[PullRequest]:
        await self._call("list_pull_requests", owner, name, filters.state)
        return [PullRequest(number=5, title="Fix crash", state="open", head_ref="fix", base_ref="main")]

    async def read_file(self, owner: str, name: str, path: str, ref: Optional[str]) -> FileContent:
        await self._call("read_file", owner, name, path, ref)
        return FileContent(path=path, sha="abc123", size=5, content="hello", ref=ref)

    async def list_directory(
        self, owner: str, name: str, path: str, ref: Optional[str]
    ) -> List[DirectoryEntry]:
        await self._call("list_directory", owner, name, path, ref)
        return [DirectoryEntry(name="README.md", path="README.md", type="file", size=10)]

    async def search_code(self, owner: str, name: str, query: str) -> List[SearchHit]:
        await self._call("search_code", owner, name, query)
        return [SearchHit(name="main.py", path="src/main.py")]

    async def write_file(
        self,
        owner: str,
        name: str,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> CommitResult:
        await self._call("write_file", owner, name, path, content, message, sha)
        return CommitResult(path=path, content_sha="blob1", commit_sha="commit1", message=message)


class QueueTransport(Transport):
    """Transport fed and drained by the test through memory streams."""

    def __init__(self, max_frame_bytes: int = 1024) -> None:
        super().__init__(max_frame_bytes)
        self._in_send, self._in_receive = anyio.create_memory_object_stream(100)
        self._out_send, self._out_receive = anyio.create_memory_object_stream(100)
        self.sent: List[Dict[str, Any]] = []

    def feed(self, message: Dict[str, Any]) -> None:
        self.feed_raw(json.dumps(message).encode("utf-8"))

    def feed_raw(self, line: bytes) -> None:
        self._in_send.send_nowait(line)

    def close(self) -> None:
        self._in_send.close()

    async def next_response(self) -> Dict[str, Any]:
        with anyio.fail_after(5):
            return await self._out_receive.receive()

    async def _read_line(self) -> Optional[bytes]:
        try:
            return await self._in_receive.receive()
        except anyio.EndOfStream:
            return None

    async def _write(self, data: bytes) -> None:
        message = json.loads(data)
        self.sent.append(message)
        await self._out_send.send(message)


class MemoryByteStream(ByteStream):
    """Byte stream whose receive side is fed by the test; sends are recorded."""

    def __init__(self) -> None:
        self._send, self._receive = anyio.create_memory_object_stream(100)
        self.written: List[bytes] = []
        self.closed = False

    def feed(self, data: bytes) -> None:
        self._send.send_nowait(data)

    def close_input(self) -> None:
        self._send.close()

    async def receive(self, max_bytes: int = 65536) -> bytes:
        return await self._receive.receive()

    async def send(self, item: bytes) -> None:
        if self.closed:
            raise anyio.ClosedResourceError
        self.written.append(item)

    async def send_eof(self) -> None:
        self._send.close()

    async def aclose(self) -> None:
        self.closed = True
        self._send.close()
        self._receive.close()


def call_frame(message_id: Any, name: str, arguments: Any = None) -> Dict[str, Any]:
    params: Dict[str, Any] = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return {"jsonrpc": "2.0", "id": message_id, "method": "tools/call", "params": params}


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def tool_config() -> ToolConfig:
    return ToolConfig(default_owner="octo-org", default_repo="hello-world")


@pytest.fixture
def registry() -> ToolRegistry:
    return create_registry()


@pytest.fixture
def dispatcher(registry: ToolRegistry, backend: FakeBackend, tool_config: ToolConfig) -> Dispatcher:
    return Dispatcher(registry, backend, tool_config)


@pytest.fixture
def protocol_server(registry: ToolRegistry, dispatcher: Dispatcher) -> ProtocolServer:
    return ProtocolServer(registry, dispatcher)
