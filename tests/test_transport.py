"""Unit tests for newline-delimited JSON framing."""

from __future__ import annotations

import io
import json

import anyio
import pytest
from conftest import MemoryByteStream, call_frame

from github_mcp.errors import TransportError
from github_mcp.server import ServerState
from github_mcp.transport import StdioTransport, StreamTransport, Transport, decode_frame, encode_frame

pytestmark = pytest.mark.unit


def test_decode_frame_requires_json_object() -> None:
    assert decode_frame(b'{"jsonrpc": "2.0"}') == {"jsonrpc": "2.0"}
    with pytest.raises(TransportError):
        decode_frame(b"[1, 2]")
    with pytest.raises(TransportError):
        decode_frame(b"{broken")
    with pytest.raises(TransportError):
        decode_frame(b"\xff\xfe")


def test_encode_frame_is_one_line() -> None:
    data = encode_frame({"text": "line one\nline two", "name": "é"})
    assert data.endswith(b"\n")
    assert data.count(b"\n") == 1
    assert json.loads(data) == {"text": "line one\nline two", "name": "é"}


def test_transport_base_requires_line_io() -> None:
    with pytest.raises(TypeError):
        Transport()

    class ReadOnly(Transport):
        async def _read_line(self):
            return None

    with pytest.raises(TypeError):
        ReadOnly()

@pytest.mark.anyio
async def test_stream_transport_reassembles_split_frames() -> None:
    stream = MemoryByteStream()
    transport = StreamTransport(stream)
    stream.feed(b'{"a": 1}\n{"b"')
    stream.feed(b": 2}\r\n\n")
    stream.close_input()

    assert await transport.receive() == {"a": 1}
    assert await transport.receive() == {"b": 2}
    assert await transport.receive() is None


@pytest.mark.anyio
async def test_stream_transport_rejects_oversized_frame() -> None:
    stream = MemoryByteStream()
    transport = StreamTransport(stream, max_frame_bytes=16)
    stream.feed(b'{"padding": "' + b"x" * 64 + b'"}\n')

    with pytest.raises(TransportError):
        await transport.receive()


@pytest.mark.anyio
async def test_stream_transport_send_writes_newline_frame() -> None:
    stream = MemoryByteStream()
    transport = StreamTransport(stream)
    await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}})
    assert stream.written == [b'{"jsonrpc":"2.0","id":1,"result":{}}\n']

    await transport.aclose()
    with pytest.raises(TransportError):
        await transport.send({"jsonrpc": "2.0", "id": 2, "result": {}})


@pytest.mark.anyio
async def test_stdio_transport_reads_until_eof() -> None:
    stdin = io.BytesIO(b'{"x": 1}\n\n{"y": 2}')
    stdout = io.BytesIO()
    transport = StdioTransport(stdin=stdin, stdout=stdout)

    assert await transport.receive() == {"x": 1}
    assert await transport.receive() == {"y": 2}
    assert await transport.receive() is None

    await transport.send({"ok": True})
    assert stdout.getvalue() == b'{"ok":true}\n'


@pytest.mark.anyio
async def test_stdio_transport_rejects_oversized_frame() -> None:
    stdin = io.BytesIO(b'{"padding": "' + b"x" * 64 + b'"}\n')
    transport = StdioTransport(stdin=stdin, stdout=io.BytesIO(), max_frame_bytes=16)

    with pytest.raises(TransportError):
        await transport.receive()


@pytest.mark.anyio
async def test_protocol_server_over_stream_transport(protocol_server) -> None:
    stream = MemoryByteStream()
    stream.feed(encode_frame(call_frame(1, "get_repo_info", {})))
    stream.feed(encode_frame({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}))

    async with anyio.create_task_group() as tg:
        tg.start_soon(protocol_server.serve, StreamTransport(stream))
        with anyio.fail_after(5):
            while len(stream.written) < 2:
                await anyio.sleep(0.01)
        stream.close_input()

    responses = [json.loads(chunk) for chunk in stream.written]
    assert [r["id"] for r in responses] == [1, 2]
    assert responses[0]["result"]["isError"] is False
    assert len(responses[1]["result"]["tools"]) == 8
    assert protocol_server.state is ServerState.CLOSED
    assert stream.closed


@pytest.mark.anyio
async def test_protocol_server_answers_every_frame_before_stdin_eof(protocol_server, backend) -> None:
    backend.delays["get_repository"] = 0.05
    stdin = io.BytesIO(
        encode_frame({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        + encode_frame(call_frame(2, "get_repo_info", {}))
        + encode_frame({"jsonrpc": "2.0", "id": 3, "method": "ping"})
    )
    stdout = io.BytesIO()

    with anyio.fail_after(5):
        await protocol_server.serve(StdioTransport(stdin=stdin, stdout=stdout))

    responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert [r["id"] for r in responses] == [1, 2, 3]
    assert responses[1]["result"]["isError"] is False
    assert protocol_server.state is ServerState.CLOSED
