"""
Newline-delimited JSON framing over a duplex byte channel.

A frame is one JSON object encoded as UTF-8 on a single line. Reading returns
`None` once the peer has closed its side; anything that cannot be decoded as
a JSON object raises `TransportError`, which ends the connection.
"""

from __future__ import annotations

import abc
import json
import sys
from typing import Any, BinaryIO, Dict, Optional

import anyio
import anyio.to_thread
from anyio.abc import ByteStream
from anyio.streams.buffered import BufferedByteReceiveStream

from .errors import TransportError

DEFAULT_MAX_FRAME_BYTES = 4 * 1024 * 1024


def decode_frame(line: bytes) -> Dict[str, Any]:
    try:
        message = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise TransportError(f"Parse error: {exc}") from exc
    if not isinstance(message, dict):
        raise TransportError("Parse error: frame is not a JSON object")
    return message


def encode_frame(message: Dict[str, Any]) -> bytes:
    return json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8") + b"\n"


class Transport(abc.ABC):
    """
    Base class for line-framed transports.

    Subclasses supply `_read_line`, `_write` and `aclose`; framing and
    decoding live here.
    """

    def __init__(self, max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES) -> None:
        self.max_frame_bytes = max_frame_bytes

    async def receive(self) -> Optional[Dict[str, Any]]:
        while True:
            line = await self._read_line()
            if line is None:
                return None
            if len(line) > self.max_frame_bytes:
                raise TransportError(f"Frame exceeds {self.max_frame_bytes} bytes")
            # Blank keep-alive lines carry no frame.
            if line.strip():
                return decode_frame(line)

    async def send(self, message: Dict[str, Any]) -> None:
        await self._write(encode_frame(message))

    @abc.abstractmethod
    async def _read_line(self) -> Optional[bytes]:
        """Next raw line without its terminator, or None at end of input."""

    @abc.abstractmethod
    async def _write(self, data: bytes) -> None:
        """Write one encoded frame."""

    async def aclose(self) -> None:
        pass


class StdioTransport(Transport):
    """Frames over the process's standard input and output."""

    def __init__(
        self,
        stdin: Optional[BinaryIO] = None,
        stdout: Optional[BinaryIO] = None,
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
    ) -> None:
        super().__init__(max_frame_bytes)
        self._stdin = stdin or sys.stdin.buffer
        self._stdout = anyio.wrap_file(stdout or sys.stdout.buffer)

    async def _read_line(self) -> Optional[bytes]:
        # One byte past the limit is enough to detect an oversized frame.
        line = await anyio.to_thread.run_sync(
            self._stdin.readline, self.max_frame_bytes + 1, abandon_on_cancel=True
        )
        if not line:
            return None
        if not line.endswith(b"\n") and len(line) > self.max_frame_bytes:
            return line
        return line.rstrip(b"\r\n")

    async def _write(self, data: bytes) -> None:
        try:
            await self._stdout.write(data)
            await self._stdout.flush()
        except OSError as exc:
            raise TransportError(f"Cannot write to stdout: {exc}") from exc


class StreamTransport(Transport):
    """Frames over any anyio byte stream, e.g. an accepted TCP connection."""

    def __init__(self, stream: ByteStream, max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES) -> None:
        super().__init__(max_frame_bytes)
        self._stream = stream
        self._buffered = BufferedByteReceiveStream(stream)

    async def _read_line(self) -> Optional[bytes]:
        try:
            line = await self._buffered.receive_until(b"\n", self.max_frame_bytes)
        except (
            anyio.IncompleteRead,
            anyio.EndOfStream,
            anyio.ClosedResourceError,
            anyio.BrokenResourceError,
        ):
            return None
        except anyio.DelimiterNotFound as exc:
            raise TransportError(f"Frame exceeds {self.max_frame_bytes} bytes") from exc
        return line.rstrip(b"\r")

    async def _write(self, data: bytes) -> None:
        try:
            await self._stream.send(data)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
            raise TransportError(f"Connection closed: {exc}") from exc

    async def aclose(self) -> None:
        await self._stream.aclose()
