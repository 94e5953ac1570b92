"""
Live response streams
Logs, stats, attach and exec output are handed to the caller as a DockerStream
"""

import json
import struct
import logging
from typing import Any, AsyncIterator, NamedTuple, Optional

import httpcore
import httpx

from .exceptions import DecodeError, StreamError, TransportError

logger = logging.getLogger(__name__)

STDIN = 0
STDOUT = 1
STDERR = 2

HEADER_SIZE = 8
READ_SIZE = 64 * 1024

# Raised by httpx responses and by upgraded httpcore connections
CONNECTION_ERRORS = (httpx.TransportError, httpcore.NetworkError, httpcore.TimeoutException, OSError)

MULTIPLEXED_CONTENT_TYPE = 'application/vnd.docker.multiplexed-stream'
RAW_CONTENT_TYPE = 'application/vnd.docker.raw-stream'


class Frame(NamedTuple):
    """One demultiplexed block of output"""
    stream: int
    data: bytes


def multiplexed_from_content_type(content_type: Optional[str]) -> Optional[bool]:
    """Daemons on API 1.42+ say whether a stream carries stdout/stderr framing"""
    if not content_type:
        return None
    if content_type.startswith(MULTIPLEXED_CONTENT_TYPE):
        return True
    if content_type.startswith(RAW_CONTENT_TYPE):
        return False
    return None


class DockerStream:
    """
    Byte stream from the daemon

    Iterating yields raw chunks in the order the daemon wrote them. When the
    daemon upgraded the connection (hijack) the stream is bidirectional and
    ``write`` sends bytes to the process's stdin.
    """

    def __init__(self, response=None, multiplexed: bool = False, network_stream=None):
        """
        Args:
            response: httpx response being streamed (None for an empty stream)
            multiplexed: Output uses the 8-byte stdout/stderr frame headers
            network_stream: Raw connection after a protocol upgrade
        """
        self._response = response
        self._network = network_stream
        self._chunks: Optional[AsyncIterator[bytes]] = None
        self._eof = response is None and network_stream is None
        self._closed = self._eof
        self.multiplexed = multiplexed

    @classmethod
    def empty(cls) -> 'DockerStream':
        """Already finished stream, used when the daemon sends no output"""
        return cls()

    def __repr__(self):
        kind = 'hijacked' if self.hijacked else 'stream'
        state = 'closed' if self._closed else 'open'
        return f"<DockerStream: {kind} {state}>"

    @property
    def hijacked(self) -> bool:
        return self._network is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def at_eof(self) -> bool:
        return self._eof

    async def read_chunk(self) -> bytes:
        """
        Read the next chunk

        Returns:
            Next chunk of bytes, or b'' once the stream has ended

        Raises:
            TransportError: If the connection drops before the daemon ends the stream
        """
        if self._eof:
            return b''

        data = b''
        try:
            if self._network is not None:
                data = await self._network.read(READ_SIZE)
            else:
                if self._chunks is None:
                    self._chunks = self._response.aiter_bytes()
                while not data:
                    data = await self._chunks.__anext__()
        except StopAsyncIteration:
            data = b''
        except CONNECTION_ERRORS as e:
            self._eof = True
            raise TransportError(f"Connection to Docker daemon lost mid-stream: {e}") from e

        if not data:
            self._eof = True
            logger.debug("Docker stream reached end of stream")
        return data

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        data = await self.read_chunk()
        if not data:
            raise StopAsyncIteration
        return data

    async def read(self) -> bytes:
        """Read everything left in the stream"""
        chunks = []
        async for chunk in self:
            chunks.append(chunk)
        return b''.join(chunks)

    async def frames(self) -> AsyncIterator[Frame]:
        """
        Demultiplex stdout/stderr output

        Each frame on the wire is a header (stream type byte, three zero
        bytes, big-endian uint32 payload length) followed by the payload.
        Non-multiplexed (TTY) output is yielded as stdout frames.
        """
        buf = bytearray()
        async for chunk in self:
            if not self.multiplexed:
                yield Frame(STDOUT, chunk)
                continue

            buf.extend(chunk)
            while len(buf) >= HEADER_SIZE:
                stream_type, length = struct.unpack('>BxxxL', bytes(buf[:HEADER_SIZE]))
                end = HEADER_SIZE + length
                if len(buf) < end:
                    break
                data = bytes(buf[HEADER_SIZE:end])
                del buf[:end]
                yield Frame(stream_type, data)

        if buf:
            raise StreamError(f"Stream ended inside a frame ({len(buf)} bytes left)")

    async def output(self, stdout: bool = True, stderr: bool = True) -> bytes:
        """
        Collect demultiplexed output

        Args:
            stdout: Include stdout
            stderr: Include stderr

        Returns:
            Concatenated output of the selected streams
        """
        wanted = set()
        if stdout:
            wanted.add(STDOUT)
        if stderr:
            wanted.add(STDERR)

        chunks = []
        async for frame in self.frames():
            if frame.stream in wanted:
                chunks.append(frame.data)
        return b''.join(chunks)

    async def lines(self) -> AsyncIterator[bytes]:
        """Yield newline separated lines (progress streams, stats)"""
        buf = b''
        async for chunk in self:
            buf += chunk
            while b'\n' in buf:
                line, buf = buf.split(b'\n', 1)
                if line.strip():
                    yield line
        if buf.strip():
            yield buf

    async def json(self) -> AsyncIterator[Any]:
        """Yield one decoded JSON document per line"""
        async for line in self.lines():
            try:
                yield json.loads(line.decode('utf-8'))
            except ValueError as e:
                raise DecodeError(f"Invalid JSON in stream: {e}", body=line) from e

    async def write(self, data: bytes):
        """
        Send bytes to the attached process's stdin

        Raises:
            StreamError: If the daemon did not upgrade the connection
        """
        if self._network is None:
            raise StreamError("Stream is read-only; start it with hijack to write stdin")
        if self._closed:
            raise StreamError("Stream is closed")
        try:
            await self._network.write(data)
        except CONNECTION_ERRORS as e:
            raise TransportError(f"Cannot write to Docker stream: {e}") from e

    async def aclose(self):
        """Close the stream; safe to call more than once"""
        if self._closed:
            return
        self._closed = True
        self._eof = True
        try:
            if self._network is not None:
                await self._network.aclose()
        finally:
            if self._response is not None:
                await self._response.aclose()
        logger.debug("Docker stream closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
