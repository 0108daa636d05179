from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from .errors import ProtocolError

if TYPE_CHECKING:
    import socket
    import ssl


DEFAULT_CHUNK_SIZE = 8192


class SocketBody:
    """
    Raw HTTP/1.1 response body read straight off a socket.

    The framing (chunked, Content-Length, or until the peer closes) is fixed at
    construction. The body owns the socket: closing the body closes it.
    """

    def __init__(
        self,
        sock: socket.socket | ssl.SSLSocket,
        content_length: int | None,
        chunked: bool,
        pending: bytes = b"",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._sock = sock
        self._content_length = content_length
        self._chunked = chunked
        # Bytes already pulled off the socket while parsing the head.
        self._wire = bytearray(pending)
        self._chunk_size = chunk_size
        self._closed = False
        self._pending = b""
        self._chunks: Iterator[bytes] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left when ``size`` is negative."""
        if self._closed:
            return b""
        if self._chunks is None:
            self._chunks = self._iter_body()

        if size is None or size < 0:
            parts = [self._pending]
            self._pending = b""
            parts.extend(self._chunks)
            return b"".join(parts)

        while len(self._pending) < size:
            chunk = next(self._chunks, b"")
            if not chunk:
                break
            self._pending += chunk
        data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def _iter_body(self) -> Iterator[bytes]:
        if self._chunked:
            return self._iter_chunked()
        if self._content_length is not None:
            return self._iter_content_length()
        return self._iter_until_close()

    def _iter_chunked(self) -> Iterator[bytes]:
        """Iterate over chunked transfer encoding."""
        while True:
            line = self._readline()
            if not line:
                raise ProtocolError("Unexpected EOF while reading chunk size")
            try:
                size = int(line.split(b";", 1)[0].strip(), 16)
            except ValueError as exc:
                raise ProtocolError(f"Invalid chunk size line: {line!r}") from exc

            if size == 0:
                # Trailers, then the terminating empty line.
                while self._readline() not in (b"\r\n", b"\n", b""):
                    pass
                return

            remaining = size
            while remaining > 0:
                data = self._recv(min(remaining, self._chunk_size))
                if not data:
                    raise ProtocolError("Unexpected EOF while reading chunk")
                remaining -= len(data)
                yield data
            self._read_exact(2)

    def _iter_content_length(self) -> Iterator[bytes]:
        """Iterate with known content length."""
        assert self._content_length is not None
        remaining = self._content_length
        while remaining > 0:
            data = self._recv(min(remaining, self._chunk_size))
            if not data:
                raise ProtocolError("Unexpected EOF while reading body")
            remaining -= len(data)
            yield data

    def _iter_until_close(self) -> Iterator[bytes]:
        """Iterate until connection closes."""
        while True:
            data = self._recv(self._chunk_size)
            if not data:
                return
            yield data

    def _recv(self, n: int) -> bytes:
        if self._wire:
            data = bytes(self._wire[:n])
            del self._wire[:n]
            return data
        return self._sock.recv(n)

    def _readline(self) -> bytes:
        buf = bytearray()
        while True:
            ch = self._recv(1)
            if not ch:
                break
            buf.extend(ch)
            if buf.endswith(b"\n"):
                break
        return bytes(buf)

    def _read_exact(self, n: int) -> bytes:
        remaining = n
        chunks: list[bytes] = []
        while remaining > 0:
            chunk = self._recv(remaining)
            if not chunk:
                raise ProtocolError("Unexpected EOF while reading body")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def close(self) -> None:
        """Close the body and release the socket."""
        if not self._closed:
            self._closed = True
            self._pending = b""
            self._chunks = None
            self._sock.close()

    def __enter__(self) -> SocketBody:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<SocketBody [{state}]>"
