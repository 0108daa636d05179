"""
Streaming content decompression.

Supports gzip, deflate, and brotli (br) encodings.
"""

from __future__ import annotations

import zlib
from typing import Protocol

import brotli

from .errors import ProtocolError


SUPPORTED_ENCODINGS = ("gzip", "deflate", "br")
DEFAULT_ACCEPT_ENCODING = "gzip, deflate, br"


class RawStream(Protocol):
    def read(self, size: int = -1) -> bytes: ...

    def close(self) -> None: ...


class _Decoder(Protocol):
    def feed(self, data: bytes) -> bytes: ...

    def flush(self) -> bytes: ...


class _ZlibDecoder:
    def __init__(self, encoding: str) -> None:
        self._encoding = encoding
        self._obj: zlib._Decompress | None = None
        self._fed = False
        if encoding == "gzip":
            self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)

    def feed(self, data: bytes) -> bytes:
        if self._obj is None:
            # Deflate comes both raw and zlib-wrapped; sniff the zlib header.
            if len(data) >= 2 and data[0] & 0x0F == 8 and ((data[0] << 8) | data[1]) % 31 == 0:
                self._obj = zlib.decompressobj()
            else:
                self._obj = zlib.decompressobj(-zlib.MAX_WBITS)
        self._fed = True
        try:
            return self._obj.decompress(data)
        except zlib.error as exc:
            raise ProtocolError(f"Failed to decode {self._encoding} body: {exc}") from exc

    def flush(self) -> bytes:
        if self._obj is None:
            return b""
        data = self._obj.flush()
        if self._fed and not self._obj.eof:
            raise ProtocolError(f"Truncated {self._encoding} body")
        return data


class _BrotliDecoder:
    def __init__(self) -> None:
        self._obj = brotli.Decompressor()
        self._fed = False

    def feed(self, data: bytes) -> bytes:
        self._fed = True
        try:
            return self._obj.process(data)
        except brotli.error as exc:
            raise ProtocolError(f"Failed to decode br body: {exc}") from exc

    def flush(self) -> bytes:
        if self._fed and not self._obj.is_finished():
            raise ProtocolError("Truncated br body")
        return b""


def _make_decoder(encoding: str) -> _Decoder | None:
    if encoding in ("gzip", "deflate"):
        return _ZlibDecoder(encoding)
    if encoding == "br":
        return _BrotliDecoder()
    return None


def parse_content_encoding(content_encoding: str | None) -> list[str]:
    """
    Return the codings to undo, in decoding order.

    Per HTTP, codings are listed in the order they were applied, so they are
    undone in reverse. ``identity`` and unknown codings are dropped.
    """
    if not content_encoding:
        return []
    codings = [c.strip().lower() for c in content_encoding.split(",")]
    return [c for c in reversed(codings) if c in SUPPORTED_ENCODINGS]


class DecodingReader:
    """
    Wraps a raw body stream and yields decoded bytes as they are read.
    Closing the reader closes the wrapped stream.
    """

    def __init__(self, source: RawStream, content_encoding: str, chunk_size: int = 8192) -> None:
        self._source = source
        self._decoders = [d for d in map(_make_decoder, parse_content_encoding(content_encoding)) if d]
        self._chunk_size = chunk_size
        self._pending = b""
        self._eof = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _decode(self, data: bytes, final: bool) -> bytes:
        for decoder in self._decoders:
            data = decoder.feed(data) if data else b""
            if final:
                data += decoder.flush()
        return data

    def _fill(self) -> bool:
        raw = self._source.read(self._chunk_size)
        if not raw:
            self._eof = True
            self._pending += self._decode(b"", final=True)
            return False
        self._pending += self._decode(raw, final=False)
        return True

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            return b""
        if size is None or size < 0:
            while not self._eof:
                self._fill()
            data, self._pending = self._pending, b""
            return data
        while len(self._pending) < size and not self._eof:
            self._fill()
        data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._pending = b""
            self._source.close()


def get_accept_encoding(auto_decompress: bool = True) -> str:
    """Accept-Encoding value to advertise for the given decompression setting."""
    if not auto_decompress:
        return "identity"
    return DEFAULT_ACCEPT_ENCODING
