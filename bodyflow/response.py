from __future__ import annotations

import io
import json as json_lib
import logging
import os
from collections.abc import Iterator
from typing import Any
from xml.etree import ElementTree

from .codec import (
    ByteStream,
    CharsetReader,
    declared_xml_encoding,
    decode_json_value,
    decode_xml_element,
    needs_transcoding,
)
from .errors import BodyflowError
from .exchange import Exchange
from .headers import Headers

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 65536
XML_SNIFF_SIZE = 1024


class _PrefixedReader:
    """Replays bytes already read from a stream before reading the rest of it."""

    def __init__(self, prefix: bytes, stream: ByteStream) -> None:
        self._prefix = prefix
        self._stream = stream

    def read(self, size: int = -1) -> bytes:
        if not self._prefix:
            return self._stream.read(size)
        if size is None or size < 0:
            data, self._prefix = self._prefix, b""
            return data + self._stream.read()
        data, self._prefix = self._prefix[:size], self._prefix[size:]
        return data


class Response:
    """
    Wraps a completed exchange and manages its single-use body.

    The body is read from the network at most once. ``content``/``text``
    materialize it into an internal buffer that every later accessor reads
    from; ``json()``, ``xml()`` and ``download_to_file()`` stream it and
    release the connection when done. A Response built from a failed
    exchange carries only ``error``.
    """

    def __init__(self, exchange: Exchange | None, error: BaseException | None = None) -> None:
        if exchange is None and error is None:
            raise ValueError("Response needs either an exchange or an error")
        if exchange is not None and error is not None:
            exchange.body.close()
        self.error = error
        self.raw: Exchange | None = None
        self.ok = False
        self.status_code = 0
        self.reason = ""
        self.http_version = ""
        self.headers = Headers()
        self._buffer: bytes | None = None
        self._failure: BaseException | None = None
        self._closed = True
        if error is not None:
            return

        assert exchange is not None
        self.raw = exchange
        self.status_code = exchange.status_code
        self.ok = 200 <= exchange.status_code < 300
        self.reason = exchange.reason
        self.http_version = exchange.http_version
        self.headers = exchange.headers
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def buffered(self) -> bool:
        return self._buffer is not None

    # Raw pass-through

    def read(self, size: int = -1) -> bytes:
        """Read from the raw body. Returns ``b""`` once the body has been closed."""
        self._raise_if_failed()
        if self._closed:
            return b""
        assert self.raw is not None
        return self.raw.body.read(size)

    def close(self) -> None:
        """Release the raw body. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        assert self.raw is not None
        logger.debug("Closing response body [%s]", self.status_code)
        self.raw.body.close()

    def __enter__(self) -> Response:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _reader(self) -> ByteStream:
        # Buffered reads get a fresh view so the buffer is never drained.
        if self._buffer is not None:
            return io.BytesIO(self._buffer)
        return self

    def _raise_if_failed(self) -> None:
        if self.error is not None:
            raise self.error

    # Streaming consumers

    def iter_bytes(self, chunk_size: int = COPY_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks, closing the raw body once exhausted."""
        self._raise_if_failed()
        reader = self._reader()
        try:
            while True:
                chunk = reader.read(chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.close()

    def download_to_file(self, path: str | os.PathLike[str], chunk_size: int = COPY_CHUNK_SIZE) -> int:
        """
        Stream the body into ``path``, creating or truncating it.

        The body is not buffered in memory. If the file cannot be created the
        error is raised and the body is left untouched; once copying starts,
        both the file and the raw body are closed whether or not it succeeds.
        Returns the number of bytes written.
        """
        self._raise_if_failed()
        fd = open(path, "wb")
        written = 0
        try:
            with fd:
                for chunk in self.iter_bytes(chunk_size):
                    fd.write(chunk)
                    written += len(chunk)
        finally:
            self.close()
        logger.debug("Downloaded %d bytes to %s", written, path)
        return written

    def json(self, target: Any = None) -> Any:
        """
        Decode the body as JSON into ``target`` (see ``bodyflow.codec``).

        An empty body yields ``None``. Malformed JSON raises ``json.JSONDecodeError``.
        """
        self._raise_if_failed()
        try:
            data = self._reader().read()
        finally:
            self.close()
        if not data.strip():
            return None
        return decode_json_value(json_lib.loads(data), target)

    def xml(
        self,
        target: Any = None,
        charset_reader: CharsetReader | None = None,
        chunk_size: int = COPY_CHUNK_SIZE,
    ) -> Any:
        """
        Incrementally parse the body as XML and decode the root element into ``target``.

        ``charset_reader(charset, stream)`` is used when the document declares a
        non-UTF-8 encoding and must return a stream of UTF-8 bytes. An empty body
        yields ``None``; malformed XML raises ``xml.etree.ElementTree.ParseError``.
        """
        self._raise_if_failed()
        try:
            reader = self._reader()
            head = reader.read(XML_SNIFF_SIZE)
            source: ByteStream = _PrefixedReader(head, reader)
            encoding = None
            if charset_reader is not None:
                charset = declared_xml_encoding(head) or self._charset()
                if charset and needs_transcoding(charset):
                    source = charset_reader(charset, source)
                    encoding = "utf-8"

            parser = ElementTree.XMLParser(encoding=encoding)
            seen = False
            while True:
                chunk = source.read(chunk_size)
                if not chunk:
                    break
                seen = seen or bool(chunk.strip())
                parser.feed(chunk)
            if not seen:
                return None
            root = parser.close()
        finally:
            self.close()
        return decode_xml_element(root, target)

    # Buffering

    def ensure_buffered(self) -> None:
        """
        Read the whole raw body into the internal buffer and close it.

        Does nothing when already buffered. If reading fails the partial data is
        dropped and the error is raised, now and on any later call.
        """
        self._raise_if_failed()
        if self._buffer is not None:
            return
        if self._failure is not None:
            raise self._failure

        assert self.raw is not None
        hint = self.raw.content_length
        buf = bytearray()
        try:
            if hint > 0:
                buf += self.read(hint)
            while True:
                chunk = self.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                buf += chunk
        except (OSError, BodyflowError) as exc:
            self._failure = exc
            logger.debug("Buffering response body failed: %s", exc)
            raise
        finally:
            self.close()
        self._buffer = bytes(buf)

    def read_content(self) -> bytes:
        """Whole body as bytes; raises if it cannot be read."""
        self.ensure_buffered()
        assert self._buffer is not None
        return self._buffer

    def read_text(self) -> str:
        """Whole body as text; raises if it cannot be read."""
        return self._decode_text(self.read_content())

    @property
    def content(self) -> bytes:
        """Whole body as bytes, or ``b""`` if it cannot be read."""
        if self.error is not None:
            return b""
        try:
            return self.read_content()
        except (OSError, BodyflowError):
            return b""

    @property
    def text(self) -> str:
        """Whole body as text, or ``""`` if it cannot be read."""
        return self._decode_text(self.content)

    def release_buffer(self) -> None:
        """Drop the internal buffer. Later content access returns an empty body."""
        self._buffer = None

    def _charset(self) -> str | None:
        ctype = self.headers.get("content-type")
        if ctype and "charset=" in ctype:
            charset = ctype.split("charset=")[-1].split(";")[0].strip().strip('"')
            return charset or None
        return None

    def _decode_text(self, body: bytes) -> str:
        encoding = self._charset() or "utf-8"
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            return body.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        if self.error is not None:
            return f"<Response [error: {self.error}]>"
        return f"<Response [{self.status_code}]>"


def build_response(exchange: Exchange | None, error: BaseException | None = None) -> Response:
    """Wrap an exchange, or the error that prevented it, in a Response."""
    return Response(exchange, error)
