from __future__ import annotations

import logging
import socket
import ssl
from collections.abc import Iterable

from .compression import DecodingReader, parse_content_encoding
from .errors import ConnectionError, ProtocolError, TLSNegotiationError
from .exchange import Exchange, parse_content_length
from .headers import Headers
from .stream import SocketBody

logger = logging.getLogger(__name__)

MAX_HEAD_LINES = 200


class Connection:
    """
    Single TCP/TLS connection carrying one HTTP/1.1 exchange.

    The socket is handed over to the returned exchange's body, which closes it.
    """

    def __init__(
        self,
        host: str,
        port: int,
        scheme: str,
        timeout: float = 10.0,
        verify: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.scheme = scheme
        self.timeout = timeout
        self.verify = verify
        self.sock: socket.socket | ssl.SSLSocket | None = None
        self.closed = True

    def connect(self) -> None:
        raw = self._open_tcp()

        if self.scheme == "https":
            context = ssl.create_default_context()
            if not self.verify:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            try:
                context.set_alpn_protocols(["http/1.1"])
            except NotImplementedError:
                # Older Python/OpenSSL builds may not support ALPN.
                pass
            try:
                self.sock = context.wrap_socket(raw, server_hostname=self.host)
            except ssl.SSLError as exc:
                raw.close()
                raise TLSNegotiationError(f"TLS handshake failed: {exc}") from exc
        else:
            self.sock = raw

        self.sock.settimeout(self.timeout)
        self.closed = False
        logger.debug("Connected to %s://%s:%s", self.scheme, self.host, self.port)

    def exchange(
        self,
        method: str,
        path: str,
        headers: Iterable[tuple[str, str]],
        body: bytes | None = None,
        auto_decompress: bool = True,
    ) -> Exchange:
        """Send one request and return the exchange once the response head has arrived."""
        if self.closed or self.sock is None:
            self.connect()

        request_bytes = self._build_request(method, path, headers, body)
        try:
            assert self.sock is not None
            self.sock.sendall(request_bytes)
            status_code, reason, version, raw_headers, leftover = self._read_head()
        except OSError as exc:
            self.close()
            raise ConnectionError(f"Exchange failed: {exc}") from exc
        except ProtocolError:
            self.close()
            raise

        header_map = Headers(raw_headers)
        declared_length = parse_content_length(header_map)
        chunked = "chunked" in header_map.get("transfer-encoding", "").lower()

        if method == "HEAD" or status_code < 200 or status_code in (204, 304):
            length: int | None = 0
        elif chunked:
            length = None
        elif "content-length" in header_map:
            if declared_length < 0:
                self.close()
                raise ProtocolError("Invalid Content-Length")
            length = declared_length
        else:
            length = None

        assert self.sock is not None
        stream = SocketBody(self.sock, length, chunked and length != 0, pending=leftover)
        # The body owns the socket from here on.
        self.sock = None
        self.closed = True

        content_encoding = header_map.get("content-encoding", "")
        if auto_decompress and parse_content_encoding(content_encoding):
            return Exchange(
                status_code,
                raw_headers,
                DecodingReader(stream, content_encoding),
                reason=reason,
                http_version=version,
                content_length=declared_length,
            )
        return Exchange(status_code, raw_headers, stream, reason=reason, http_version=version)

    def _build_request(
        self,
        method: str,
        path: str,
        headers: Iterable[tuple[str, str]],
        body: bytes | None,
    ) -> bytes:
        lines = [f"{method} {path} HTTP/1.1\r\n".encode("ascii")]
        for name, value in headers:
            lines.append(f"{name}: {value}\r\n".encode("latin-1"))
        lines.append(b"\r\n")
        if body:
            lines.append(body)
        return b"".join(lines)

    def _read_head(self) -> tuple[int, str, str, list[tuple[str, str]], bytes]:
        assert self.sock is not None
        data = bytearray()
        while b"\r\n\r\n" not in data:
            chunk = self.sock.recv(4096)
            if not chunk:
                if not data:
                    raise ProtocolError("Empty response")
                raise ProtocolError("Unexpected EOF while reading response head")
            data.extend(chunk)
        head, _, leftover = bytes(data).partition(b"\r\n\r\n")
        lines = head.split(b"\r\n")
        if len(lines) > MAX_HEAD_LINES:
            raise ProtocolError("Too many header lines")

        status_line = lines[0]
        try:
            # e.g., HTTP/1.1 200 OK
            parts = status_line.decode("latin-1").strip().split(" ", 2)
            version = parts[0].split("/", 1)[1]
            status_code = int(parts[1])
            reason = parts[2] if len(parts) > 2 else ""
        except (IndexError, ValueError) as exc:
            raise ProtocolError(f"Malformed status line: {status_line!r}") from exc

        headers: list[tuple[str, str]] = []
        for line in lines[1:]:
            try:
                name, value = line.split(b":", 1)
            except ValueError as exc:
                raise ProtocolError(f"Malformed header line: {line!r}") from exc
            headers.append(
                (name.decode("latin-1").strip(), value.decode("latin-1").strip())
            )
        return status_code, reason, version, headers, leftover

    def close(self) -> None:
        if self.sock:
            try:
                self.sock.close()
            finally:
                self.sock = None
        self.closed = True

    def _open_tcp(self) -> socket.socket:
        try:
            return socket.create_connection(
                (self.host, self.port), timeout=self.timeout
            )
        except OSError as exc:
            raise ConnectionError(f"TCP connection failed: {exc}") from exc
