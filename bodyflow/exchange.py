from __future__ import annotations

import io
from collections.abc import Iterable

from .compression import RawStream
from .headers import Headers


def parse_content_length(headers: Headers) -> int:
    """Declared Content-Length, or -1 when absent or not a valid integer."""
    value = headers.get("content-length")
    if value is None:
        return -1
    try:
        length = int(value.strip())
    except ValueError:
        return -1
    return length if length >= 0 else -1


class Exchange:
    """
    A completed request/response exchange: the response head plus the still
    unread body stream. ``content_length`` is ``-1`` when the server did not
    declare one.
    """

    def __init__(
        self,
        status_code: int,
        headers: Iterable[tuple[str, str]],
        body: RawStream,
        reason: str = "",
        http_version: str = "1.1",
        content_length: int | None = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.http_version = http_version
        self.raw_headers: list[tuple[str, str]] = list(headers)
        self.headers = Headers(self.raw_headers)
        self.body = body
        self.content_length = (
            parse_content_length(self.headers) if content_length is None else content_length
        )

    @classmethod
    def from_bytes(
        cls,
        status_code: int,
        body: bytes = b"",
        headers: Iterable[tuple[str, str]] | None = None,
        reason: str = "",
    ) -> Exchange:
        """Build an exchange backed by an in-memory body."""
        pairs = list(headers or [])
        if not any(name.lower() == "content-length" for name, _ in pairs):
            pairs.append(("Content-Length", str(len(body))))
        return cls(status_code, pairs, io.BytesIO(body), reason=reason)

    def __repr__(self) -> str:
        return f"<Exchange [{self.status_code}]>"
