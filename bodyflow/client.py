from __future__ import annotations

import json as json_lib
import logging
import urllib.parse
from collections.abc import Mapping
from typing import Any

from bodyflow.compression import get_accept_encoding
from bodyflow.connection import Connection
from bodyflow.errors import BodyflowError
from bodyflow.headers import canonicalize_headers
from bodyflow.response import Response, build_response
from bodyflow.utils import host_header, parse_url

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "bodyflow/0.1"

RequestData = bytes | str | Mapping[str, str] | None


class Client:
    """
    Minimal synchronous HTTP/1.1 client returning ``Response`` objects.

    Transport failures (DNS, TCP, TLS, malformed responses) never raise from
    ``request``; they are captured in ``Response.error``.

    Args:
        timeout: Socket timeout in seconds
        verify: Whether to verify TLS certificates
        headers: Headers sent with every request
        auto_decompress: Transparently decode gzip/deflate/br bodies (default: True)
        user_agent: User-Agent header value
    """

    def __init__(
        self,
        timeout: float = 10.0,
        verify: bool = True,
        headers: Mapping[str, str] | None = None,
        auto_decompress: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.timeout = timeout
        self.verify = verify
        self.headers = dict(headers or {})
        self.auto_decompress = auto_decompress
        self.user_agent = user_agent

    def _encode_body(
        self,
        data: RequestData,
        json: Any,
        final_headers: dict[str, str],
    ) -> bytes | None:
        if json is not None:
            if data is not None:
                raise ValueError("Pass either data or json, not both")
            final_headers["Content-Type"] = "application/json"
            return json_lib.dumps(json).encode("utf-8")
        if data is None:
            return None
        if isinstance(data, bytes):
            return data
        if isinstance(data, str):
            return data.encode("utf-8")
        if isinstance(data, Mapping):
            final_headers["Content-Type"] = "application/x-www-form-urlencoded; charset=utf-8"
            return urllib.parse.urlencode(data).encode("utf-8")
        raise TypeError("Unsupported data type for request body")

    def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        data: RequestData = None,
        json: Any = None,
    ) -> Response:
        """
        Perform one exchange and wrap it in a Response.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            headers: Additional headers, overriding client defaults
            data: Request body (bytes, text, or form fields)
            json: Object to send as a JSON body

        Returns:
            Response object; check ``error`` before touching the body
        """
        method = method.upper()
        parsed, host, port, path = parse_url(url)
        final_headers: dict[str, str] = {
            "Host": host_header(host, port, parsed.scheme),
            "User-Agent": self.user_agent,
            "Accept": "*/*",
            "Accept-Encoding": get_accept_encoding(self.auto_decompress),
            "Connection": "close",
        }
        body = self._encode_body(data, json, final_headers)
        if body is not None or method in ("POST", "PUT", "PATCH"):
            final_headers["Content-Length"] = str(len(body or b""))

        merged_headers = canonicalize_headers(
            final_headers.items(),
            {**self.headers, **(headers or {})},
        )

        conn = Connection(host, port, parsed.scheme, self.timeout, self.verify)
        logger.debug("%s %s", method, url)
        try:
            exchange = conn.exchange(
                method, path, merged_headers, body, auto_decompress=self.auto_decompress
            )
        except (BodyflowError, OSError) as exc:
            conn.close()
            logger.warning("%s %s failed: %s", method, url, exc)
            return build_response(None, exc)

        logger.debug("%s %s -> %s", method, url, exchange.status_code)
        return build_response(exchange)

    def get(self, url: str, headers: Mapping[str, str] | None = None) -> Response:
        return self.request("GET", url, headers=headers)

    def head(self, url: str, headers: Mapping[str, str] | None = None) -> Response:
        return self.request("HEAD", url, headers=headers)

    def delete(self, url: str, headers: Mapping[str, str] | None = None) -> Response:
        return self.request("DELETE", url, headers=headers)

    def post(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        data: RequestData = None,
        json: Any = None,
    ) -> Response:
        return self.request("POST", url, headers=headers, data=data, json=json)

    def put(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        data: RequestData = None,
        json: Any = None,
    ) -> Response:
        return self.request("PUT", url, headers=headers, data=data, json=json)

    def patch(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        data: RequestData = None,
        json: Any = None,
    ) -> Response:
        return self.request("PATCH", url, headers=headers, data=data, json=json)


def request(method: str, url: str, **kwargs: Any) -> Response:
    """One-off request with a default ``Client``."""
    return Client().request(method, url, **kwargs)


def get(url: str, **kwargs: Any) -> Response:
    return request("GET", url, **kwargs)


def post(url: str, **kwargs: Any) -> Response:
    return request("POST", url, **kwargs)
