from __future__ import annotations

from urllib.parse import ParseResult, urlparse


def parse_url(url: str) -> tuple[ParseResult, str, int, str]:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError("Only http and https schemes are supported")
    if not parsed.hostname:
        raise ValueError(f"URL has no host: {url!r}")
    host = parsed.hostname
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    path = parsed.path or "/"
    if parsed.query:
        path = f"{path}?{parsed.query}"
    return parsed, host, port, path


def host_header(host: str, port: int, scheme: str) -> str:
    default = 443 if scheme == "https" else 80
    if ":" in host:
        host = f"[{host}]"
    return host if port == default else f"{host}:{port}"
