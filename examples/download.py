#!/usr/bin/env python3
"""
Example: Stream a response straight to disk.

`download_to_file` never buffers the body in memory, so it is the right
choice for large payloads.
"""
from __future__ import annotations

import sys

from bodyflow import Client


def main(url: str, path: str) -> int:
    response = Client(timeout=30.0).get(url)
    if response.error is not None:
        print(f"Request failed: {response.error}")
        return 1
    if not response.ok:
        print(f"Server answered {response.status_code}: {response.text[:200]}")
        return 1

    written = response.download_to_file(path)
    print(f"Wrote {written} bytes to {path}")
    return 0


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else "https://httpbin.org/bytes/50000"
    path = sys.argv[2] if len(sys.argv) > 2 else "download.bin"
    sys.exit(main(url, path))
