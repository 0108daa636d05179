"""Pytest configuration and fixtures."""

import io

import pytest

from bodyflow.exchange import Exchange


class TrackingBody(io.BytesIO):
    """In-memory body that records reads and closes."""

    def __init__(self, data=b"", fail_after=None):
        super().__init__(data)
        self.close_calls = 0
        self.read_calls = 0
        self.fail_after = fail_after

    def read(self, size=-1):
        self.read_calls += 1
        if self.fail_after is not None and self.tell() >= self.fail_after:
            raise OSError("connection reset by peer")
        if self.fail_after is not None and (size is None or size < 0):
            size = self.fail_after - self.tell()
        return super().read(size)

    def close(self):
        self.close_calls += 1
        super().close()


@pytest.fixture
def make_exchange():
    """Factory building an Exchange over a TrackingBody."""

    def factory(status_code=200, body=b"", headers=None, content_length=None, fail_after=None):
        stream = TrackingBody(body, fail_after=fail_after)
        return Exchange(
            status_code,
            headers or [],
            stream,
            reason="OK",
            content_length=len(body) if content_length is None else content_length,
        )

    return factory
