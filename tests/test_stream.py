"""Tests for bodyflow.stream module."""

import socket

import pytest

from bodyflow.errors import ProtocolError
from bodyflow.stream import SocketBody


def fake_socket(mocker, payloads):
    """Mock socket whose recv() returns the given payloads then EOF."""
    sock = mocker.MagicMock()
    data = bytearray(b"".join(payloads))

    def recv(n):
        chunk = bytes(data[:n])
        del data[:n]
        return chunk

    sock.recv.side_effect = recv
    return sock


class TestContentLength:
    """Bodies framed by Content-Length."""

    def test_reads_exact_length(self, mocker):
        """Only the declared number of bytes is read."""
        sock = fake_socket(mocker, [b"hello world", b"EXTRA"])
        body = SocketBody(sock, content_length=11, chunked=False)
        assert body.read() == b"hello world"
        assert body.read() == b""

    def test_partial_reads(self, mocker):
        """read(n) returns at most n bytes."""
        sock = fake_socket(mocker, [b"abcdef"])
        body = SocketBody(sock, content_length=6, chunked=False, chunk_size=4)
        assert body.read(2) == b"ab"
        assert body.read(3) == b"cde"
        assert body.read(10) == b"f"
        assert body.read(10) == b""

    def test_pending_bytes_used_first(self, mocker):
        """Bytes read along with the head are replayed before the socket."""
        sock = fake_socket(mocker, [b"lo"])
        body = SocketBody(sock, content_length=5, chunked=False, pending=b"hel")
        assert body.read() == b"hello"

    def test_premature_eof(self, mocker):
        """A short body raises ProtocolError."""
        sock = fake_socket(mocker, [b"abc"])
        body = SocketBody(sock, content_length=10, chunked=False)
        with pytest.raises(ProtocolError, match="Unexpected EOF"):
            body.read()

    def test_zero_length(self, mocker):
        """A zero length body never touches the socket."""
        sock = fake_socket(mocker, [b"ignored"])
        body = SocketBody(sock, content_length=0, chunked=False)
        assert body.read() == b""
        sock.recv.assert_not_called()


class TestChunked:
    """Bodies using chunked transfer encoding."""

    def test_reads_chunks(self, mocker):
        """Chunk data is concatenated without framing."""
        sock = fake_socket(mocker, [b"5\r\nhello\r\n6;ext=1\r\n world\r\n0\r\n\r\n"])
        body = SocketBody(sock, content_length=None, chunked=True)
        assert body.read() == b"hello world"

    def test_trailers_consumed(self, mocker):
        """Trailer fields after the last chunk are skipped."""
        sock = fake_socket(mocker, [b"3\r\nabc\r\n0\r\nX-Trailer: 1\r\n\r\n"])
        body = SocketBody(sock, content_length=None, chunked=True)
        assert body.read() == b"abc"

    def test_invalid_chunk_size(self, mocker):
        """A non-hex size line raises ProtocolError."""
        sock = fake_socket(mocker, [b"zz\r\nabc\r\n"])
        body = SocketBody(sock, content_length=None, chunked=True)
        with pytest.raises(ProtocolError, match="Invalid chunk size"):
            body.read()

    def test_truncated_chunk(self, mocker):
        """EOF inside a chunk raises ProtocolError."""
        sock = fake_socket(mocker, [b"a\r\nabc"])
        body = SocketBody(sock, content_length=None, chunked=True)
        with pytest.raises(ProtocolError):
            body.read()


class TestUntilClose:
    """Bodies delimited by connection close."""

    def test_reads_until_eof(self, mocker):
        """Everything up to EOF is the body."""
        sock = fake_socket(mocker, [b"all ", b"of it"])
        body = SocketBody(sock, content_length=None, chunked=False)
        assert body.read() == b"all of it"

    def test_timeout_mid_body_raises(self, mocker):
        """A read timeout is an error, not the end of the body."""
        sock = mocker.MagicMock()
        sock.recv.side_effect = [b"part", socket.timeout("timed out")]
        body = SocketBody(sock, content_length=None, chunked=False)
        assert body.read(4) == b"part"
        with pytest.raises(TimeoutError):
            body.read()


class TestClose:
    """Tests for SocketBody.close()."""

    def test_close_idempotent(self, mocker):
        """The socket is closed exactly once."""
        sock = fake_socket(mocker, [b"abc"])
        body = SocketBody(sock, content_length=3, chunked=False)
        body.close()
        body.close()
        assert body.closed is True
        sock.close.assert_called_once()

    def test_read_after_close(self, mocker):
        """Reads after close return no bytes."""
        sock = fake_socket(mocker, [b"abc"])
        body = SocketBody(sock, content_length=3, chunked=False)
        assert body.read(1) == b"a"
        body.close()
        assert body.read() == b""

    def test_context_manager(self, mocker):
        """The with block closes the body."""
        sock = fake_socket(mocker, [b"abc"])
        with SocketBody(sock, content_length=3, chunked=False) as body:
            assert body.read() == b"abc"
        sock.close.assert_called_once()
        assert repr(body) == "<SocketBody [closed]>"
