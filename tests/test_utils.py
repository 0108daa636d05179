"""Tests for bodyflow.utils module."""

import pytest

from bodyflow.utils import host_header, parse_url


class TestParseUrl:
    """Tests for parse_url function."""

    def test_parse_https_url(self):
        """Test parsing HTTPS URL."""
        parsed, host, port, path = parse_url("https://example.com/path")
        assert host == "example.com"
        assert port == 443
        assert path == "/path"
        assert parsed.scheme == "https"

    def test_parse_http_url_custom_port(self):
        """Test parsing HTTP URL with custom port."""
        parsed, host, port, path = parse_url("http://example.com:8080/api")
        assert port == 8080
        assert path == "/api"

    def test_parse_url_with_query_string(self):
        """Test the query string stays on the path."""
        _, _, _, path = parse_url("https://example.com/search?q=test&page=1")
        assert path == "/search?q=test&page=1"

    def test_parse_url_empty_path(self):
        """Test parsing URL with empty path defaults to /."""
        _, _, _, path = parse_url("https://example.com")
        assert path == "/"

    def test_parse_url_invalid_scheme_raises(self):
        """Test non-HTTP schemes are rejected."""
        with pytest.raises(ValueError, match="Only http and https"):
            parse_url("ftp://example.com/file")

    def test_parse_url_without_host_raises(self):
        """Test URLs without a host are rejected."""
        with pytest.raises(ValueError, match="no host"):
            parse_url("http:///path")


class TestHostHeader:
    """Tests for host_header function."""

    def test_default_port_omitted(self):
        assert host_header("example.com", 443, "https") == "example.com"
        assert host_header("example.com", 80, "http") == "example.com"

    def test_custom_port_included(self):
        assert host_header("example.com", 8443, "https") == "example.com:8443"

    def test_ipv6_bracketed(self):
        assert host_header("::1", 8080, "http") == "[::1]:8080"
