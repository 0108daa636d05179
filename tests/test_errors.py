"""Tests for bodyflow.errors module."""

import pytest

from bodyflow.errors import (
    BodyflowError,
    ConnectionError,
    DecodeError,
    ProtocolError,
    TLSNegotiationError,
)


class TestErrorHierarchy:
    """Tests for error class hierarchy."""

    def test_bodyflow_error_is_exception(self):
        """Test BodyflowError inherits from Exception."""
        assert issubclass(BodyflowError, Exception)

    def test_tls_negotiation_error_inherits_connection_error(self):
        """Test TLSNegotiationError inherits from ConnectionError."""
        assert issubclass(TLSNegotiationError, ConnectionError)
        assert issubclass(TLSNegotiationError, BodyflowError)

    def test_protocol_error_inherits_bodyflow_error(self):
        """Test ProtocolError inherits from BodyflowError."""
        assert issubclass(ProtocolError, BodyflowError)

    def test_decode_error_is_value_error(self):
        """Test DecodeError can be caught as ValueError."""
        assert issubclass(DecodeError, BodyflowError)
        assert issubclass(DecodeError, ValueError)

    def test_connection_error_shadows_builtin_by_name_only(self):
        """Test bodyflow's ConnectionError is not the builtin one."""
        assert not issubclass(ConnectionError, OSError)


class TestErrorCatching:
    """Tests for catching errors at different hierarchy levels."""

    def test_catch_all_as_bodyflow_error(self):
        """Test all custom errors can be caught as BodyflowError."""
        errors = [
            ConnectionError("conn"),
            TLSNegotiationError("tls"),
            ProtocolError("proto"),
            DecodeError("decode"),
        ]
        for error in errors:
            with pytest.raises(BodyflowError):
                raise error
