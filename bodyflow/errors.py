class BodyflowError(Exception):
    """Base error for bodyflow."""


class ConnectionError(BodyflowError):
    """Raised when a TCP/TLS connection fails."""


class TLSNegotiationError(ConnectionError):
    """Raised when the TLS handshake fails."""


class ProtocolError(BodyflowError):
    """Raised when an HTTP protocol error occurs while reading a response."""


class DecodeError(BodyflowError, ValueError):
    """Raised when a decoded body does not fit the requested target type."""
