from bodyflow.client import Client, request, get, post
from bodyflow.exchange import Exchange
from bodyflow.headers import Headers
from bodyflow.response import Response, build_response
from bodyflow.codec import transcoding_reader
from bodyflow.errors import (
    BodyflowError,
    ConnectionError,
    TLSNegotiationError,
    ProtocolError,
    DecodeError,
)

__all__ = [
    "Client",
    "request",
    "get",
    "post",
    "Exchange",
    "Headers",
    "Response",
    "build_response",
    "transcoding_reader",
    "BodyflowError",
    "ConnectionError",
    "TLSNegotiationError",
    "ProtocolError",
    "DecodeError",
]
