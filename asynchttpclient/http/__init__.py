"""
Module containing the request and response types and the HTTP/1.1 wire
helpers used by the executor.
"""

from asynchttpclient.http.chunked import ChunkDecoder
from asynchttpclient.http.request import (
    Method,
    OutgoingRequest,
    build_request_frame,
    merge_query,
)
from asynchttpclient.http.response import (
    BodyFraming,
    ResponseInfo,
    parse_response_headers,
    select_body_framing,
)

__all__ = [
    "BodyFraming",
    "ChunkDecoder",
    "Method",
    "OutgoingRequest",
    "ResponseInfo",
    "build_request_frame",
    "merge_query",
    "parse_response_headers",
    "select_body_framing",
]
