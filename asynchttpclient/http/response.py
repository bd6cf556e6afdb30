"""
The incoming side of an exchange: what the callback receives, and the pure
functions that interpret a response header block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from asynchttpclient.exceptions import ErrorKind, HeaderParseFailure
from asynchttpclient.http.request import Method
from asynchttpclient.utils.python import to_unicode

if TYPE_CHECKING:
    from collections.abc import Mapping


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"


@dataclass
class ResponseInfo:
    """The outcome of one request, delivered to the callback exactly once.

    Check :attr:`timed_out` first, then :attr:`error`: an empty error means
    the exchange completed. :attr:`status` stays ``-1`` when no valid status
    line was received. :attr:`raw` is the header block followed by the body
    bytes as they came off the wire, while :attr:`content` is the payload
    (chunk framing removed).
    """

    timed_out: bool = False
    error: str = ""
    error_kind: ErrorKind | None = None
    raw: bytes = b""
    http_version: str = ""
    status: int = -1
    reason: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return not self.timed_out and not self.error

    def __repr__(self) -> str:
        if self.ok:
            return f"<ResponseInfo {self.status} {self.reason!r} ({len(self.content)} bytes)>"
        return f"<ResponseInfo failed: {self.error!r}>"


def parse_response_headers(
    header_block: bytes,
) -> tuple[str, int, str, dict[str, str]]:
    r"""Parse a response header block into ``(version, status, reason, headers)``.

    Header names are lower-cased; names and values are stripped. Raises
    :exc:`HeaderParseFailure` if the status line cannot be parsed.

    >>> parse_response_headers(b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\n")
    ('HTTP/1.1', 200, 'OK', {'content-type': 'text/plain'})
    """
    text = to_unicode(header_block, "iso-8859-1")
    lines = text.split("\n")
    status_line = lines[0].split(None, 2)
    try:
        version, code = status_line[0], int(status_line[1])
    except (IndexError, ValueError):
        logger.error("can not get status line: %r", lines[0])
        raise HeaderParseFailure(
            "can not parse response header, invalid header, header:\r\n"
            + text
        ) from None
    reason = status_line[2].strip() if len(status_line) > 2 else ""

    headers: dict[str, str] = {}
    for line in lines[1:]:
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        if not sep:
            logger.warning("encountered a header line without ':': %r", line)
            continue
        key = key.strip()
        if not key:
            logger.warning("encountered an empty key")
            continue
        headers[key.lower()] = value.strip()
    return version, code, reason, headers


class BodyFraming(Enum):
    """How the end of a response body is found (RFC 7230, section 3.3.3)."""

    NO_BODY = "no-body"
    CHUNKED = "chunked"
    CONTENT_LENGTH = "content-length"
    UNTIL_CLOSE = "until-close"


def select_body_framing(
    status: int, headers: Mapping[str, str], method: Method
) -> BodyFraming:
    if 100 <= status < 200 or status in (204, 304) or method is Method.HEAD:
        return BodyFraming.NO_BODY
    if "transfer-encoding" in headers:
        # a transfer-encoding without "chunked" is read until close
        if "chunked" in headers["transfer-encoding"].lower():
            return BodyFraming.CHUNKED
        return BodyFraming.UNTIL_CLOSE
    if "content-length" in headers:
        return BodyFraming.CONTENT_LENGTH
    return BodyFraming.UNTIL_CLOSE


def content_length(headers: Mapping[str, str]) -> int:
    value = headers["content-length"]
    try:
        length = int(value)
    except ValueError:
        length = -1
    if length < 0:
        raise HeaderParseFailure(
            f"can not parse response header, invalid content-length: {value!r}"
        )
    return length
