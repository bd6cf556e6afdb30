"""
The outgoing side of an exchange: the request description and the bytes that
are written to the wire for it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from asynchttpclient.utils.python import to_bytes
from asynchttpclient.utils.url import UrlParts, parse_url

if TYPE_CHECKING:
    from collections.abc import Mapping

HeaderValue = Union[str, bytes, int]


class Method(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"


def merge_query(url_query: str, extra_query: str) -> str:
    """Join the query found in the URL with the caller's extra query text."""
    if url_query and extra_query:
        return f"{url_query}&{extra_query}"
    return url_query + extra_query


@dataclass
class OutgoingRequest:
    """A request as handed to :meth:`RequestExecutor.execute`.

    Header keys are kept exactly as given; they are not normalised.
    """

    method: Method
    url: str
    headers: dict[str, HeaderValue] = field(default_factory=dict)
    query: str = ""
    body: bytes = b""
    context: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.method, Method):
            self.method = Method(str(self.method).upper())
        self.headers = dict(self.headers or {})
        self.body = to_bytes(self.body or b"")

    def url_parts(self) -> UrlParts:
        return parse_url(self.url)

    def frame(self, parts: UrlParts | None = None) -> bytes:
        """Return the wire bytes of this request."""
        if parts is None:
            parts = self.url_parts()
        return build_request_frame(
            self.method,
            parts.scheme,
            parts.netloc,
            parts.path,
            merge_query(parts.query, self.query),
            self.headers,
            self.body,
        )


def has_header(headers: Mapping[str, HeaderValue], name: str) -> bool:
    name = name.lower()
    return any(key.lower() == name for key in headers)


def _header_line(key: str | bytes, value: HeaderValue) -> bytes:
    if isinstance(value, int):
        value = str(value)
    return to_bytes(key) + b": " + to_bytes(value) + b"\r\n"


def build_request_frame(
    method: Method,
    scheme: str,
    netloc: str,
    path: str,
    query: str,
    headers: Mapping[str, HeaderValue],
    body: bytes,
) -> bytes:
    r"""Build an HTTP/1.1 request in absolute form.

    Caller headers go out sorted by key, then ``Host`` and ``Content-Length``
    unless the caller already set them (compared case-insensitively).

    >>> build_request_frame(Method.GET, "http", "example.com", "/", "a=1", {}, b"")
    b'GET http://example.com/?a=1 HTTP/1.1\r\nHost: example.com\r\nContent-Length: 0\r\n\r\n'
    """
    target = f"{scheme}://" if scheme else ""
    target += netloc + path
    if query:
        target += "?" + query
    lines = [to_bytes(f"{method.value} {target} HTTP/1.1\r\n")]
    lines.extend(_header_line(key, headers[key]) for key in sorted(headers))
    if not has_header(headers, "Host"):
        lines.append(_header_line("Host", netloc))
    if not has_header(headers, "Content-Length"):
        lines.append(_header_line("Content-Length", len(body)))
    lines.append(b"\r\n")
    lines.append(body)
    return b"".join(lines)
