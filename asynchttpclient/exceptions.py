"""
asynchttpclient exceptions

Stage failures are raised inside the request pipeline and end up, as text and
as an :class:`ErrorKind`, in the :class:`~asynchttpclient.http.ResponseInfo`
handed to the callback. They never escape to the caller of an execute method.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Why a request did not complete successfully."""

    RESOLVE = "resolve"
    CONNECT = "connect"
    SEND = "send"
    RECEIVE = "receive"
    HEADER_PARSE = "header_parse"
    TIMEOUT = "timeout"
    ABANDONED = "abandoned"


# Request pipeline


class RequestFailed(Exception):
    """A pipeline stage failed; the message is what the callback sees"""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ResolveFailure(RequestFailed):
    """The server address could not be resolved"""

    kind = ErrorKind.RESOLVE


class ConnectFailure(RequestFailed):
    """None of the resolved addresses accepted a connection"""

    kind = ErrorKind.CONNECT


class SendFailure(RequestFailed):
    """The request frame could not be written to the connection"""

    kind = ErrorKind.SEND


class ReceiveFailure(RequestFailed):
    """The connection failed while the response was being read"""

    kind = ErrorKind.RECEIVE


class HeaderParseFailure(RequestFailed):
    """The response status line or framing headers are invalid"""

    kind = ErrorKind.HEADER_PARSE


# Commands


class UsageError(Exception):
    """To indicate a command-line usage error"""

    def __init__(self, *a: Any, **kw: Any):
        self.print_help = kw.pop("print_help", True)
        super().__init__(*a, **kw)
