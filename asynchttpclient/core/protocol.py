"""
Twisted protocol reading one HTTP/1.1 response off a connection.

The protocol is a push-driven state machine: header bytes are buffered until
the blank line, the framing of the body is chosen from the parsed headers and
body bytes are then consumed according to it. Progress is reported through two
Deferreds, :attr:`HTTP11ClientProtocol.headers_received` and
:attr:`HTTP11ClientProtocol.finished`; cancelling either aborts the
connection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Union

from twisted.internet.defer import Deferred
from twisted.internet.error import ConnectionDone, ConnectionLost
from twisted.internet.protocol import Protocol, connectionDone

from asynchttpclient.exceptions import HeaderParseFailure, ReceiveFailure
from asynchttpclient.http.chunked import ChunkDecoder
from asynchttpclient.http.response import (
    HEADER_TERMINATOR,
    BodyFraming,
    ResponseInfo,
    content_length,
    parse_response_headers,
    select_body_framing,
)

if TYPE_CHECKING:
    from twisted.python.failure import Failure

    from asynchttpclient.exceptions import RequestFailed
    from asynchttpclient.http.request import Method

LoggerT = Union[logging.Logger, logging.LoggerAdapter]

default_logger = logging.getLogger(__name__)


class HTTP11ClientProtocol(Protocol):
    def __init__(
        self,
        response: ResponseInfo,
        method: Method,
        fail_on_dataloss: bool = False,
        logger: LoggerT = default_logger,
    ):
        self.response: ResponseInfo = response
        self.framing: BodyFraming | None = None
        self.headers_received: Deferred[BodyFraming] = Deferred(self._cancel)
        self.finished: Deferred[ResponseInfo] = Deferred(self._cancel)
        self._method: Method = method
        self._fail_on_dataloss: bool = fail_on_dataloss
        self._logger: LoggerT = logger
        self._header_buffer = bytearray()
        self._raw = bytearray()
        self._body = bytearray()
        self._decoder: ChunkDecoder | None = None
        self._expected_length: int = 0
        self._done: bool = False
        self._lost: bool = False

    def send(self, data: bytes) -> None:
        if self.transport is None or self._lost:
            raise ConnectionLost("the connection is already closed")
        self.transport.write(data)

    def dataReceived(self, data: bytes) -> None:
        # may be called after cancel with data already buffered by the reactor
        if self._done:
            return
        if self.framing is None:
            self._header_data(data)
        else:
            self._body_data(data)

    def connectionLost(self, reason: Failure = connectionDone) -> None:
        self._lost = True
        if self._done:
            return
        description = reason.getErrorMessage()
        if self.framing is None:
            self._fail(ReceiveFailure(f"can not recv response header, error:{description}"))
            return

        clean = reason.check(ConnectionDone) is not None
        if self.framing is BodyFraming.UNTIL_CLOSE and clean:
            self._finish()
        elif self.framing is BodyFraming.CHUNKED and clean and not self._fail_on_dataloss:
            self._logger.warning(
                "connection closed before the terminating chunk, "
                "keeping %(size)d decoded bytes",
                {"size": len(self._decoder.content) if self._decoder else 0},
            )
            self._finish()
        elif self.framing is BodyFraming.CONTENT_LENGTH:
            self._fail(
                ReceiveFailure(
                    "can not recv response body, error:connection closed after "
                    f"{len(self._body)} of {self._expected_length} bytes: {description}"
                )
            )
        else:
            self._fail(ReceiveFailure(f"can not recv response body, error:{description}"))

    def _header_data(self, data: bytes) -> None:
        self._header_buffer += data
        end = self._header_buffer.find(HEADER_TERMINATOR)
        if end == -1:
            return
        end += len(HEADER_TERMINATOR)
        block = bytes(self._header_buffer[:end])
        rest = bytes(self._header_buffer[end:])
        del self._header_buffer[:]
        self._raw += block
        self._logger.debug("response headers:\r\n%s", block.decode("iso-8859-1"))

        try:
            version, status, reason, headers = parse_response_headers(block)
        except HeaderParseFailure as exc:
            self._fail(exc)
            return
        response = self.response
        response.http_version, response.status, response.reason = version, status, reason
        response.headers = headers

        framing = select_body_framing(status, headers, self._method)
        if framing is BodyFraming.CONTENT_LENGTH:
            try:
                self._expected_length = content_length(headers)
            except HeaderParseFailure as exc:
                self._fail(exc)
                return
        elif framing is BodyFraming.CHUNKED:
            self._decoder = ChunkDecoder()
        self.framing = framing
        self._logger.debug("%(framing)s body framing selected", {"framing": framing.value})
        self._sync()
        self.headers_received.callback(framing)

        if self._done:
            return
        if framing is BodyFraming.NO_BODY or (
            framing is BodyFraming.CONTENT_LENGTH and self._expected_length == 0
        ):
            self._finish()
        elif rest:
            self._body_data(rest)

    def _body_data(self, data: bytes) -> None:
        if self.framing is BodyFraming.CHUNKED:
            assert self._decoder is not None
            self._raw += data
            _, done = self._decoder.feed(data)
            if done:
                self._finish()
        elif self.framing is BodyFraming.CONTENT_LENGTH:
            remaining = self._expected_length - len(self._body)
            if len(data) > remaining:
                self._logger.debug(
                    "discarding %(extra)d bytes received past content-length",
                    {"extra": len(data) - remaining},
                )
                data = data[:remaining]
            # surplus is kept out of raw as well as content
            self._raw += data
            self._body += data
            if len(self._body) >= self._expected_length:
                self._finish()
        else:
            self._raw += data
            self._body += data

    def _sync(self) -> None:
        self.response.raw = bytes(self._raw)
        if self._decoder is not None:
            self.response.content = self._decoder.content
        else:
            self.response.content = bytes(self._body)

    def _finish(self) -> None:
        self._done = True
        self._sync()
        self.finished.callback(self.response)

    def _fail(self, exc: RequestFailed) -> None:
        self._done = True
        self._sync()
        if not self.headers_received.called:
            self.headers_received.errback(exc)
        else:
            self.finished.errback(exc)

    def _cancel(self, _: Deferred) -> None:
        self._done = True
        self._sync()
        if self.transport is not None and not self._lost:
            self.transport.abortConnection()
