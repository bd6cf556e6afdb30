"""
The request executor: one request, one connection, one callback.

:class:`RequestExecutor` drives resolve, connect, send and receive as a
coroutine awaiting Twisted Deferreds, races it against a
:class:`~asynchttpclient.core.deadline.DeadlineTimer` and hands the outcome to
a :class:`~asynchttpclient.core.dispatcher.CallbackDispatcher`. Whatever
happens (success, a stage failure, the deadline or the owner calling
:meth:`RequestExecutor.close`) the callback fires exactly once.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from twisted.internet.address import IPv6Address
from twisted.internet.defer import Deferred
from twisted.internet.endpoints import (
    TCP4ClientEndpoint,
    TCP6ClientEndpoint,
    connectProtocol,
)

from asynchttpclient.core.deadline import DeadlineTimer
from asynchttpclient.core.dispatcher import CallbackDispatcher
from asynchttpclient.core.protocol import HTTP11ClientProtocol
from asynchttpclient.exceptions import (
    ConnectFailure,
    ErrorKind,
    RequestFailed,
    ResolveFailure,
    SendFailure,
)
from asynchttpclient.http.request import Method, OutgoingRequest, has_header
from asynchttpclient.http.response import ResponseInfo
from asynchttpclient.resolver import ThreadedAddressResolver

if TYPE_CHECKING:
    from collections.abc import Mapping

    from twisted.internet.interfaces import IReactorTCP

    # typing.Self requires Python 3.11
    from typing_extensions import Self

    from asynchttpclient.core.dispatcher import ResponseCallback
    from asynchttpclient.http.request import HeaderValue
    from asynchttpclient.resolver import Address, IAddressResolver
    from asynchttpclient.settings import BaseSettings
    from asynchttpclient.utils.url import UrlParts


LoggerT = Union[logging.Logger, logging.LoggerAdapter]

default_logger = logging.getLogger(__name__)


class ExecutionState(Enum):
    CREATED = "created"
    RESOLVING = "resolving"
    CONNECTING = "connecting"
    SENDING = "sending"
    RECEIVING_HEADERS = "receiving headers"
    RECEIVING_BODY = "receiving body"
    COMPLETED = "completed"


# kind reported for unexpected errors, by the stage they happened in
_STAGE_KINDS = {
    ExecutionState.CREATED: ErrorKind.SEND,
    ExecutionState.RESOLVING: ErrorKind.RESOLVE,
    ExecutionState.CONNECTING: ErrorKind.CONNECT,
    ExecutionState.SENDING: ErrorKind.SEND,
    ExecutionState.RECEIVING_HEADERS: ErrorKind.RECEIVE,
    ExecutionState.RECEIVING_BODY: ErrorKind.RECEIVE,
}


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "no address found"
    return str(exc) or type(exc).__name__


class RequestExecutor:
    """Execute a single HTTP/1.1 request and report it to a callback.

    An executor is one-shot: calling a second ``execute*`` method raises
    :exc:`RuntimeError`. The callback is called as
    ``callback(response, client_context, request_context)`` and is the only
    place where the outcome is reported; ``execute*`` methods return ``None``
    and never raise for network or protocol errors.

    :attr:`deferred` is the Deferred of the running pipeline. It fires with
    the :class:`~asynchttpclient.http.ResponseInfo` once the pipeline has
    unwound, which may be after the callback fired (on timeout or
    :meth:`close`).

    Only :meth:`close` abandons a request; an executor dropped without it
    keeps running until completion or the deadline. Used as a context manager,
    the executor is closed on exit from the block.
    """

    def __init__(
        self,
        reactor: IReactorTCP | None = None,
        timeout: float | None = 180,
        client_context: Any = None,
        propagate_callback_errors: bool = False,
        resolver: IAddressResolver | None = None,
        logger: LoggerT | None = None,
        fail_on_dataloss: bool = False,
        default_headers: Mapping[str, HeaderValue] | None = None,
    ):
        if reactor is None:
            from twisted.internet import reactor as global_reactor

            reactor = global_reactor  # type: ignore[assignment]
        self.reactor = reactor
        self.client_context: Any = client_context
        self.resolver: IAddressResolver = resolver or ThreadedAddressResolver(reactor)  # type: ignore[arg-type]
        self.logger: LoggerT = logger or default_logger
        self.fail_on_dataloss: bool = fail_on_dataloss
        self.default_headers: dict[str, HeaderValue] = dict(default_headers or {})
        self.state: ExecutionState = ExecutionState.CREATED
        self.response: ResponseInfo = ResponseInfo()
        self.request: OutgoingRequest | None = None
        self.deferred: Deferred[ResponseInfo] | None = None
        self._propagate_callback_errors = propagate_callback_errors
        self._timer = DeadlineTimer(reactor, timeout)  # type: ignore[arg-type]
        self._dispatcher: CallbackDispatcher | None = None
        self._protocol: HTTP11ClientProtocol | None = None
        self._pending: Deferred[Any] | None = None

    @classmethod
    def from_settings(cls, settings: BaseSettings, **kwargs: Any) -> Self:
        kwargs.setdefault("timeout", settings.getfloat("DOWNLOAD_TIMEOUT"))
        kwargs.setdefault(
            "propagate_callback_errors",
            settings.getbool("CALLBACK_PROPAGATE_EXCEPTIONS"),
        )
        kwargs.setdefault("fail_on_dataloss", settings.getbool("DOWNLOAD_FAIL_ON_DATALOSS"))
        kwargs.setdefault("default_headers", settings.getdict("DEFAULT_REQUEST_HEADERS"))
        return cls(**kwargs)

    @property
    def timeout(self) -> float:
        return self._timer.timeout

    def execute_get(
        self,
        callback: ResponseCallback,
        url: str,
        headers: Mapping[str, HeaderValue] | None = None,
        query: str = "",
        request_context: Any = None,
    ) -> None:
        self._execute_method(Method.GET, callback, url, headers, query, b"", request_context)

    def execute_head(
        self,
        callback: ResponseCallback,
        url: str,
        headers: Mapping[str, HeaderValue] | None = None,
        query: str = "",
        request_context: Any = None,
    ) -> None:
        self._execute_method(Method.HEAD, callback, url, headers, query, b"", request_context)

    def execute_post(
        self,
        callback: ResponseCallback,
        url: str,
        headers: Mapping[str, HeaderValue] | None = None,
        query: str = "",
        body: bytes | str = b"",
        request_context: Any = None,
    ) -> None:
        self._execute_method(Method.POST, callback, url, headers, query, body, request_context)

    def execute_put(
        self,
        callback: ResponseCallback,
        url: str,
        headers: Mapping[str, HeaderValue] | None = None,
        query: str = "",
        body: bytes | str = b"",
        request_context: Any = None,
    ) -> None:
        self._execute_method(Method.PUT, callback, url, headers, query, body, request_context)

    def execute_delete(
        self,
        callback: ResponseCallback,
        url: str,
        headers: Mapping[str, HeaderValue] | None = None,
        query: str = "",
        body: bytes | str = b"",
        request_context: Any = None,
    ) -> None:
        self._execute_method(Method.DELETE, callback, url, headers, query, body, request_context)

    def _execute_method(
        self,
        method: Method,
        callback: ResponseCallback,
        url: str,
        headers: Mapping[str, HeaderValue] | None,
        query: str,
        body: bytes | str,
        request_context: Any,
    ) -> None:
        request = OutgoingRequest(
            method,
            url,
            headers=dict(headers or {}),
            query=query,
            body=body,  # type: ignore[arg-type]
            context=request_context,
        )
        self.execute(callback, request)

    def execute(self, callback: ResponseCallback, request: OutgoingRequest) -> None:
        """Start executing ``request``; ``callback`` receives the outcome."""
        if self.state is not ExecutionState.CREATED:
            raise RuntimeError(f"{self!r} has already executed a request")
        if self.default_headers:
            headers = {
                key: value
                for key, value in self.default_headers.items()
                if not has_header(request.headers, key)
            }
            headers.update(request.headers)
            request = dataclasses.replace(request, headers=headers)
        self.request = request
        self._dispatcher = CallbackDispatcher(
            callback,
            self.client_context,
            request.context,
            timer=self._timer,
            propagate_errors=self._propagate_callback_errors,
            logger=self.logger,
        )
        self._timer.start(self._on_timeout)
        self.deferred = Deferred.fromCoroutine(self._run(request))

    def close(self) -> None:
        """Abandon the request.

        If the callback has not fired yet it fires now, with error
        ``"abandoned"`` unless an error was already recorded. The connection
        is aborted and the deadline cancelled. Closing an executor that never
        started, or whose callback already fired, only releases resources.
        """
        if self._dispatcher is None or self._dispatcher.fired:
            self._timer.cancel()
            self._release(abort=True)
            return
        self.logger.warning(
            "Abandoning %(method)s %(url)s while %(state)s",
            self._log_args(),
        )
        if not self.response.error:
            self.response.error = "abandoned"
            self.response.error_kind = ErrorKind.ABANDONED
        self._set_state(ExecutionState.COMPLETED)
        self._release(abort=True)
        self._dispatcher.complete(self.response)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def _run(self, request: OutgoingRequest) -> ResponseInfo:
        try:
            parts = request.url_parts()
            frame = request.frame(parts)
            self.logger.debug("request frame:\r\n%s", frame.decode("utf-8", "replace"))
            addresses = await self._resolve(parts)
            protocol = await self._connect(parts, addresses, request.method)
            self._send(parts, protocol, frame)
            self._set_state(ExecutionState.RECEIVING_HEADERS)
            await self._wait(protocol.headers_received)
            self._set_state(ExecutionState.RECEIVING_BODY)
            await self._wait(protocol.finished)
        except Exception as exc:
            if self.state is ExecutionState.COMPLETED:
                # the deadline or close() already reported this request
                self.logger.debug(
                    "Pipeline of %(method)s %(url)s unwound after completion: %(error)r",
                    {**self._log_args(), "error": exc},
                )
                return self.response
            self._record_failure(exc)
        else:
            self.logger.debug(
                "Executed %(method)s %(url)s: %(status)d %(reason)s",
                {
                    **self._log_args(),
                    "status": self.response.status,
                    "reason": self.response.reason,
                },
            )
        self._complete()
        return self.response

    async def _resolve(self, parts: UrlParts) -> list[Address]:
        self._set_state(ExecutionState.RESOLVING)
        try:
            addresses = await self._wait(self.resolver.resolve(parts.host, parts.service))
        except Exception as exc:
            if self.state is ExecutionState.COMPLETED:
                raise
            raise ResolveFailure(
                f"can not resolve addr which has host={parts.host} and "
                f"service={parts.service}, error:{_describe(exc)}"
            ) from exc
        if not addresses:
            raise ResolveFailure(
                f"can not resolve addr which has host={parts.host} and "
                f"service={parts.service}, error:{_describe(None)}"
            )
        return addresses

    async def _connect(
        self, parts: UrlParts, addresses: list[Address], method: Method
    ) -> HTTP11ClientProtocol:
        self._set_state(ExecutionState.CONNECTING)
        last_error: Exception | None = None
        for address in addresses:
            endpoint_cls = (
                TCP6ClientEndpoint if isinstance(address, IPv6Address) else TCP4ClientEndpoint
            )
            endpoint = endpoint_cls(self.reactor, address.host, address.port)
            protocol = HTTP11ClientProtocol(
                self.response, method, self.fail_on_dataloss, self.logger
            )
            try:
                await self._wait(connectProtocol(endpoint, protocol))
            except Exception as exc:
                if self.state is ExecutionState.COMPLETED:
                    raise
                self.logger.debug(
                    "can not connect to %(host)s:%(port)s: %(error)s",
                    {"host": address.host, "port": address.port, "error": _describe(exc)},
                )
                last_error = exc
                continue
            self._protocol = protocol
            return protocol
        raise ConnectFailure(
            f"can not connect to addr which has host={parts.host} and "
            f"service={parts.service}, error:{_describe(last_error)}"
        )

    def _send(self, parts: UrlParts, protocol: HTTP11ClientProtocol, frame: bytes) -> None:
        self._set_state(ExecutionState.SENDING)
        try:
            protocol.send(frame)
        except Exception as exc:
            raise SendFailure(
                f"can not send data to addr which has host={parts.host} and "
                f"service={parts.service}, error:{_describe(exc)}"
            ) from exc

    async def _wait(self, d: Deferred[Any]) -> Any:
        self._pending = d
        try:
            return await d
        finally:
            self._pending = None

    def _record_failure(self, exc: Exception) -> None:
        if isinstance(exc, RequestFailed):
            self.response.error = exc.message
            self.response.error_kind = exc.kind
        else:
            self.logger.error(
                "Unexpected error while %(state)s %(method)s %(url)s",
                self._log_args(),
                exc_info=True,
            )
            self.response.error = f"unexpected error: {_describe(exc)}"
            self.response.error_kind = _STAGE_KINDS[self.state]
        self.logger.error(
            "Error executing %(method)s %(url)s: %(error)s",
            {**self._log_args(), "error": self.response.error},
        )

    def _complete(self) -> None:
        assert self._dispatcher is not None
        self._set_state(ExecutionState.COMPLETED)
        self._release(abort=False)
        self._dispatcher.complete(self.response)

    def _on_timeout(self) -> None:
        if self.state is ExecutionState.COMPLETED:
            return
        assert self._dispatcher is not None
        self.logger.error(
            "Timed out after %(timeout)ss while %(state)s %(method)s %(url)s",
            {**self._log_args(), "timeout": self.timeout},
        )
        self._set_state(ExecutionState.COMPLETED)
        self.response.timed_out = True
        self.response.error = "timeout"
        self.response.error_kind = ErrorKind.TIMEOUT
        self._release(abort=True)
        self._dispatcher.complete(self.response)

    def _release(self, abort: bool) -> None:
        pending, self._pending = self._pending, None
        if pending is not None and not pending.called:
            pending.cancel()
        protocol = self._protocol
        if protocol is not None and protocol.transport is not None:
            if abort:
                protocol.transport.abortConnection()
            else:
                protocol.transport.loseConnection()

    def _set_state(self, state: ExecutionState) -> None:
        if state is not self.state:
            self.logger.debug(
                "%(method)s %(url)s: %(old)s -> %(new)s",
                {**self._log_args(), "old": self.state.value, "new": state.value},
            )
        self.state = state

    def _log_args(self) -> dict[str, Any]:
        request = self.request
        return {
            "method": request.method.value if request else None,
            "url": request.url if request else None,
            "state": self.state.value,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.state.value}>"
