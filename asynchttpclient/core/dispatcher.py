from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:
    from asynchttpclient.core.deadline import DeadlineTimer
    from asynchttpclient.http.response import ResponseInfo


ResponseCallback = Callable[["ResponseInfo", Any, Any], Any]
LoggerT = Union[logging.Logger, logging.LoggerAdapter]

default_logger = logging.getLogger(__name__)


class CallbackDispatcher:
    """Deliver the outcome of a request to its callback, exactly once.

    Both the pipeline and the deadline timer (and the owner, through
    :meth:`RequestExecutor.close`) try to complete a request; whichever comes
    second finds the latch set and does nothing.
    """

    def __init__(
        self,
        callback: ResponseCallback,
        client_context: Any = None,
        request_context: Any = None,
        timer: DeadlineTimer | None = None,
        propagate_errors: bool = False,
        logger: LoggerT = default_logger,
    ):
        self.callback = callback
        self.client_context = client_context
        self.request_context = request_context
        self.fired: bool = False
        self._timer = timer
        self._propagate_errors = propagate_errors
        self._logger = logger

    def complete(self, response: ResponseInfo) -> bool:
        """Fire the callback with ``response`` unless it already fired.

        Returns whether this call delivered the response.
        """
        if self.fired:
            return False
        if self._timer is not None:
            self._timer.cancel()
        self.fired = True
        try:
            self.callback(response, self.client_context, self.request_context)
        except Exception:
            self._logger.error(
                "Error caught on response callback %(callback)r",
                {"callback": self.callback},
                exc_info=True,
            )
            if self._propagate_errors:
                raise
        return True
