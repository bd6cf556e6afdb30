from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from twisted.internet.interfaces import IDelayedCall, IReactorTime


logger = logging.getLogger(__name__)


class DeadlineTimer:
    """A one-shot timer racing the request pipeline.

    A ``timeout`` of ``0`` or ``None`` disables the deadline: :meth:`start`
    does nothing and the request may take as long as the server does.
    """

    def __init__(self, reactor: IReactorTime, timeout: float | None):
        self._reactor = reactor
        self.timeout: float = timeout or 0
        self._call: IDelayedCall | None = None

    @property
    def active(self) -> bool:
        return self._call is not None and self._call.active()

    def start(self, on_expire: Callable[[], object]) -> None:
        if self._call is not None:
            raise RuntimeError("DeadlineTimer already started")
        if not self.timeout:
            return
        self._call = self._reactor.callLater(self.timeout, on_expire)

    def cancel(self) -> None:
        if self.active:
            assert self._call is not None
            self._call.cancel()
