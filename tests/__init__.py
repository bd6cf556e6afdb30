"""
tests: this package contains all asynchttpclient unittests

Run them with ``pytest`` from the repository root.
"""

from __future__ import annotations

from twisted.internet.address import IPv4Address
from twisted.internet.defer import Deferred, fail, succeed
from zope.interface import implementer

from asynchttpclient.resolver import IAddressResolver


@implementer(IAddressResolver)
class StubResolver:
    """Resolver answering from a fixed address list, without any lookup.

    With ``pending=True`` the returned Deferred never fires on its own; it is
    kept in :attr:`deferred` so that tests can fire or inspect it.
    """

    def __init__(self, addresses=None, error=None, pending=False):
        if addresses is None:
            addresses = [IPv4Address("TCP", "127.0.0.1", 80)]
        self.addresses = addresses
        self.error = error
        self.pending = pending
        self.calls = []
        self.deferred = None

    def resolve(self, host, service):
        self.calls.append((host, service))
        if self.pending:
            self.deferred = Deferred()
            return self.deferred
        if self.error is not None:
            return fail(self.error)
        return succeed(list(self.addresses))
