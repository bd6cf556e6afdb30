from __future__ import annotations

import logging
import socket
from typing import TYPE_CHECKING, Union

from twisted.internet.address import IPv4Address, IPv6Address
from twisted.internet.threads import deferToThreadPool
from zope.interface import Interface, implementer

if TYPE_CHECKING:
    from twisted.internet.defer import Deferred
    from twisted.internet.interfaces import IReactorThreads


logger = logging.getLogger(__name__)

Address = Union[IPv4Address, IPv6Address]


class IAddressResolver(Interface):
    def resolve(host: str, service: str) -> Deferred[list[Address]]:
        """Return a Deferred firing with the TCP addresses of ``host``.

        ``service`` is either a port number as text or a service name such as
        ``"http"``. Failures are reported through the Deferred's errback.
        """


def _to_addresses(infos: list[tuple]) -> list[Address]:
    addresses: list[Address] = []
    for family, _, _, _, sockaddr in infos:
        if family == socket.AF_INET6:
            addresses.append(IPv6Address("TCP", sockaddr[0], sockaddr[1]))
        elif family == socket.AF_INET:
            addresses.append(IPv4Address("TCP", sockaddr[0], sockaddr[1]))
    return addresses


@implementer(IAddressResolver)
class ThreadedAddressResolver:
    """
    Resolve with :func:`socket.getaddrinfo` in the reactor thread pool, so the
    reactor thread never blocks. IPv4 and IPv6 addresses are returned in the
    order the system resolver gives them.
    """

    def __init__(self, reactor: IReactorThreads):
        self.reactor = reactor

    def resolve(self, host: str, service: str) -> Deferred[list[Address]]:
        logger.debug(
            "resolving host=%(host)s service=%(service)s",
            {"host": host, "service": service},
        )
        d = deferToThreadPool(
            self.reactor,
            self.reactor.getThreadPool(),
            socket.getaddrinfo,
            host,
            service,
            0,
            socket.SOCK_STREAM,
        )
        d.addCallback(_to_addresses)
        return d
