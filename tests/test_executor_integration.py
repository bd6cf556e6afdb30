"""
End-to-end tests against a server listening on the loopback interface.
"""

from twisted.internet import reactor
from twisted.internet.defer import Deferred, inlineCallbacks
from twisted.internet.protocol import Protocol, ServerFactory
from twisted.trial import unittest

from asynchttpclient.core.executor import RequestExecutor
from asynchttpclient.exceptions import ErrorKind


class CannedResponse(Protocol):
    """Answer the first request with the factory's pieces, one per 10ms."""

    def connectionMade(self):
        self.buffer = b""
        self.responded = False

    def dataReceived(self, data):
        self.buffer += data
        if self.responded or b"\r\n\r\n" not in self.buffer:
            return
        self.responded = True
        self.factory.request.callback(self.buffer)
        delay = 0.0
        for piece in self.factory.pieces:
            reactor.callLater(delay, self.transport.write, piece)
            delay += 0.01
        if self.factory.close:
            reactor.callLater(delay, self.transport.loseConnection)

    def connectionLost(self, reason):
        self.factory.lost.callback(None)


class CannedResponseFactory(ServerFactory):
    protocol = CannedResponse

    def __init__(self, pieces=(), close=False):
        self.pieces = pieces
        self.close = close
        self.request = Deferred()
        self.lost = Deferred()


class RequestExecutorIntegrationTest(unittest.TestCase):
    def listen(self, *pieces, close=False):
        self.factory = CannedResponseFactory(pieces, close)
        self.port = reactor.listenTCP(0, self.factory, interface="127.0.0.1")
        self.addCleanup(self.port.stopListening)

    def url(self, path="/"):
        return f"http://127.0.0.1:{self.port.getHost().port}{path}"

    @inlineCallbacks
    def execute(self, method="get", path="/", timeout=5, **kwargs):
        done = Deferred()
        executor = RequestExecutor(reactor=reactor, timeout=timeout)
        execute = getattr(executor, f"execute_{method}")
        execute(lambda response, *contexts: done.callback(response), self.url(path), **kwargs)
        response = yield done
        yield self.factory.lost
        return response

    @inlineCallbacks
    def test_content_length(self):
        self.listen(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhe", b"llo")
        response = yield self.execute(path="/path?a=1", query="b=2")
        request = yield self.factory.request
        port = self.port.getHost().port
        assert request.startswith(
            f"GET http://127.0.0.1:{port}/path?a=1&b=2 HTTP/1.1\r\n".encode()
        )
        assert f"Host: 127.0.0.1:{port}\r\n".encode() in request
        assert response.ok
        assert response.status == 200
        assert response.content == b"hello"

    @inlineCallbacks
    def test_chunked(self):
        self.listen(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n",
            b"5\r\nhel",
            b"lo\r\n6\r\n world\r\n",
            b"0\r\n\r\n",
        )
        response = yield self.execute()
        assert response.ok
        assert response.content == b"hello world"
        assert response.raw.endswith(b"0\r\n\r\n")

    @inlineCallbacks
    def test_until_close(self):
        self.listen(b"HTTP/1.0 200 OK\r\n\r\nall ", b"of it", close=True)
        response = yield self.execute("post", body=b"payload")
        request = yield self.factory.request
        assert request.startswith(b"POST ")
        assert response.ok
        assert response.content == b"all of it"

    @inlineCallbacks
    def test_no_content(self):
        self.listen(b"HTTP/1.1 204 No Content\r\n\r\n")
        response = yield self.execute("delete")
        assert response.ok
        assert response.status == 204
        assert response.content == b""

    @inlineCallbacks
    def test_timeout(self):
        self.listen()
        response = yield self.execute(timeout=0.2)
        assert response.timed_out
        assert response.error == "timeout"
        assert response.error_kind is ErrorKind.TIMEOUT
