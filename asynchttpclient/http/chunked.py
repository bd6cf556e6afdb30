from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_chunk_size_re = re.compile(rb"[0-9a-fA-F]+")


def _chunk_size(field: bytes) -> int:
    # leading hex digits only, so chunk extensions ("5;name=value") are ignored
    match = _chunk_size_re.match(field)
    return int(match.group(), 16) if match else 0


class ChunkDecoder:
    """Decode a ``Transfer-Encoding: chunked`` body as it arrives.

    Every call to :meth:`feed` rescans everything received so far, so the
    decoder can be fed arbitrary slices of the stream, including slices that
    end in the middle of a size line or of chunk data.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.content: bytes = b""
        self.done: bool = False

    def feed(self, data: bytes) -> tuple[bytes, bool]:
        """Add ``data`` and return ``(content decoded so far, done)``."""
        self._buffer += data
        content = bytearray()
        done = False
        pos = 0
        while True:
            eol = self._buffer.find(b"\r\n", pos)
            if eol == -1:
                break
            field = bytes(self._buffer[pos:eol]).strip()
            if not field:
                pos = eol + 2
                continue
            size = _chunk_size(field)
            if size == 0:
                done = True
                break
            start = eol + 2
            content += self._buffer[start : start + size]
            pos = start + size + 2
        self.content, self.done = bytes(content), done
        logger.debug(
            "chunked body: %(received)d bytes received, %(decoded)d decoded, done=%(done)s",
            {"received": len(self._buffer), "decoded": len(content), "done": done},
        )
        return self.content, self.done
