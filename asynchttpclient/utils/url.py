"""
This module contains general purpose URL functions not found in the standard
library.

The URL decomposition implemented here is deliberately simpler than
:func:`urllib.parse.urlsplit`: it only extracts what is needed to resolve the
server address and to write the request line.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote_plus

from asynchttpclient.utils.python import to_bytes

if TYPE_CHECKING:
    from collections.abc import Mapping


logger = logging.getLogger(__name__)

_authority_end_re = re.compile(r"[/?]")
_leading_digits_re = re.compile(r"\d+")

DEFAULT_SCHEME = "http"


@dataclass(frozen=True)
class UrlParts:
    """The pieces of a URL needed to execute a request.

    ``netloc`` keeps the port (it is what goes into the request line and the
    ``Host`` header) while ``host`` never does (it is what gets resolved).
    ``service`` is handed to the resolver instead of a port: the port number
    as text if the URL has one, the scheme otherwise.
    """

    scheme: str = DEFAULT_SCHEME
    netloc: str = ""
    path: str = "/"
    host: str = ""
    query: str = ""
    port: int = 0
    service: str = DEFAULT_SCHEME


def _parse_port(port_str: str) -> int:
    match = _leading_digits_re.match(port_str.strip())
    port = int(match.group()) if match else 0
    if not 0 < port <= 65535:
        logger.warning(
            "port str[%(port)s] can not be converted to number, set port number 0",
            {"port": port_str},
        )
        return 0
    return port


def parse_url(url: str) -> UrlParts:
    """Split ``url`` into :class:`UrlParts`.

    >>> parse_url("example.com:8080/a?b=1")
    UrlParts(scheme='http', netloc='example.com:8080', path='/a', host='example.com', query='b=1', port=8080, service='8080')
    """
    scheme = ""
    scheme_end = url.find("://")
    if scheme_end != -1:
        scheme = url[:scheme_end].lower()
    scheme = scheme or DEFAULT_SCHEME

    start = 0 if scheme_end == -1 else scheme_end + 3
    match = _authority_end_re.search(url, start)
    if match is None:
        netloc, path = url[start:], "/"
    else:
        netloc, path = url[start : match.start()], url[match.start() :]

    query = ""
    path, sep, rest = path.partition("?")
    if sep:
        query = rest
    path = path or "/"

    host, sep, port_str = netloc.partition(":")
    port = _parse_port(port_str) if sep else 0
    service = str(port) if port else scheme

    parts = UrlParts(
        scheme=scheme,
        netloc=netloc,
        path=path,
        host=host,
        query=query,
        port=port,
        service=service,
    )
    logger.debug("url[%s] parse result: %r", url, parts)
    return parts


def url_encode(data: str | bytes, encoding: str = "utf-8") -> str:
    """Percent-encode ``data`` for use in a query string.

    ASCII letters, digits and ``-_.~`` are kept, a space becomes ``+`` and
    every other byte becomes ``%XX`` with upper-case hex digits.
    """
    return quote_plus(to_bytes(data, encoding), safe="")


def _hexval(byte: int) -> int:
    if 0x30 <= byte <= 0x39:
        return byte - 0x30
    if 0x41 <= byte <= 0x46:
        return byte - 0x41 + 10
    if 0x61 <= byte <= 0x66:
        return byte - 0x61 + 10
    return 0


def url_decode(text: str | bytes) -> bytes:
    """Reverse :func:`url_encode`.

    ``+`` decodes to a space. Decoding stops at a ``%`` that is not followed
    by two more characters; a non-hex digit in an escape counts as ``0``.
    """
    data = to_bytes(text)
    decoded = bytearray()
    i, length = 0, len(data)
    while i < length:
        byte = data[i]
        if byte == 0x2B:  # +
            decoded.append(0x20)
            i += 1
        elif byte == 0x25:  # %
            if i + 2 >= length:
                break
            decoded.append(_hexval(data[i + 1]) * 16 + _hexval(data[i + 2]))
            i += 3
        else:
            decoded.append(byte)
            i += 1
    return bytes(decoded)


def _split_any(text: str, separators: str) -> list[str]:
    if not separators:
        return [text]
    return re.split(f"[{re.escape(separators)}]", text)


def build_kv_string(
    params: Mapping[str, str], kv_sep: str = "=", pair_sep: str = "&"
) -> str:
    """Pack ``params`` into ``k1=v1&k2=v2`` form, keys in ascending order."""
    return pair_sep.join(f"{key}{kv_sep}{params[key]}" for key in sorted(params))


def parse_kv_string(text: str, kv_sep: str = "=", pair_sep: str = "&") -> dict[str, str]:
    """Unpack a string built by :func:`build_kv_string`.

    Both separators are sets of characters: the text is split on any of them.
    Empty pairs and pairs that do not split into exactly a key and a value are
    skipped with a warning.
    """
    params: dict[str, str] = {}
    for pair in _split_any(text, pair_sep):
        if not pair:
            logger.warning("encountered an empty pair")
            continue
        kv = _split_any(pair, kv_sep)
        if len(kv) != 2:
            logger.warning(
                "encountered a pair[%(pair)s] which can not split 2 parts by [%(sep)s]",
                {"pair": pair, "sep": kv_sep},
            )
            continue
        params[kv[0]] = kv[1]
    return params
