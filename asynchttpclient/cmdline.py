"""
``asynchttp [options] <url>``: execute one request and print the response.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING, Any

from twisted.internet.defer import Deferred
from twisted.internet.task import react
from w3lib.url import is_url

import asynchttpclient
from asynchttpclient.core.executor import RequestExecutor
from asynchttpclient.exceptions import UsageError
from asynchttpclient.http.request import Method, OutgoingRequest
from asynchttpclient.settings import Settings
from asynchttpclient.utils.log import configure_logging, failure_to_exc_info

if TYPE_CHECKING:
    from collections.abc import Callable

    from twisted.internet.interfaces import IReactorTCP
    from twisted.python.failure import Failure

    from asynchttpclient.http.response import ResponseInfo


logger = logging.getLogger(__name__)


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asynchttp",
        usage="asynchttp [options] <url>",
        description=(
            "Execute a single HTTP/1.1 request and print the response body"
            " to stdout. You may want to use --nolog to disable logging"
        ),
    )
    parser.add_argument("url", nargs="?", help="absolute URL to request")
    parser.add_argument(
        "-X",
        "--method",
        default="GET",
        type=str.upper,
        choices=[m.value for m in Method],
        help="request method (default: GET)",
    )
    parser.add_argument(
        "-H",
        "--header",
        dest="headers_in",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="add a request header (may be repeated)",
    )
    parser.add_argument("-d", "--data", default="", help="request body")
    parser.add_argument("--query", default="", help="extra query string")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"deadline in seconds, 0 disables it (default: {settings['DOWNLOAD_TIMEOUT']})",
    )
    parser.add_argument(
        "--headers",
        dest="headers",
        action="store_true",
        help="print response HTTP headers instead of body",
    )
    parser.add_argument(
        "--version", action="version", version=f"asynchttp {asynchttpclient.__version__}"
    )

    group = parser.add_argument_group(title="Global Options")
    group.add_argument(
        "--logfile", metavar="FILE", help="log file. if omitted stderr will be used"
    )
    group.add_argument(
        "-L",
        "--loglevel",
        metavar="LEVEL",
        default=None,
        help=f"log level (default: {settings['LOG_LEVEL']})",
    )
    group.add_argument(
        "--nolog", action="store_true", help="disable logging completely"
    )
    group.add_argument(
        "-s",
        "--set",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="set/override setting (may be repeated)",
    )
    return parser


def _parse_headers(lines: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if not sep or not key.strip():
            raise UsageError(f"Invalid -H value {line!r}, use -H 'NAME: VALUE'", print_help=False)
        headers[key.strip()] = value.strip()
    return headers


def process_options(settings: Settings, opts: argparse.Namespace) -> None:
    try:
        settings.setdict(dict(x.split("=", 1) for x in opts.set), priority="cmdline")
    except ValueError:
        raise UsageError("Invalid -s value, use -s NAME=VALUE", print_help=False)

    if opts.logfile:
        settings.set("LOG_ENABLED", True, priority="cmdline")
        settings.set("LOG_FILE", opts.logfile, priority="cmdline")

    if opts.loglevel:
        settings.set("LOG_ENABLED", True, priority="cmdline")
        settings.set("LOG_LEVEL", opts.loglevel, priority="cmdline")

    if opts.nolog:
        settings.set("LOG_ENABLED", False, priority="cmdline")

    if opts.timeout is not None:
        settings.set("DOWNLOAD_TIMEOUT", opts.timeout, priority="cmdline")

    if not opts.url or not is_url(opts.url):
        raise UsageError
    opts.request_headers = _parse_headers(opts.headers_in)


def _print_bytes(bytes_: bytes) -> None:
    sys.stdout.buffer.write(bytes_ + b"\n")


def print_response(response: ResponseInfo, opts: argparse.Namespace) -> int:
    """Print ``response`` and return the process exit code."""
    if not response.ok:
        sys.stderr.write(f"asynchttp: {response.error}\n")
        return 1
    if opts.headers:
        print(f"< {response.http_version} {response.status} {response.reason}")
        for key, value in response.headers.items():
            print(f"< {key}: {value}")
    else:
        _print_bytes(response.content)
    return 0


def run(
    reactor: IReactorTCP, opts: argparse.Namespace, settings: Settings
) -> Deferred[None]:
    request = OutgoingRequest(
        Method(opts.method),
        opts.url,
        headers=opts.request_headers,
        query=opts.query,
        body=opts.data.encode("utf-8"),
    )
    executor = RequestExecutor.from_settings(settings, reactor=reactor)
    done: Deferred[ResponseInfo] = Deferred()

    def callback(response: ResponseInfo, client_context: Any, request_context: Any) -> None:
        done.callback(response)

    executor.execute(callback, request)
    assert executor.deferred is not None
    executor.deferred.addErrback(_log_failure)
    return done.addCallback(_exit_with, opts)


def _log_failure(failure: Failure) -> None:
    logger.error(
        "Request pipeline failed", exc_info=failure_to_exc_info(failure)
    )


def _exit_with(response: ResponseInfo, opts: argparse.Namespace) -> None:
    code = print_response(response, opts)
    if code:
        raise SystemExit(code)


def _run_print_help(
    parser: argparse.ArgumentParser,
    func: Callable[..., None],
    *a: Any,
    **kw: Any,
) -> None:
    try:
        func(*a, **kw)
    except UsageError as e:
        if str(e):
            parser.error(str(e))
        if e.print_help:
            parser.print_help()
        sys.exit(2)


def execute(argv: list[str] | None = None, settings: Settings | None = None) -> None:
    if argv is None:
        argv = sys.argv
    if settings is None:
        settings = Settings()

    parser = _build_parser(settings)
    opts = parser.parse_args(args=argv[1:])
    _run_print_help(parser, process_options, settings, opts)

    configure_logging(settings)
    react(run, (opts, settings))


if __name__ == "__main__":
    execute()
