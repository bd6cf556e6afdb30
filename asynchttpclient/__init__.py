"""
asynchttpclient - one-shot asynchronous HTTP/1.1 requests on the Twisted reactor
"""

import logging
import pkgutil

# Declare top-level shortcuts
from asynchttpclient.core.executor import ExecutionState, RequestExecutor
from asynchttpclient.exceptions import ErrorKind
from asynchttpclient.http import Method, OutgoingRequest, ResponseInfo
from asynchttpclient.settings import Settings

__all__ = [
    "ErrorKind",
    "ExecutionState",
    "Method",
    "OutgoingRequest",
    "RequestExecutor",
    "ResponseInfo",
    "Settings",
    "__version__",
    "version_info",
]


__version__ = (pkgutil.get_data(__package__, "VERSION") or b"").decode("ascii").strip()
version_info = tuple(int(v) if v.isdigit() else v for v in __version__.split("."))


# Nothing is emitted unless the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())


del logging
del pkgutil
