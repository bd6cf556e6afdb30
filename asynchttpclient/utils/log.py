from __future__ import annotations

import logging
import sys
from logging.config import dictConfig
from typing import TYPE_CHECKING, Any

from twisted.python import log as twisted_log
from twisted.python.failure import Failure

from asynchttpclient.settings import Settings

if TYPE_CHECKING:
    from types import TracebackType

    from asynchttpclient.settings import BaseSettings


def failure_to_exc_info(
    failure: Failure,
) -> tuple[type[BaseException], BaseException, TracebackType | None] | None:
    """Extract exc_info from Failure instances"""
    if isinstance(failure, Failure):
        assert failure.type
        assert failure.value
        return (
            failure.type,
            failure.value,
            failure.getTracebackObject(),
        )
    return None


class TopLevelFormatter(logging.Filter):
    """Keep only the top level part of the logger names of ``loggers``.

    With ``loggers=["asynchttpclient"]`` a record from
    ``asynchttpclient.core.executor`` is shown as coming from
    ``asynchttpclient``. This is a filter rather than a formatter because it
    only touches the record name.
    """

    def __init__(self, loggers: list[str] | None = None):
        super().__init__()
        self.loggers: list[str] = loggers or []

    def filter(self, record: logging.LogRecord) -> bool:
        if any(record.name.startswith(logger + ".") for logger in self.loggers):
            record.name = record.name.split(".", 1)[0]
        return True


DEFAULT_LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "loggers": {
        "asynchttpclient": {
            "level": "DEBUG",
        },
        "twisted": {
            "level": "ERROR",
        },
    },
}


def configure_logging(
    settings: Settings | dict[str, Any] | None = None,
    install_root_handler: bool = True,
) -> None:
    """
    Initialize logging defaults.

    This function does:

    - Route warnings and twisted logging through Python standard logging
    - Assign DEBUG and ERROR level to the asynchttpclient and Twisted
      loggers respectively
    - Create a root handler from the ``LOG_*`` settings when
      ``install_root_handler`` is true

    Applications that configure logging themselves should pass
    ``install_root_handler=False``, or not call this function at all: the
    package logger carries a :class:`logging.NullHandler`, so nothing is
    emitted unless a handler is installed somewhere.

    :param settings: settings used to create and configure a handler for the
        root logger (default: None).
    :type settings: dict, :class:`~asynchttpclient.settings.Settings` object or ``None``

    :param install_root_handler: whether to install root logging handler
        (default: True)
    :type install_root_handler: bool
    """
    if not sys.warnoptions:
        # Route warnings through python logging
        logging.captureWarnings(True)

    observer = twisted_log.PythonLoggingObserver("twisted")
    observer.start()

    dictConfig(DEFAULT_LOGGING)

    if isinstance(settings, dict) or settings is None:
        settings = Settings(settings)

    if install_root_handler:
        install_root_handler_from_settings(settings)


_root_handler: logging.Handler | None = None


def install_root_handler_from_settings(settings: BaseSettings) -> None:
    global _root_handler  # noqa: PLW0603

    _uninstall_root_handler()
    logging.root.setLevel(logging.NOTSET)
    _root_handler = _get_handler(settings)
    logging.root.addHandler(_root_handler)


def _uninstall_root_handler() -> None:
    global _root_handler  # noqa: PLW0603

    if _root_handler is not None and _root_handler in logging.root.handlers:
        logging.root.removeHandler(_root_handler)
    _root_handler = None


def get_root_handler() -> logging.Handler | None:
    return _root_handler


def _get_handler(settings: BaseSettings) -> logging.Handler:
    """Return a log handler object according to settings"""
    filename = settings.get("LOG_FILE")
    handler: logging.Handler
    if filename:
        mode = "a" if settings.getbool("LOG_FILE_APPEND") else "w"
        encoding = settings.get("LOG_ENCODING")
        handler = logging.FileHandler(filename, mode=mode, encoding=encoding)
    elif settings.getbool("LOG_ENABLED"):
        handler = logging.StreamHandler()
    else:
        handler = logging.NullHandler()

    formatter = logging.Formatter(
        fmt=settings.get("LOG_FORMAT"), datefmt=settings.get("LOG_DATEFORMAT")
    )
    handler.setFormatter(formatter)
    handler.setLevel(settings.get("LOG_LEVEL"))
    if settings.getbool("LOG_SHORT_NAMES"):
        handler.addFilter(TopLevelFormatter(["asynchttpclient"]))
    return handler
