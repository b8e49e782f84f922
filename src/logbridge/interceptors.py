"""
Adapters for republishing logs produced by other logging channels.

Nothing is wired implicitly: the host application forwards events with
:func:`forward_log_event` or routes stdlib loggers here with
:func:`capture_loggers`.
"""

from __future__ import annotations

import logging
import sys
import threading
import traceback
from collections.abc import Mapping
from typing import Any

from .core import get
from .levels import map_level
from .logger import Logger, PrefixedLogger


def _field(event: Any, name: str) -> Any:
    if isinstance(event, Mapping):
        return event.get(name)
    return getattr(event, name, None)


def compose_message(prefix: Any, message: Any) -> str:
    """``prefix: message`` when both are present, otherwise whichever is."""
    if prefix and message:
        return f"{prefix}: {message}"
    return str(prefix or message or "")


def forward_log_event(event: Any, logger: Logger | PrefixedLogger | None = None) -> None:
    """Republish one foreign log event (``level``, ``prefix``, ``message``).

    The level goes through the level mapper, so npm-style names such as
    ``silly`` or ``http`` land on debug and info.
    """
    target = logger or get()
    severity = map_level(_field(event, "level"))
    target.log(severity, compose_message(_field(event, "prefix"), _field(event, "message")))


class ForwardingHandler(logging.Handler):
    """
    Redirect standard library logging records into the facade.
    The record's logger name becomes the message prefix.
    """

    def __init__(self, logger: Logger | PrefixedLogger | None = None, level: int = logging.NOTSET):
        super().__init__(level)
        self._target = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            # Skip structlog's own records to avoid loops
            if "structlog" in record.name:
                return
            forward_log_event(
                {"level": record.levelno, "prefix": record.name, "message": self.format(record)},
                self._target,
            )
        except Exception:
            self.handleError(record)


def capture_loggers(
    *names: str,
    logger: Logger | PrefixedLogger | None = None,
    level: int = logging.NOTSET,
) -> list[ForwardingHandler]:
    """Attach a :class:`ForwardingHandler` to each named stdlib logger.

    Existing handlers are removed and propagation is turned off so captured
    records are written once, by the facade's sinks.
    """
    handlers = []
    for name in names:
        std_logger = logging.getLogger(name)
        for existing in list(std_logger.handlers):
            std_logger.removeHandler(existing)
        handler = ForwardingHandler(logger, level)
        std_logger.addHandler(handler)
        std_logger.propagate = False
        if level != logging.NOTSET:
            std_logger.setLevel(level)
        handlers.append(handler)
    return handlers


# =============================================================================
# Uncaught Exceptions
# =============================================================================

_previous_hooks: tuple[Any, Any] | None = None


def _log_uncaught(
    logger: Logger | PrefixedLogger,
    exc_type: type[BaseException],
    exc_value: BaseException | None,
    exc_tb: Any,
    origin: str = "",
) -> None:
    text = "".join(traceback.format_exception(exc_type, exc_value, exc_tb)).rstrip()
    logger.error(f"Uncaught exception{origin}:\n{text}")


def install_exception_hooks(logger: Logger | PrefixedLogger) -> None:
    """Log uncaught exceptions at ``error``, then defer to the previous hooks.

    Covers the main thread (``sys.excepthook``) and other threads
    (``threading.excepthook``). KeyboardInterrupt and SystemExit go straight
    to the previous hook. Installing twice keeps the first set of hooks.
    """
    global _previous_hooks
    if _previous_hooks is not None:
        return
    previous_sys, previous_thread = sys.excepthook, threading.excepthook

    def sys_hook(exc_type, exc_value, exc_tb):
        if not issubclass(exc_type, (KeyboardInterrupt, SystemExit)):
            _log_uncaught(logger, exc_type, exc_value, exc_tb)
        previous_sys(exc_type, exc_value, exc_tb)

    def thread_hook(args):
        if not issubclass(args.exc_type, (KeyboardInterrupt, SystemExit)):
            name = args.thread.name if args.thread is not None else "<unknown>"
            _log_uncaught(logger, args.exc_type, args.exc_value, args.exc_traceback, f" in thread {name}")
        previous_thread(args)

    sys.excepthook = sys_hook
    threading.excepthook = thread_hook
    _previous_hooks = (previous_sys, previous_thread)


def restore_exception_hooks() -> None:
    """Put back the hooks that were active before :func:`install_exception_hooks`."""
    global _previous_hooks
    if _previous_hooks is None:
        return
    sys.excepthook, threading.excepthook = _previous_hooks
    _previous_hooks = None
