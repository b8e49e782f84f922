"""
The process-wide logger and its prefixing view.
"""

from __future__ import annotations

import functools
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

import structlog
from structlog.typing import EventDict, WrappedLogger

from .formatters import render_message
from .levels import Severity, map_level, rank, to_stdlib
from .sinks import BaseSink
from .trace import annotate_stack

LogMethod = Callable[..., None]

TRACED_SEVERITIES = (Severity.INFO, Severity.WARN, Severity.ERROR)

_STRUCTLOG_METHODS = {
    Severity.DEBUG: "debug",
    Severity.INFO: "info",
    Severity.WARN: "warning",
    Severity.ERROR: "error",
}


# =============================================================================
# Structlog Processors
# =============================================================================


def normalize_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Fold structlog's level names onto the four severities."""
    event_dict["level"] = map_level(event_dict.get("level", method_name)).value
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp the event with an aware UTC datetime; sinks render it."""
    event_dict["created"] = datetime.now(timezone.utc)
    return event_dict


def add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["logger"] = event_dict.pop("_name", "root")
    return event_dict


def rename_event_key(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename 'event' to 'message'."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


class MultiSinkRenderer:
    """Final processor: hand the event to every sink that accepts it.

    Each sink is isolated; a failing sink never reaches the caller or the
    sinks after it. Returns an empty string for the silent output logger.
    """

    def __init__(self, sinks: Iterable[BaseSink]):
        self.sinks = tuple(sinks)

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        for sink in self.sinks:
            try:
                if sink.accepts(event_dict):
                    sink.emit(dict(event_dict))
            except Exception:
                pass  # Fail silently to avoid breaking the application
        return ""


class _NopFile:
    def write(self, s: str) -> None:
        pass

    def flush(self) -> None:
        pass


_NOP_FILE = _NopFile()


# =============================================================================
# Logger
# =============================================================================


class Logger:
    """Severity methods over an ordered, immutable set of sinks.

    The method table is assembled once here: with ``async_trace`` the info,
    warn and error entries are wrapped by the stack annotator.
    """

    def __init__(
        self,
        sinks: Iterable[BaseSink],
        *,
        name: str = "root",
        async_trace: bool = False,
        app_root: str | Path | None = None,
    ):
        self._sinks = tuple(sinks)
        self.name = name
        threshold = min((sink.level for sink in self._sinks), key=rank, default=Severity.DEBUG)
        self._bound = structlog.wrap_logger(
            structlog.PrintLogger(file=_NOP_FILE),
            processors=[
                structlog.stdlib.add_log_level,
                normalize_level,
                add_timestamp,
                add_logger_name,
                rename_event_key,
                MultiSinkRenderer(self._sinks),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(to_stdlib(threshold)),
            context_class=dict,
        )

        table: dict[Severity, LogMethod] = {}
        for severity in Severity:
            method: LogMethod = functools.partial(self._emit, severity)
            if async_trace and severity in TRACED_SEVERITIES:
                method = annotate_stack(method, app_root=app_root)
            table[severity] = method
        self._methods = table

    @property
    def sinks(self) -> tuple[BaseSink, ...]:
        return self._sinks

    @property
    def levels(self) -> tuple[str, ...]:
        return tuple(severity.value for severity in Severity)

    def _emit(self, severity: Severity, message: Any = "", *args: Any, **meta: Any) -> None:
        try:
            text = render_message(message, args)
            getattr(self._bound, _STRUCTLOG_METHODS[severity])(text, _name=self.name, **meta)
        except Exception:
            pass

    def log(self, level: Any, message: Any = "", *args: Any, **meta: Any) -> None:
        self._methods[map_level(level)](message, *args, **meta)

    def debug(self, message: Any = "", *args: Any, **meta: Any) -> None:
        self._methods[Severity.DEBUG](message, *args, **meta)

    def info(self, message: Any = "", *args: Any, **meta: Any) -> None:
        self._methods[Severity.INFO](message, *args, **meta)

    def warn(self, message: Any = "", *args: Any, **meta: Any) -> None:
        self._methods[Severity.WARN](message, *args, **meta)

    warning = warn

    def error(self, message: Any = "", *args: Any, **meta: Any) -> None:
        self._methods[Severity.ERROR](message, *args, **meta)

    def flush(self) -> None:
        """Wait for network sinks to hand off everything queued so far."""
        for sink in self._sinks:
            try:
                sink.flush()
            except Exception:
                pass

    def close(self) -> None:
        for sink in self._sinks:
            try:
                sink.close()
            except Exception:
                pass


class PrefixedLogger:
    """Prepends ``[prefix] `` to the first argument of every call.

    Owns no state besides the prefix; never raises.
    """

    def __init__(self, logger: Logger, prefix: str):
        self._logger = logger
        self.prefix = prefix

    def _call(self, method: str, args: tuple[Any, ...], meta: dict[str, Any], *lead: Any) -> None:
        if args:
            args = (f"[{self.prefix}] {args[0]}", *args[1:])
        try:
            getattr(self._logger, method)(*lead, *args, **meta)
        except Exception:
            pass  # ignore any error

    def log(self, level: Any, *args: Any, **meta: Any) -> None:
        self._call("log", args, meta, level)

    def debug(self, *args: Any, **meta: Any) -> None:
        self._call("debug", args, meta)

    def info(self, *args: Any, **meta: Any) -> None:
        self._call("info", args, meta)

    def warn(self, *args: Any, **meta: Any) -> None:
        self._call("warn", args, meta)

    warning = warn

    def error(self, *args: Any, **meta: Any) -> None:
        self._call("error", args, meta)
