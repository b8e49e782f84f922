"""
Process-wide logging facade.

Builds console, file, webhook and remote-collector sinks from one
configuration object, folds foreign level vocabularies onto
debug/info/warn/error, and hands the rest of the application a single logger.

Library: structlog for the event pipeline, orjson for network payloads,
httpx for the webhook sink, pydantic-settings for configuration.
"""

from .config import LoggingSettings
from .core import get, init, is_initialized, reset
from .formatters import strip_ansi
from .interceptors import (
    ForwardingHandler,
    capture_loggers,
    forward_log_event,
    install_exception_hooks,
    restore_exception_hooks,
)
from .levels import Severity, map_level
from .logger import Logger, PrefixedLogger

__all__ = [
    "ForwardingHandler",
    "Logger",
    "LoggingSettings",
    "PrefixedLogger",
    "Severity",
    "capture_loggers",
    "forward_log_event",
    "get",
    "init",
    "install_exception_hooks",
    "is_initialized",
    "map_level",
    "reset",
    "restore_exception_hooks",
    "strip_ansi",
]
