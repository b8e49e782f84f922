"""
Process-wide logger registry.

``init`` publishes exactly one :class:`Logger` per process and is a no-op on
every later call. ``get`` bootstraps a default logger on first use; if the
environment holds a broken configuration it falls back to a console-only
logger instead of raising at the log call site.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TextIO

import httpx

from .config import LoggingSettings
from .logger import Logger, PrefixedLogger
from .sinks import ConsoleSink
from .transports import application_root, build_transports

# =============================================================================
# Global State
# =============================================================================

_logger: Logger | None = None


def _coerce_settings(config: LoggingSettings | Mapping[str, Any] | None) -> LoggingSettings:
    if isinstance(config, LoggingSettings):
        return config
    if config is None:
        return LoggingSettings()
    return LoggingSettings.from_options(config)


def init(
    config: LoggingSettings | Mapping[str, Any] | None = None,
    *,
    stream: TextIO | None = None,
    http_transport: httpx.BaseTransport | None = None,
) -> Logger:
    """
    Configure the process-wide logger.

    Args:
        config: Settings, a mapping of option names, or None for env defaults
        stream: Console stream override (default: ``sys.stdout``)
        http_transport: httpx transport for the webhook sink

    Returns:
        The live logger. When one already exists it is returned untouched.

    Raises:
        pydantic.ValidationError: if the configuration names an unknown level
    """
    # Import interceptors here to avoid circular imports
    from .interceptors import install_exception_hooks

    global _logger
    if _logger is not None:
        _logger.info("logger already initialized")
        return _logger

    settings = _coerce_settings(config)
    app_root = settings.app_root or application_root()
    sinks = build_transports(settings, app_root=app_root, stream=stream, http_transport=http_transport)
    _logger = Logger(sinks, async_trace=settings.async_trace, app_root=app_root)
    if settings.handle_exceptions:
        install_exception_hooks(_logger)
    return _logger


def _fallback(error: Exception) -> Logger:
    global _logger
    _logger = Logger([ConsoleSink()])
    _logger.error(f"Logging configuration rejected, using console defaults: {error}")
    return _logger


def get(prefix: str | None = None) -> Logger | PrefixedLogger:
    """Return the process-wide logger, optionally behind a ``[prefix]`` view."""
    logger = _logger
    if logger is None:
        try:
            logger = init()
        except Exception as exc:
            logger = _fallback(exc)
    if prefix:
        return PrefixedLogger(logger, prefix)
    return logger


def is_initialized() -> bool:
    return _logger is not None


def reset() -> None:
    """Close every sink, restore exception hooks and forget the process-wide logger."""
    from .interceptors import restore_exception_hooks

    global _logger
    restore_exception_hooks()
    if _logger is not None:
        _logger.close()
    _logger = None
