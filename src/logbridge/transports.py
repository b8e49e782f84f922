"""
Transport construction from settings.

Sink order is fixed: console (always), file, remote collector, webhook. A sink
that fails to build is reported through the console sink and skipped.
"""

from __future__ import annotations

import os
import platform as _platform
import re
import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TextIO

import httpx

from .config import LoggingSettings, LogstashOptions
from .exceptions import SinkConfigurationError
from .levels import Severity, coerce_severity
from .sinks import BaseSink, ConsoleSink, FileSink, LogstashSink, SanitizingSink, WebhookSink

DEFAULT_WEBHOOK_HOST = "127.0.0.1"
DEFAULT_WEBHOOK_PORT = 9003

_WINDOWS_PLACEHOLDER = re.compile(r"%([^%]+)%")
_POSIX_PLACEHOLDER = re.compile(r"\$([^$|/]+)/")


# =============================================================================
# Helpers
# =============================================================================


def split_levels(settings: LoggingSettings) -> tuple[Severity, Severity | None]:
    """Resolve console and file levels, honouring the ``console:file`` shorthand."""
    console_level = settings.console.level
    file_level = settings.file.level
    if settings.loglevel:
        first, _, second = settings.loglevel.partition(":")
        shorthand_console = coerce_severity(first) if first else None
        if ":" in settings.loglevel:
            shorthand_file = coerce_severity(second) if second else None
        else:
            shorthand_file = shorthand_console
        console_level = console_level or shorthand_console
        file_level = file_level or shorthand_file
    return console_level or Severity.INFO, file_level


def parse_webhook(target: str) -> tuple[str, int]:
    """Parse ``host:port``; missing parts fall back to 127.0.0.1:9003."""
    host, _, port = target.strip().partition(":")
    try:
        port_number = int(port) if port else DEFAULT_WEBHOOK_PORT
    except ValueError as exc:
        raise SinkConfigurationError("webhook", f"invalid port {port!r}", target=target) from exc
    return host or DEFAULT_WEBHOOK_HOST, port_number


def expand_placeholders(
    raw: str,
    *,
    system: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Expand ``%VAR%`` on Windows and ``$VAR/`` on Linux/macOS.

    Unknown variables are left exactly as written.
    """
    system = (system or _platform.system()).lower()
    env = os.environ if environ is None else environ

    if system == "windows":
        return _WINDOWS_PLACEHOLDER.sub(lambda m: env.get(m.group(1), m.group(0)), raw)
    if system in {"linux", "darwin"}:
        return _POSIX_PLACEHOLDER.sub(
            lambda m: env[m.group(1)].rstrip("/") + "/" if m.group(1) in env else m.group(0),
            raw,
        )
    return raw


def application_root() -> Path:
    """Directory of the launching script, or the working directory."""
    main = sys.modules.get("__main__")
    main_file = getattr(main, "__file__", None)
    if main_file:
        return Path(main_file).resolve().parent
    return Path.cwd()


def resolve_log_path(
    raw: str,
    *,
    app_root: str | Path | None = None,
    system: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Expand placeholders and anchor relative paths at the application root."""
    path = Path(expand_placeholders(raw, system=system, environ=environ)).expanduser()
    if not path.is_absolute():
        base = Path(app_root) if app_root is not None else application_root()
        path = base / path
    return path


def prepare_log_file(path: Path) -> None:
    """Create the containing directory and drop any previous log file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SinkConfigurationError("file", f"cannot create {path.parent}: {exc}", path=str(path)) from exc
    try:
        if path.exists():
            path.unlink()
    except OSError as exc:
        raise SinkConfigurationError("file", f"cannot remove {path}: {exc}", path=str(path)) from exc


# =============================================================================
# Sink Builders
# =============================================================================


def _create_console(settings: LoggingSettings, level: Severity, stream: TextIO | None) -> BaseSink:
    sink = ConsoleSink(
        level,
        stream=stream,
        colorize=not settings.log_no_colors,
        with_timestamp=settings.log_timestamp,
        local_time=settings.local_timezone,
    )
    if settings.log_no_colors:
        return SanitizingSink(sink)
    return sink


def _create_file(
    raw_path: str, settings: LoggingSettings, level: Severity, app_root: str | Path | None
) -> BaseSink:
    path = resolve_log_path(raw_path, app_root=app_root)
    prepare_log_file(path)
    try:
        sink = FileSink(path, level, local_time=settings.local_timezone)
    except OSError as exc:
        raise SinkConfigurationError("file", str(exc), path=str(path)) from exc
    return SanitizingSink(sink)


def _create_logstash(options: LogstashOptions, report: Callable[[str], None]) -> BaseSink:
    sink = LogstashSink(
        options.host,
        options.port,
        options.level,
        ssl_enable=options.ssl_enable,
        max_connect_retries=options.max_connect_retries,
        timeout_connect_retries=options.timeout_connect_retries,
        meta={"location": options.location_name, "deployment": options.deployment},
        node_name=options.node_name,
        on_error=report,
    )
    return SanitizingSink(sink)


def _create_webhook(
    target: str,
    settings: LoggingSettings,
    file_level: Severity | None,
    transport: httpx.BaseTransport | None,
    report: Callable[[str], None],
) -> BaseSink:
    host, port = parse_webhook(target)
    level = settings.webhook_level or file_level or Severity.INFO
    return SanitizingSink(WebhookSink(host, port, level, transport=transport, on_error=report))


def build_transports(
    settings: LoggingSettings,
    *,
    app_root: str | Path | None = None,
    stream: TextIO | None = None,
    http_transport: httpx.BaseTransport | None = None,
) -> list[BaseSink]:
    """Build the ordered sink list described by ``settings``."""
    console_level, file_level = split_levels(settings)
    console = _create_console(settings, console_level, stream)
    sinks: list[BaseSink] = [console]

    def report(message: str) -> None:
        console.emit({"level": Severity.ERROR.value, "message": message})

    builders: list[tuple[str, Callable[[], BaseSink]]] = []
    file_path, logstash, webhook = settings.file.path, settings.logstash, settings.webhook
    if file_path and file_level is not None:
        root = app_root if app_root is not None else settings.app_root
        builders.append(("file", lambda: _create_file(file_path, settings, file_level, root)))
    if logstash is not None:
        builders.append(("logstash", lambda: _create_logstash(logstash, report)))
    if webhook:
        builders.append(("webhook", lambda: _create_webhook(webhook, settings, file_level, http_transport, report)))

    for name, build in builders:
        try:
            sinks.append(build())
        except SinkConfigurationError as exc:
            report(str(exc))
        except Exception as exc:
            report(str(SinkConfigurationError(name, str(exc))))
    return sinks
