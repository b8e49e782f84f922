"""
Log sink abstractions and concrete implementations.
"""

from __future__ import annotations

import queue
import socket
import ssl
import sys
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock, Thread
from typing import Any, Callable, TextIO

import httpx
import orjson
from structlog.typing import EventDict

from .exceptions import ConnectionFailedError
from .formatters import ConsoleFormatter, strip_ansi
from .levels import Severity, is_enabled, map_level

ErrorReporter = Callable[[str], None]

DEFAULT_CONNECT_RETRIES = 4
DEFAULT_RETRY_SPACING_MS = 100
NETWORK_TIMEOUT = 5.0
CLOSE_TIMEOUT = 5.0
DEFAULT_QUEUE_SIZE = 1000


def orjson_dumps(v: Any, *, default: Any = str) -> str:
    """Fast JSON serialization using orjson."""
    return orjson.dumps(v, default=default, option=orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC).decode()


def _iso_timestamp(event_dict: EventDict) -> str:
    created = event_dict.get("created")
    if not isinstance(created, datetime):
        created = datetime.now(timezone.utc)
    return created.isoformat()


# =============================================================================
# Sink Abstraction (Strategy Pattern)
# =============================================================================


class BaseSink(ABC):
    """Abstract base class for log sinks.

    Every sink carries its own minimum severity; the dispatcher asks
    :meth:`accepts` before calling :meth:`emit`.
    """

    name: str = "sink"

    def __init__(self, level: Severity = Severity.INFO):
        self.level = level

    def accepts(self, event_dict: EventDict) -> bool:
        return is_enabled(map_level(event_dict.get("level")), self.level)

    @abstractmethod
    def emit(self, event_dict: EventDict) -> None:
        """Emit a log event to the sink."""
        ...

    def flush(self) -> None:
        """Wait until every event emitted so far has been written."""

    def close(self) -> None:
        """Close the sink and release resources."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, level={self.level.value!r})"


def _clean(value: Any) -> Any:
    """Strip color codes from strings, including inside nested containers."""
    if isinstance(value, str):
        return strip_ansi(value)
    if isinstance(value, dict):
        return {_clean(k): _clean(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clean(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_clean(v) for v in value)
    return value


class SanitizingSink(BaseSink):
    """Wraps another sink so it never receives ANSI color codes."""

    def __init__(self, inner: BaseSink):
        super().__init__(inner.level)
        self.inner = inner
        self.name = inner.name

    def accepts(self, event_dict: EventDict) -> bool:
        return self.inner.accepts(event_dict)

    def emit(self, event_dict: EventDict) -> None:
        self.inner.emit({k: _clean(v) for k, v in event_dict.items()})

    def flush(self) -> None:
        self.inner.flush()

    def close(self) -> None:
        self.inner.close()


class ConsoleSink(BaseSink):
    """Human-readable console output.

    Args:
        level: Minimum severity
        stream: Output stream (default: the current ``sys.stdout``)
        colorize: Color the level name
        with_timestamp: Prefix each line with a timestamp
        local_time: Render timestamps in local time instead of UTC
    """

    name = "console"

    def __init__(
        self,
        level: Severity = Severity.INFO,
        *,
        stream: TextIO | None = None,
        colorize: bool = True,
        with_timestamp: bool = False,
        local_time: bool = False,
    ):
        super().__init__(level)
        self._stream = stream
        self.colorize = colorize
        self._with_timestamp = with_timestamp
        self._local_time = local_time

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def emit(self, event_dict: EventDict) -> None:
        output = ConsoleFormatter.format(
            event_dict,
            use_color=self.colorize,
            with_timestamp=self._with_timestamp,
            local_time=self._local_time,
        )
        self.stream.write(output + "\n")
        self.stream.flush()


class FileSink(BaseSink):
    """Plain-text file sink. Always timestamped, never rotated."""

    name = "file"

    def __init__(self, path: str | Path, level: Severity = Severity.INFO, *, local_time: bool = False):
        super().__init__(level)
        self.path = Path(path)
        self._local_time = local_time
        self._file = open(self.path, "a", encoding="utf-8")

    def emit(self, event_dict: EventDict) -> None:
        line = ConsoleFormatter.format(
            event_dict, use_color=False, with_timestamp=True, local_time=self._local_time
        )
        self._file.write(line + "\n")
        self._file.flush()

    def close(self) -> None:
        self._file.close()


# =============================================================================
# Network Sinks
# =============================================================================

_STOP = object()
_CONNECT = object()


class BackgroundSink(BaseSink):
    """Base for sinks whose writes go over the network.

    ``emit`` only queues the event; a daemon worker thread hands it to
    :meth:`_deliver`. A slow or stalled endpoint therefore never holds up the
    log call. When ``queue_size`` events are already pending, new ones are
    dropped and counted in :attr:`dropped`. Delivery errors go to
    ``on_error`` and never back to the caller.
    """

    label = "Network"

    def __init__(
        self,
        level: Severity = Severity.INFO,
        *,
        on_error: ErrorReporter | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        super().__init__(level)
        self._on_error = on_error or (lambda message: None)
        self._queue: queue.Queue[Any] = queue.Queue(maxsize=queue_size)
        self._lock = Lock()
        self._worker: Thread | None = None
        self._closed = False
        self.dropped = 0

    @abstractmethod
    def _deliver(self, item: Any) -> None:
        """Send one queued item. Runs on the worker thread."""
        ...

    def _release(self) -> None:
        """Free network resources once the worker has stopped."""

    def _report(self, message: str) -> None:
        try:
            self._on_error(message)
        except Exception:
            pass  # the reporter must not kill the worker

    def _ensure_worker(self) -> None:
        if self._worker is not None:
            return
        with self._lock:
            if self._worker is None:
                self._worker = Thread(target=self._drain, name=f"logbridge-{self.name}", daemon=True)
                self._worker.start()

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            except Exception as exc:
                self._report(f"{self.label} error occurred: {exc}")
            finally:
                self._queue.task_done()

    def _submit(self, item: Any) -> None:
        if self._closed:
            return
        self._ensure_worker()
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            self.dropped += 1

    def emit(self, event_dict: EventDict) -> None:
        self._submit(event_dict)

    def flush(self) -> None:
        """Block until every queued item has been handled."""
        if self._worker is not None and self._worker.is_alive():
            self._queue.join()

    def close(self, timeout: float = CLOSE_TIMEOUT) -> None:
        """Deliver what is queued, stop the worker, then release resources."""
        if self._closed:
            return
        self._closed = True
        if self._worker is not None:
            try:
                self._queue.put(_STOP, timeout=timeout)
            except queue.Full:
                pass
            self._worker.join(timeout=timeout)
        self._release()


class WebhookSink(BackgroundSink):
    """POSTs every event as a JSON-RPC style ``log`` call."""

    name = "webhook"
    label = "Webhook"

    def __init__(
        self,
        host: str,
        port: int,
        level: Severity = Severity.INFO,
        *,
        path: str = "/",
        transport: httpx.BaseTransport | None = None,
        on_error: ErrorReporter | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        super().__init__(level, on_error=on_error, queue_size=queue_size)
        self.host = host
        self.port = port
        self.path = path
        self._client = httpx.Client(
            base_url=f"http://{host}:{port}",
            timeout=NETWORK_TIMEOUT,
            transport=transport,
        )

    def _deliver(self, event_dict: EventDict) -> None:
        payload = {
            "method": "log",
            "params": {
                "timestamp": _iso_timestamp(event_dict),
                "msg": event_dict.get("message", ""),
                "level": event_dict.get("level"),
                "meta": ConsoleFormatter.extras(event_dict),
            },
        }
        response = self._client.post(
            self.path,
            content=orjson_dumps(payload),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()

    def _release(self) -> None:
        self._client.close()


class LogstashSink(BackgroundSink):
    """JSON lines over TCP (optionally TLS) to a remote log collector.

    The first connection attempt is queued at construction, so connecting,
    retrying and sending all happen on the worker thread. Connection problems
    are handed to ``on_error`` and never raised. After a failure the sink
    waits ``timeout_connect_retries`` milliseconds before the next attempt and
    stops trying once ``max_connect_retries`` is exhausted (a negative value
    retries forever). Events that arrive while it is disconnected are dropped.
    """

    name = "logstash"
    label = "Logstash"

    def __init__(
        self,
        host: str,
        port: int,
        level: Severity = Severity.ERROR,
        *,
        ssl_enable: bool = False,
        max_connect_retries: int | None = None,
        timeout_connect_retries: int | None = None,
        meta: dict[str, Any] | None = None,
        node_name: str = "agent007",
        on_error: ErrorReporter | None = None,
        connect: Callable[[tuple[str, int], float], socket.socket] | None = None,
        clock: Callable[[], float] = time.monotonic,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        super().__init__(level, on_error=on_error, queue_size=queue_size)
        self.host = host
        self.port = port
        self.ssl_enable = ssl_enable
        self.max_connect_retries = DEFAULT_CONNECT_RETRIES if max_connect_retries is None else max_connect_retries
        self.retry_spacing = (timeout_connect_retries or DEFAULT_RETRY_SPACING_MS) / 1000
        self.meta = {k: v for k, v in (meta or {}).items() if v is not None}
        self.node_name = node_name
        self._connect = connect
        self._clock = clock
        self._sock: socket.socket | None = None
        self._failures = 0
        self._last_failure: float | None = None
        self._given_up = False
        self._submit(_CONNECT)

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def _retry_allowed(self) -> bool:
        if self._given_up:
            return False
        if self._last_failure is None:
            return True
        return self._clock() - self._last_failure >= self.retry_spacing

    def _open(self) -> socket.socket:
        try:
            connect = self._connect or socket.create_connection
            sock = connect((self.host, self.port), NETWORK_TIMEOUT)
            if self.ssl_enable:
                context = ssl.create_default_context()
                sock = context.wrap_socket(sock, server_hostname=self.host)
        except OSError as exc:
            raise ConnectionFailedError(self.host, self.port, str(exc)) from exc
        return sock

    def _record_failure(self, error: Exception) -> None:
        self._failures += 1
        self._last_failure = self._clock()
        self._report(f"Logstash error occurred: {error}")
        if 0 <= self.max_connect_retries < self._failures:
            self._given_up = True
            self._report(f"Logstash: giving up on {self.host}:{self.port} after {self._failures} attempts")

    def _try_connect(self) -> bool:
        if not self._retry_allowed():
            return False
        try:
            self._sock = self._open()
        except ConnectionFailedError as exc:
            self._record_failure(exc)
            return False
        self._failures = 0
        self._last_failure = None
        return True

    def _drop(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
        self._sock = None

    def _deliver(self, item: Any) -> None:
        if item is _CONNECT:
            if self._sock is None:
                self._try_connect()
            return
        if self._sock is None and not self._try_connect():
            return
        sock = self._sock
        record = {
            "@timestamp": _iso_timestamp(item),
            "level": item.get("level"),
            "message": item.get("message", ""),
            "node_name": self.node_name,
            **self.meta,
            **ConsoleFormatter.extras(item),
        }
        data = (orjson_dumps(record) + "\n").encode("utf-8")
        try:
            sock.sendall(data)  # type: ignore[union-attr]
        except OSError as exc:
            self._drop()
            self._record_failure(exc)

    def _release(self) -> None:
        self._drop()
