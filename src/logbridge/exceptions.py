"""
Error taxonomy for the logging facade.

Sink construction failures and remote-collector connection failures are
modelled explicitly so the transport builder can report and skip them.
None of these ever escape a log call.
"""

from __future__ import annotations

from typing import Any


class LogBridgeError(Exception):
    """Root of every logbridge error."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class SinkConfigurationError(LogBridgeError):
    """A sink could not be built from its configuration.

    The transport builder reports it to the console sink and carries on
    without that sink.
    """

    def __init__(self, sink: str, reason: str, **details: Any) -> None:
        super().__init__(
            f"Tried to attach logging to {sink} but an error occurred: {reason}",
            code="sink_configuration",
            details={"sink": sink, **details},
        )
        self.sink = sink


class ConnectionFailedError(LogBridgeError):
    """The remote collector could not be reached."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(
            f"Remote collector {host}:{port} unreachable: {reason}",
            code="connection_failed",
            details={"host": host, "port": port},
        )
        self.host = host
        self.port = port
