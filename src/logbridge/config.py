"""
Logging Configuration.

``LoggingSettings`` reads ``LOGBRIDGE_*`` environment variables (nested blocks
use ``__``, e.g. ``LOGBRIDGE_FILE__PATH``) and ``.env``. Hosts that already hold
an options mapping with the historical camelCase names (``logNoColors``,
``asyncTrace``, ...) go through :meth:`LoggingSettings.from_options`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .levels import Severity, coerce_severity


def _optional_severity(value: Any) -> Any:
    if value is None or value == "":
        return None
    return coerce_severity(value)


class ConsoleOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    level: Severity | None = Field(default=None, description="Console minimum severity")

    normalize_level = field_validator("level", mode="before")(_optional_severity)


class FileOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    path: str | None = Field(default=None, description="Log file path")
    level: Severity | None = Field(default=None, description="File minimum severity")

    normalize_level = field_validator("level", mode="before")(_optional_severity)


class LogstashOptions(BaseModel):
    """Remote log-collector block."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=28777)
    ssl_enable: bool = Field(default=False)
    max_connect_retries: int | None = Field(default=None, description="Negative retries forever")
    timeout_connect_retries: int | None = Field(default=None, description="Milliseconds between retries")
    location_name: str | None = None
    deployment: str | None = None
    node_name: str = Field(default="agent007")
    level: Severity = Field(default=Severity.ERROR)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> Any:
        return _optional_severity(value) or Severity.ERROR


class LoggingSettings(BaseSettings):
    """Logging facade configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOGBRIDGE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    loglevel: str | None = Field(default=None, description='"console" or "console:file" level shorthand')
    console: ConsoleOptions = Field(default_factory=ConsoleOptions)
    file: FileOptions = Field(default_factory=FileOptions)
    log_no_colors: bool = Field(default=False, description="Disable console colors")
    log_timestamp: bool = Field(default=False, description="Timestamp console lines")
    local_timezone: bool = Field(default=False, description="Local time instead of UTC")
    webhook: str | None = Field(default=None, description='"host:port" webhook target')
    webhook_level: Severity | None = Field(default=None, description="Webhook minimum severity")
    logstash: LogstashOptions | None = Field(default=None, description="Remote collector block")
    async_trace: bool = Field(default=False, description="Append call stacks to info/warn/error")
    app_root: str | None = Field(default=None, description="Base directory for relative log paths")
    handle_exceptions: bool = Field(default=False, description="Log uncaught exceptions at error")

    normalize_webhook_level = field_validator("webhook_level", mode="before")(_optional_severity)

    @field_validator("loglevel", mode="before")
    @classmethod
    def normalize_loglevel(cls, value: Any) -> Any:
        """Reject unknown names in the ``console:file`` shorthand up front."""
        if value is None or value == "":
            return None
        parts = str(value).split(":")
        if len(parts) > 2:
            raise ValueError(f"Expected \"console\" or \"console:file\", got {value!r}")
        return ":".join(coerce_severity(part).value if part else "" for part in parts)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "LoggingSettings":
        """Build settings from a mapping that uses the historical option names."""
        values: dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name == "logstash" and isinstance(value, Mapping):
                value = {_LOGSTASH_ALIASES.get(k, k): v for k, v in value.items()}
            elif name == "local_timezone":
                value = bool(value)
            values[name] = value

        legacy_path = values.pop("log", None)
        if legacy_path:
            file_block = dict(values.get("file") or {})
            file_block.setdefault("path", legacy_path)
            values["file"] = file_block
        return cls(**values)


_OPTION_ALIASES = {
    "logLevel": "loglevel",
    "logNoColors": "log_no_colors",
    "logTimestamp": "log_timestamp",
    "localTimezone": "local_timezone",
    "webhookLevel": "webhook_level",
    "asyncTrace": "async_trace",
    "appRoot": "app_root",
    "handleExceptions": "handle_exceptions",
}

_LOGSTASH_ALIASES = {
    "sslEnable": "ssl_enable",
    "locationName": "location_name",
    "nodeName": "node_name",
}
