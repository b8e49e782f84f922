"""
Configuration tests.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from logbridge.config import LoggingSettings
from logbridge.levels import Severity


class TestFromOptions:
    def test_translates_option_names(self) -> None:
        settings = LoggingSettings.from_options(
            {
                "logNoColors": True,
                "logTimestamp": True,
                "localTimezone": "Europe/Paris",
                "asyncTrace": True,
                "handleExceptions": True,
                "webhook": "example.com:1234",
                "webhookLevel": "warning",
                "file": {"path": "logs/a.log", "level": "debug"},
            }
        )
        assert settings.log_no_colors
        assert settings.log_timestamp
        assert settings.local_timezone is True
        assert settings.async_trace
        assert settings.handle_exceptions
        assert settings.webhook == "example.com:1234"
        assert settings.webhook_level is Severity.WARN
        assert settings.file.path == "logs/a.log"
        assert settings.file.level is Severity.DEBUG

    def test_logstash_block(self) -> None:
        settings = LoggingSettings.from_options(
            {
                "logstash": {
                    "host": "collector",
                    "port": 5000,
                    "sslEnable": True,
                    "max_connect_retries": 3,
                    "timeout_connect_retries": 250,
                    "locationName": "eu-west",
                    "deployment": "prod",
                }
            }
        )
        block = settings.logstash
        assert block is not None
        assert (block.host, block.port, block.ssl_enable) == ("collector", 5000, True)
        assert block.location_name == "eu-west"
        assert block.deployment == "prod"
        assert block.node_name == "agent007"
        assert block.level is Severity.ERROR

    def test_legacy_log_option_sets_file_path(self) -> None:
        settings = LoggingSettings.from_options({"log": "out.log", "loglevel": "info"})
        assert settings.file.path == "out.log"
        assert settings.loglevel == "info"

    def test_unknown_options_are_ignored(self) -> None:
        assert LoggingSettings.from_options({"somethingElse": 1}) == LoggingSettings()


class TestValidation:
    def test_unknown_level_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(console={"level": "loud"})

    def test_unknown_level_in_shorthand_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(loglevel="loud")
        with pytest.raises(ValidationError):
            LoggingSettings(loglevel="info:loud")
        with pytest.raises(ValidationError):
            LoggingSettings(loglevel="info:warn:error")

    def test_shorthand_is_normalized(self) -> None:
        assert LoggingSettings(loglevel="Warning:silly").loglevel == "warn:debug"
        assert LoggingSettings(loglevel=":error").loglevel == ":error"
        assert LoggingSettings(loglevel="").loglevel is None

    def test_settings_are_frozen(self) -> None:
        settings = LoggingSettings()
        with pytest.raises(ValidationError):
            settings.webhook = "x"  # type: ignore[misc]


class TestEnvironment:
    def test_reads_prefixed_variables(self, monkeypatch) -> None:
        monkeypatch.setenv("LOGBRIDGE_LOG_NO_COLORS", "true")
        monkeypatch.setenv("LOGBRIDGE_FILE__PATH", "/tmp/x.log")
        monkeypatch.setenv("LOGBRIDGE_FILE__LEVEL", "warn")
        settings = LoggingSettings()
        assert settings.log_no_colors
        assert settings.file.path == "/tmp/x.log"
        assert settings.file.level is Severity.WARN

    def test_defaults(self) -> None:
        settings = LoggingSettings()
        assert settings.console.level is None
        assert settings.file.path is None
        assert settings.logstash is None
        assert not settings.async_trace
