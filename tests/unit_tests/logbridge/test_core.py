"""
Registry and logger tests: one logger per process, prefixes, isolation.
"""

from __future__ import annotations

import re
import threading
import time

import httpx
import pytest
from pydantic import ValidationError

import logbridge
from logbridge import core
from logbridge.config import LoggingSettings
from logbridge.levels import Severity
from logbridge.logger import Logger, PrefixedLogger
from logbridge.sinks import BaseSink, ConsoleSink, SanitizingSink


class RecordingSink(BaseSink):
    name = "recording"

    def __init__(self, level: Severity = Severity.DEBUG):
        super().__init__(level)
        self.events: list[dict] = []
        self.closed = False

    def emit(self, event_dict):
        self.events.append(event_dict)

    def close(self):
        self.closed = True


class BrokenSink(BaseSink):
    name = "broken"

    def emit(self, event_dict):
        raise OSError("disk full")

    def close(self):
        raise OSError("already gone")


class TestInit:
    def test_second_init_is_a_noop(self, stream) -> None:
        first = logbridge.init({"logNoColors": True}, stream=stream)
        second = logbridge.init({"logNoColors": False, "console": {"level": "debug"}})
        assert second is first
        assert len(first.sinks) == 1
        assert isinstance(first.sinks[0], SanitizingSink)
        assert stream.getvalue() == "info: logger already initialized\n"

    def test_accepts_settings_object(self, stream) -> None:
        logger = logbridge.init(LoggingSettings(console={"level": "error"}), stream=stream)
        assert logger.sinks[0].level is Severity.ERROR

    def test_invalid_configuration_raises(self) -> None:
        with pytest.raises(ValidationError):
            logbridge.init({"console": {"level": "loud"}})
        assert not logbridge.is_initialized()

    def test_stalled_webhook_does_not_delay_log_calls(self, stream) -> None:
        release = threading.Event()

        def stall(request: httpx.Request) -> httpx.Response:
            release.wait(10)
            return httpx.Response(200)

        logger = logbridge.init(
            {"logNoColors": True, "webhook": "127.0.0.1:9"},
            stream=stream,
            http_transport=httpx.MockTransport(stall),
        )
        try:
            started = time.monotonic()
            logger.info("hello")
            assert time.monotonic() - started < 1.0
            assert stream.getvalue() == "info: hello\n"
        finally:
            release.set()

    def test_reset_closes_sinks(self) -> None:
        sink = RecordingSink()
        core._logger = Logger([sink])
        logbridge.reset()
        assert sink.closed
        assert not logbridge.is_initialized()


class TestGet:
    def test_lazy_default_initialization(self, capsys) -> None:
        assert not logbridge.is_initialized()
        logger = logbridge.get()
        assert isinstance(logger, Logger)
        assert logbridge.is_initialized()
        assert isinstance(logger.sinks[0], ConsoleSink)

        logger.info("hello")
        assert "hello" in capsys.readouterr().out

    def test_bad_environment_level_falls_back_to_console(self, monkeypatch, capsys) -> None:
        monkeypatch.setenv("LOGBRIDGE_LOGLEVEL", "loud")
        logger = logbridge.get()
        logger.info("still here")

        assert isinstance(logger, Logger)
        assert [type(sink) for sink in logger.sinks] == [ConsoleSink]
        out = capsys.readouterr().out
        assert "Logging configuration rejected" in out
        assert "still here" in out
        assert logbridge.get() is logger

    def test_same_logger_every_time(self) -> None:
        assert logbridge.get() is logbridge.get()

    def test_prefix_returns_fresh_wrapper(self, stream) -> None:
        logbridge.init({"logNoColors": True}, stream=stream)
        first = logbridge.get("svc")
        assert isinstance(first, PrefixedLogger)
        assert first is not logbridge.get("svc")

        first.info("hello %s", "world")
        first.warning("slow")
        assert stream.getvalue() == "info: [svc] hello world\nwarn: [svc] slow\n"

    def test_timestamped_line_format(self, stream) -> None:
        logbridge.init({"logNoColors": True, "logTimestamp": True}, stream=stream)
        logbridge.get("api").error("failed")
        line = stream.getvalue().rstrip("\n")
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}:\d{3} error: \[api\] failed", line)


class TestPrefixedLogger:
    def test_delegation_failures_are_swallowed(self) -> None:
        class Exploding:
            def info(self, *args, **kwargs):
                raise RuntimeError("boom")

        wrapper = PrefixedLogger(Exploding(), "p")  # type: ignore[arg-type]
        wrapper.info("x")
        wrapper.error("y")

    def test_only_first_argument_is_prefixed(self) -> None:
        sink = RecordingSink()
        PrefixedLogger(Logger([sink]), "p").debug("%s-%s", "a", "b")
        assert sink.events[0]["message"] == "[p] a-b"

    def test_log_with_level(self) -> None:
        sink = RecordingSink()
        PrefixedLogger(Logger([sink]), "p").log("verbose", "detail")
        assert sink.events[0]["level"] == "debug"
        assert sink.events[0]["message"] == "[p] detail"


class TestLogger:
    def test_each_sink_filters_independently(self) -> None:
        everything = RecordingSink(Severity.DEBUG)
        errors_only = RecordingSink(Severity.ERROR)
        logger = Logger([everything, errors_only])

        logger.debug("d")
        logger.warn("w")
        logger.error("e")

        assert [e["message"] for e in everything.events] == ["d", "w", "e"]
        assert [e["message"] for e in errors_only.events] == ["e"]

    def test_levels_are_normalized(self) -> None:
        sink = RecordingSink()
        logger = Logger([sink])
        logger.warning("a")
        logger.log("http", "b")
        logger.log(50, "c")
        assert [e["level"] for e in sink.events] == ["warn", "info", "error"]

    def test_failing_sink_does_not_affect_others(self) -> None:
        good = RecordingSink()
        logger = Logger([BrokenSink(Severity.DEBUG), good])
        logger.error("still delivered")
        assert good.events[0]["message"] == "still delivered"

    def test_metadata_and_logger_name(self) -> None:
        sink = RecordingSink()
        Logger([sink], name="jobs").info("done", job=7)
        event = sink.events[0]
        assert event["logger"] == "jobs"
        assert event["job"] == 7
        assert "created" in event

    def test_close_never_raises(self) -> None:
        Logger([BrokenSink()]).close()

    def test_levels_table(self) -> None:
        assert Logger([]).levels == ("debug", "info", "warn", "error")
