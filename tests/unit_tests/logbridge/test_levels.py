"""
Level mapper tests: foreign vocabularies fold onto debug/info/warn/error.
"""

from __future__ import annotations

import logging

import pytest

from logbridge.levels import RANKS, Severity, coerce_severity, is_enabled, map_level, rank, to_stdlib


class TestMapLevel:
    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("silly", Severity.DEBUG),
            ("verbose", Severity.DEBUG),
            ("info", Severity.INFO),
            ("http", Severity.INFO),
            ("warn", Severity.WARN),
            ("error", Severity.ERROR),
        ],
    )
    def test_npm_vocabulary(self, source: str, expected: Severity) -> None:
        assert map_level(source) is expected

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("DEBUG", Severity.DEBUG),
            ("WARNING", Severity.WARN),
            ("CRITICAL", Severity.ERROR),
            (logging.DEBUG, Severity.DEBUG),
            (logging.INFO, Severity.INFO),
            (logging.WARNING, Severity.WARN),
            (logging.CRITICAL, Severity.ERROR),
        ],
    )
    def test_stdlib_vocabulary(self, source: object, expected: Severity) -> None:
        assert map_level(source) is expected

    @pytest.mark.parametrize("source", ["silent", "", "loud", None, 3.5, object(), True])
    def test_unknown_input_defaults_to_info(self, source: object) -> None:
        assert map_level(source) is Severity.INFO

    def test_result_is_always_a_severity(self) -> None:
        inputs = ["silly", "trace", "fatal", "nonsense", 0, 5, 25, 45, 99, None]
        assert all(map_level(value) in set(Severity) for value in inputs)

    def test_severity_passes_through(self) -> None:
        assert map_level(Severity.WARN) is Severity.WARN


class TestRanks:
    def test_ranks_ascend(self) -> None:
        ordered = [Severity.DEBUG, Severity.INFO, Severity.WARN, Severity.ERROR]
        assert [rank(s) for s in ordered] == sorted(RANKS.values())

    def test_is_enabled_uses_ranks(self) -> None:
        assert is_enabled(Severity.ERROR, Severity.WARN)
        assert is_enabled(Severity.WARN, Severity.WARN)
        assert not is_enabled(Severity.INFO, Severity.WARN)

    def test_to_stdlib(self) -> None:
        assert to_stdlib(Severity.WARN) == logging.WARNING


class TestCoerceSeverity:
    def test_accepts_known_names(self) -> None:
        assert coerce_severity(" Warning ") is Severity.WARN

    def test_rejects_unknown_names(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            coerce_severity("loud")
