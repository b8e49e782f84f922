"""
Severity taxonomy and level normalization.

Four severities with ascending ranks (debug < info < warn < error). Foreign
vocabularies (npm-style ``silly``/``verbose``/``http``, Python stdlib names and
numeric levels) are folded onto them; anything unknown becomes ``info``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Final


class Severity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


RANKS: Final[dict[Severity, int]] = {
    Severity.DEBUG: 1,
    Severity.INFO: 2,
    Severity.WARN: 3,
    Severity.ERROR: 4,
}

_STDLIB_LEVELS: Final[dict[Severity, int]] = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}

EXTERNAL_LEVELS: Final[dict[str, Severity]] = {
    "silly": Severity.DEBUG,
    "verbose": Severity.DEBUG,
    "trace": Severity.DEBUG,
    "notset": Severity.DEBUG,
    "debug": Severity.DEBUG,
    "info": Severity.INFO,
    "http": Severity.INFO,
    "warn": Severity.WARN,
    "warning": Severity.WARN,
    "error": Severity.ERROR,
    "critical": Severity.ERROR,
    "fatal": Severity.ERROR,
}


def _from_number(value: int) -> Severity:
    if value <= logging.DEBUG:
        return Severity.DEBUG
    if value <= logging.INFO:
        return Severity.INFO
    if value <= logging.WARNING:
        return Severity.WARN
    return Severity.ERROR


def map_level(value: object) -> Severity:
    """Map any known level (name, enum or stdlib number) onto a Severity.

    Unrecognized input maps to ``info``.
    """
    if isinstance(value, Severity):
        return value
    if isinstance(value, bool):
        return Severity.INFO
    if isinstance(value, int):
        return _from_number(value)
    if isinstance(value, str):
        return EXTERNAL_LEVELS.get(value.strip().lower(), Severity.INFO)
    return Severity.INFO


def coerce_severity(value: object) -> Severity:
    """Strict variant of :func:`map_level` for configuration values."""
    if isinstance(value, Severity):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in EXTERNAL_LEVELS:
            return EXTERNAL_LEVELS[key]
    raise ValueError(f"Unknown log level: {value!r}")


def rank(severity: Severity) -> int:
    return RANKS[severity]


def to_stdlib(severity: Severity) -> int:
    return _STDLIB_LEVELS[severity]


def is_enabled(severity: Severity, minimum: Severity) -> bool:
    """True when ``severity`` passes a sink whose floor is ``minimum``."""
    return RANKS[severity] >= RANKS[minimum]
