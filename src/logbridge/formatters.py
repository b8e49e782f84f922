"""
Log formatters, timestamps and ANSI color utilities.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from structlog.typing import EventDict

# =============================================================================
# ANSI Colors
# =============================================================================

COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "debug": "\033[90m",
    "info": "\033[36m",
    "warn": "\033[33m",
    "error": "\033[31m",
    "key": "\033[34m",
}

ANSI_SGR_PATTERN = re.compile(r"\x1b\[(\d+(;\d+)*)?m")


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text."""
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


def strip_ansi(text: Any) -> str:
    """Remove ANSI SGR escape sequences, leaving everything else untouched."""
    return ANSI_SGR_PATTERN.sub("", str(text))


def render_message(message: Any, args: tuple[Any, ...] = ()) -> str:
    """Apply ``%``-style interpolation the way stdlib logging does.

    A malformed format string never raises; the arguments are appended instead.
    """
    text = str(message)
    if not args:
        return text
    values: Any = args[0] if len(args) == 1 and isinstance(args[0], Mapping) else args
    try:
        return text % values
    except (TypeError, ValueError, KeyError):
        return " ".join([text, *map(str, args)])


# =============================================================================
# Timestamps
# =============================================================================

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: datetime | None = None, *, local_time: bool = False) -> str:
    """Render ``YYYY-MM-DD HH:MM:SS:mmm``, in UTC unless ``local_time`` is set."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone() if local_time else moment.astimezone(timezone.utc)
    return f"{moment.strftime(TIMESTAMP_FORMAT)}:{moment.microsecond // 1000:03d}"


# =============================================================================
# Line Formatter
# =============================================================================


class ConsoleFormatter:
    """Renders ``<timestamp> <level>: <message> key=value`` lines."""

    EXCLUDED_KEYS = {"level", "message", "event", "logger", "timestamp", "created", "_name"}

    @staticmethod
    def _maybe_color(text: str, color: str, use_color: bool) -> str:
        if not use_color:
            return text
        return colorize(text, color)

    @classmethod
    def extras(cls, event_dict: EventDict) -> dict[str, Any]:
        """Structured metadata carried by the event."""
        return {k: v for k, v in event_dict.items() if k not in cls.EXCLUDED_KEYS}

    @classmethod
    def format(
        cls,
        event_dict: EventDict,
        *,
        use_color: bool = True,
        with_timestamp: bool = False,
        local_time: bool = False,
    ) -> str:
        """Format an event dict into a single human-readable line."""
        level = str(event_dict.get("level", "info")).lower()
        message = str(event_dict.get("message", event_dict.get("event", "")))

        extras = []
        for k, v in cls.extras(event_dict).items():
            key_colored = cls._maybe_color(k, "key", use_color)
            value_colored = cls._maybe_color(str(v), "dim", use_color)
            extras.append(f"{key_colored}={value_colored}")
        if extras:
            message = f"{message} " + " ".join(extras)

        line = f"{cls._maybe_color(level, level, use_color)}: {message}"
        if with_timestamp:
            stamp = format_timestamp(event_dict.get("created"), local_time=local_time)
            line = f"{stamp} {line}"
        return line
