"""
Call-stack annotation for log messages.
"""

from __future__ import annotations

import functools
import inspect
import os
from pathlib import Path
from types import FrameType
from typing import Any, Callable

from .formatters import render_message

MAX_FRAMES = 15
TRACE_HEADER = "    [------TRACE------]"

_INTERNAL_ROOTS = ("logbridge", "structlog")


def _is_internal(frame: FrameType) -> bool:
    module = frame.f_globals.get("__name__", "")
    return module.split(".")[0] in _INTERNAL_ROOTS


def _type_name(frame: FrameType) -> str:
    local_vars = frame.f_locals
    if "self" in local_vars:
        return type(local_vars["self"]).__name__
    owner = local_vars.get("cls")
    if isinstance(owner, type):
        return owner.__name__
    return frame.f_globals["__name__"]


def _column(frame: FrameType) -> int:
    positions = list(frame.f_code.co_positions())
    column = positions[frame.f_lasti // 2][2]
    return (column or 0) + 1


def _relative(filename: str, app_root: Path | None) -> str:
    if app_root is None:
        return filename
    try:
        return os.path.relpath(filename, app_root)
    except ValueError:
        return filename


def format_frame(frame: FrameType, app_root: Path | None = None) -> str:
    """Render one frame as ``Type.function (path:line:col)``."""
    code = frame.f_code
    return "    at {}.{} ({}:{}:{})".format(
        _type_name(frame),
        code.co_name,
        _relative(code.co_filename, app_root),
        frame.f_lineno,
        _column(frame),
    )


def format_stack(
    frame: FrameType | None = None,
    *,
    app_root: str | Path | None = None,
    limit: int = MAX_FRAMES,
) -> str:
    """Render the caller's stack, skipping frames from the logging machinery."""
    root = Path(app_root) if app_root is not None else None
    current = frame if frame is not None else inspect.currentframe()
    lines = [TRACE_HEADER]
    seen = 0
    while current is not None and seen < limit:
        if not _is_internal(current):
            seen += 1
            try:
                lines.append(format_frame(current, root))
            except Exception:
                pass  # a partial trace is fine
        current = current.f_back
    return "\n".join(lines)


def annotate_stack(
    method: Callable[..., Any],
    *,
    app_root: str | Path | None = None,
) -> Callable[..., Any]:
    """Wrap a log method so every message carries the caller's stack."""

    @functools.wraps(method)
    def wrapper(message: Any = "", *args: Any, **meta: Any) -> Any:
        caller = inspect.currentframe()
        stack = format_stack(caller.f_back if caller else None, app_root=app_root)
        return method(f"{render_message(message, args)}\n{stack}\n", **meta)

    return wrapper
