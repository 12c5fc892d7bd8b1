"""Minimal levelled logger writing timestamped lines to a text stream."""

from __future__ import annotations

import sys
import threading
import time
from enum import IntEnum
from typing import TextIO

LOG_PREFIX = "[adc64] "
ERROR_PREFIX = "[error] "
WARNING_PREFIX = "[warn] "
INFO_PREFIX = "[info] "
DEBUG_PREFIX = "[debug] "


class LogLevel(IntEnum):
    """Verbosity levels; a message is written if its level is <= the current one."""

    ERROR = 0
    WARNING = 1
    INFO = 2
    DEBUG = 3


DEFAULT_LOG_LEVEL = LogLevel.INFO

_lock = threading.Lock()
_out: TextIO | None = None
_level: LogLevel = DEFAULT_LOG_LEVEL


def init(out: TextIO | None) -> None:
    """Direct log output to ``out``; ``None`` means the current ``sys.stderr``."""
    global _out
    with _lock:
        _out = out


def set_level(level: int) -> None:
    """Set the verbosity level."""
    global _level
    new_level = LogLevel(level)
    with _lock:
        _level = new_level


def _emit(level: LogLevel, prefix: str, fmt: str, args: tuple) -> None:
    if _level < level:
        return
    message = fmt % args if args else fmt
    stamp = time.strftime("%Y/%m/%d %H:%M:%S")
    line = f"{LOG_PREFIX}{stamp} {prefix}{message}\n"
    with _lock:
        out = _out if _out is not None else sys.stderr
        out.write(line)
        flush = getattr(out, "flush", None)
        if flush is not None:
            flush()


def error(format: str, *args) -> None:
    """Log a message at error level."""
    _emit(LogLevel.ERROR, ERROR_PREFIX, format, args)


def warning(format: str, *args) -> None:
    """Log a message at warning level."""
    _emit(LogLevel.WARNING, WARNING_PREFIX, format, args)


def info(format: str, *args) -> None:
    """Log a message at info level."""
    _emit(LogLevel.INFO, INFO_PREFIX, format, args)


def debug(format: str, *args) -> None:
    """Log a message at debug level."""
    _emit(LogLevel.DEBUG, DEBUG_PREFIX, format, args)