"""
Numeric Log Levels.

tts-gateway uses four verbosity levels instead of Python's five names:
    1 = MINIMAL  - startup, exhausted retries, persistence failures
    2 = NORMAL   - one line per request plus every retry (default)
    3 = VERBOSE  - per-attempt timing, downloads, discarded late results
    4 = DEBUG    - parameter bundles and internal state

Each level maps onto a Python logging level so handlers and third-party
tooling keep working:
    MINIMAL -> WARNING, NORMAL -> INFO, VERBOSE -> DEBUG, DEBUG -> 5
"""
from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    MINIMAL = 1
    NORMAL = 2
    VERBOSE = 3
    DEBUG = 4


LEVEL_MAP = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG - 5,
}

LEVEL_NAMES = {level.value: level.name for level in LogLevel}

_NAME_ALIASES = {
    "TRACE": LogLevel.DEBUG,
    "CRITICAL": LogLevel.MINIMAL,
    "ERROR": LogLevel.MINIMAL,
    "WARNING": LogLevel.MINIMAL,
    "WARN": LogLevel.MINIMAL,
    "INFO": LogLevel.NORMAL,
}


def coerce_level(value: Any) -> LogLevel:
    """
    Convert a config or environment value to a LogLevel.

    Accepts a LogLevel, an int 1-4, a Python logging level int, a level
    name ("verbose", "INFO", ...) or a numeric string. Anything else
    falls back to NORMAL.

        >>> coerce_level("3")
        <LogLevel.VERBOSE: 3>
        >>> coerce_level(logging.WARNING)
        <LogLevel.MINIMAL: 1>
    """
    if isinstance(value, LogLevel):
        return value

    if isinstance(value, int):
        if 1 <= value <= 4:
            return LogLevel(value)
        if value >= logging.WARNING:
            return LogLevel.MINIMAL
        if value >= logging.INFO:
            return LogLevel.NORMAL
        return LogLevel.DEBUG

    if isinstance(value, str):
        name = value.strip().upper()
        if name.isdigit():
            return coerce_level(int(name))
        if name in LogLevel.__members__:
            return LogLevel[name]
        return _NAME_ALIASES.get(name, LogLevel.NORMAL)

    return LogLevel.NORMAL
