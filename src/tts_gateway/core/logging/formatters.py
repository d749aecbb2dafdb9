"""
Console and JSONL Formatters.

ConsoleFormatter renders one human-readable line per record:
    14:30:05 [ WARN  ] (a1b2c3d4) attempt_timeout backend=qwen attempt=2/3 5.002s

JsonlFormatter renders one JSON object per line for the rotating log file:
    {"ts": "...", "level": 2, "tag": "WARN", "message": "attempt_timeout",
     "request_id": "a1b2c3d4", "seconds": 5.002,
     "extra": {"backend": "qwen", "attempt": 2, "max_attempts": 3}}

Colors are applied only when stdout is a TTY and neither NO_COLOR nor
TTS_GW_NO_COLOR=1 is set. Durations are green under 0.5s, yellow under
the default synthesis deadline and red beyond it; an attempt number above
1 is highlighted so retries stand out in a busy console.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict


class Colors:
    RESET = "\033[0m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    GRAY = "\033[90m"
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


_TAG_COLORS = {
    "SUCCESS": Colors.BRIGHT_GREEN,
    "FAIL": Colors.BRIGHT_RED,
    "ERROR": Colors.BRIGHT_RED,
    "WARN": Colors.BRIGHT_YELLOW,
    "INFO": Colors.BRIGHT_CYAN,
    "DEBUG": Colors.GRAY,
}


def supports_color() -> bool:
    """Return True when ANSI colors should be written to stdout."""
    if os.getenv("TTS_GW_NO_COLOR", "0") == "1" or os.getenv("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    if isatty is None or not isatty():
        return False
    return sys.platform != "win32" or "WT_SESSION" in os.environ


class JsonlFormatter(logging.Formatter):
    """One JSON object per record, for machine consumption."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = {k: _jsonable(v) for k, v in extra_data.items()}

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for terminals."""

    def __init__(self, use_colors: bool | None = None):
        super().__init__()
        self.use_colors = supports_color() if use_colors is None else use_colors

    def _c(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{Colors.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [self._c(ts, Colors.DIM), self._c(f"[{tag:^7}]", _TAG_COLORS.get(tag, Colors.WHITE))]
        if rid != "-":
            parts.append(self._c(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        extra_data = dict(getattr(record, "extra_data", None) or {})
        attempt = extra_data.pop("attempt", None)
        max_attempts = extra_data.pop("max_attempts", None)
        for k, v in extra_data.items():
            parts.append(self._c(f"{k}={v}", Colors.DIM))
        if attempt is not None:
            label = f"attempt={attempt}/{max_attempts}" if max_attempts else f"attempt={attempt}"
            parts.append(self._c(label, Colors.YELLOW if attempt > 1 else Colors.BLUE))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            if seconds < 0.5:
                color = Colors.GREEN
            elif seconds < 5.0:
                color = Colors.YELLOW
            else:
                color = Colors.RED
            parts.append(self._c(f"{seconds:.3f}s", color))

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
