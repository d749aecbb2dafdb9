"""
Request Correlation and Logging State.

The request id lives in a ContextVar so every log line emitted while a
request is being synthesized (including lines from the retry loop on the
caller's thread) carries the same id. Worker threads spawned by the
bounded executor copy the caller's context, so their lines correlate too.

Environment Variables:
    - TTS_GW_LOG_LEVEL: level (1-4 or name)
    - TTS_GW_LOG_DIR: directory for the JSONL log file
    - TTS_GW_JSONL_FILE: JSONL filename (default tts-gateway.jsonl)
    - TTS_GW_LOG_ROTATE_BYTES / TTS_GW_LOG_ROTATE_BACKUP: rotation
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(int(_current_level), "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging options from the settings file and the environment.

    Priority: environment variables, then the ``logging`` section of the
    settings file, then defaults applied by configure_logging().
    """
    cfg: Dict[str, Any] = {}

    try:
        from tts_gateway.core.config import load_settings
        cfg.update(load_settings().raw.get("logging", {}) or {})
    except Exception:
        # Unreadable settings must not prevent logging from starting
        pass

    if os.getenv("TTS_GW_LOG_LEVEL"):
        cfg["level"] = os.environ["TTS_GW_LOG_LEVEL"]
    if os.getenv("TTS_GW_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTS_GW_LOG_DIR"]
    if os.getenv("TTS_GW_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTS_GW_JSONL_FILE"]
    for env, key in (("TTS_GW_LOG_ROTATE_BYTES", "rotate_max_bytes"),
                     ("TTS_GW_LOG_ROTATE_BACKUP", "rotate_backup_count")):
        value = os.getenv(env)
        if value and value.isdigit():
            cfg[key] = int(value)

    return cfg
