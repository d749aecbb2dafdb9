"""
Configuration Management for tts-gateway.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (DASHSCOPE_API_KEY, TTS_GW_VOICE, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    provider:
      api_key: sk-...
      voice_name: Cherry
      output_path: audio/

    retry:
      max_attempts: 3
      retry_delay_ms: 1000
      synth_timeout_s: 5
      download_timeout_s: 5

    logging:
      level: 2  # NORMAL

    service:
      cache_size: 32

The ProviderConfig record belongs to whoever stores provider credentials;
the synthesis core only reads it. A changed record means a new service
instance (see services.tts_service.remove_cache).
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class ConfigValidationError(Exception):
    """Raised when a configuration value is out of bounds or of the wrong type."""
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Retry: attempt budget, inter-attempt delay, per-call deadlines
        - Backends: vendor model names and audio format
        - Provider: voice and output location
        - Logging: log level and text preview
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Retry / Deadlines
    # ─────────────────────────────────────────────────────────────────────────
    RETRY_MAX_ATTEMPTS = 3          # Backend invocations per request
    RETRY_DELAY_MS = 1000           # Fixed wait between attempts
    SYNTH_TIMEOUT_S = 5.0           # Deadline for one backend call
    DOWNLOAD_TIMEOUT_S = 5.0        # Deadline for fetching a remote result

    # ─────────────────────────────────────────────────────────────────────────
    # Backends
    # ─────────────────────────────────────────────────────────────────────────
    SAMPLE_RATE = 16000
    AUDIO_FORMAT = "wav"
    QWEN_MODEL = "qwen-tts"
    COSYVOICE_MODEL = "cosyvoice-v1"
    DOWNLOAD_CHUNK_BYTES = 8192

    # ─────────────────────────────────────────────────────────────────────────
    # Provider
    # ─────────────────────────────────────────────────────────────────────────
    PROVIDER_VOICE_NAME = "longxiaochun"   # cosyvoice voice
    PROVIDER_OUTPUT_PATH = "audio/"

    # ─────────────────────────────────────────────────────────────────────────
    # Input / Logging
    # ─────────────────────────────────────────────────────────────────────────
    TEXT_MAX_CHARS = 4000
    SERVICE_CACHE_SIZE = 32             # Cached services (one per provider configuration)
    LOGGING_TEXT_PREVIEW_CHARS = 40
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass(frozen=True)
class ProviderConfig:
    """
    Credentials and voice for one speech provider record.

    Owned by the external configuration store and passed in by reference.
    Frozen: the synthesis core never mutates it.

    Attributes:
        api_key: DashScope API key.
        voice_name: Voice identifier; also decides which backend is used.
        output_path: Directory where synthesized files are written.
        config_id: Identifier of the stored record, if any.
    """
    api_key: str
    voice_name: str = Defaults.PROVIDER_VOICE_NAME
    output_path: str = Defaults.PROVIDER_OUTPUT_PATH
    config_id: Optional[str] = None

    @property
    def cache_key(self) -> str:
        """Key for the per-configuration service cache."""
        if self.config_id:
            return f"id:{self.config_id}"
        payload = json.dumps(asdict(self), sort_keys=True).encode("utf-8")
        return "cfg:" + hashlib.sha256(payload).hexdigest()[:16]


@dataclass(frozen=True)
class RetryConfig:
    """
    Attempt budget and deadlines.

    Injected into the retry controller and executors so tests can use
    millisecond values without touching module state.
    """
    max_attempts: int = Defaults.RETRY_MAX_ATTEMPTS
    retry_delay_ms: int = Defaults.RETRY_DELAY_MS
    synth_timeout_s: float = Defaults.SYNTH_TIMEOUT_S
    download_timeout_s: float = Defaults.DOWNLOAD_TIMEOUT_S

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0


@dataclass(frozen=True)
class BackendConfig:
    """Vendor model names and output audio parameters."""
    sample_rate: int = Defaults.SAMPLE_RATE
    audio_format: str = Defaults.AUDIO_FORMAT
    qwen_model: str = Defaults.QWEN_MODEL
    cosyvoice_model: str = Defaults.COSYVOICE_MODEL
    download_chunk_bytes: int = Defaults.DOWNLOAD_CHUNK_BYTES


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup and failures only
        2 = NORMAL: Request lifecycle, retries (default)
        3 = VERBOSE: Per-attempt timing
        4 = DEBUG: Parameter bundles, internal state
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass(frozen=True)
class GatewayConfig:
    """
    Validated configuration for the synthesis service.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = GatewayConfig.from_settings(settings)
        print(config.retry.max_attempts)
    """
    retry: RetryConfig = field(default_factory=RetryConfig)
    backends: BackendConfig = field(default_factory=BackendConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    text_max_chars: int = Defaults.TEXT_MAX_CHARS
    service_cache_size: int = Defaults.SERVICE_CACHE_SIZE

    @classmethod
    def from_settings(cls, settings: "Settings") -> "GatewayConfig":
        """
        Create GatewayConfig from Settings with validation.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Retry configuration
        # ─────────────────────────────────────────────────────────────────────
        retry_raw = raw.get("retry", {}) or {}
        retry = RetryConfig(
            max_attempts=int(retry_raw.get("max_attempts", Defaults.RETRY_MAX_ATTEMPTS)),
            retry_delay_ms=int(retry_raw.get("retry_delay_ms", Defaults.RETRY_DELAY_MS)),
            synth_timeout_s=float(retry_raw.get("synth_timeout_s", Defaults.SYNTH_TIMEOUT_S)),
            download_timeout_s=float(retry_raw.get("download_timeout_s", Defaults.DOWNLOAD_TIMEOUT_S)),
        )
        cls._validate_positive("retry.max_attempts", retry.max_attempts)
        cls._validate_non_negative("retry.retry_delay_ms", retry.retry_delay_ms)
        cls._validate_positive("retry.synth_timeout_s", retry.synth_timeout_s)
        cls._validate_positive("retry.download_timeout_s", retry.download_timeout_s)

        # ─────────────────────────────────────────────────────────────────────
        # Backend configuration
        # ─────────────────────────────────────────────────────────────────────
        backends_raw = raw.get("backends", {}) or {}
        backends = BackendConfig(
            sample_rate=int(backends_raw.get("sample_rate", Defaults.SAMPLE_RATE)),
            audio_format=str(backends_raw.get("audio_format", Defaults.AUDIO_FORMAT)).lower(),
            qwen_model=str(backends_raw.get("qwen_model", Defaults.QWEN_MODEL)),
            cosyvoice_model=str(backends_raw.get("cosyvoice_model", Defaults.COSYVOICE_MODEL)),
            download_chunk_bytes=int(backends_raw.get("download_chunk_bytes", Defaults.DOWNLOAD_CHUNK_BYTES)),
        )
        cls._validate_positive("backends.sample_rate", backends.sample_rate)
        cls._validate_positive("backends.download_chunk_bytes", backends.download_chunk_bytes)
        if not backends.audio_format.isalnum():
            raise ConfigValidationError(
                f"backends.audio_format must be a bare extension, got {backends.audio_format!r}"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        text_max_chars = int((raw.get("input") or {}).get("text_max_chars", Defaults.TEXT_MAX_CHARS))
        cls._validate_positive("input.text_max_chars", text_max_chars)

        service_cache_size = int((raw.get("service") or {}).get("cache_size", Defaults.SERVICE_CACHE_SIZE))
        cls._validate_positive("service.cache_size", service_cache_size)

        return cls(
            retry=retry,
            backends=backends,
            logging=logging_cfg,
            text_max_chars=text_max_chars,
            service_cache_size=service_cache_size,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_gateway_config() for the validated view and provider_config()
    for the provider record.
    """
    raw: Dict[str, Any]

    def provider_config(self) -> ProviderConfig:
        """
        Build the provider record from the ``provider`` section.

        Raises:
            ConfigValidationError: If no API key is configured.
        """
        p = self.raw.get("provider", {}) or {}
        api_key = str(p.get("api_key") or "").strip()
        if not api_key:
            raise ConfigValidationError("provider.api_key is required (or set DASHSCOPE_API_KEY)")
        config_id = p.get("config_id")
        return ProviderConfig(
            api_key=api_key,
            voice_name=str(p.get("voice_name") or Defaults.PROVIDER_VOICE_NAME),
            output_path=str(p.get("output_path") or Defaults.PROVIDER_OUTPUT_PATH),
            config_id=str(config_id) if config_id is not None else None,
        )

    def get_gateway_config(self) -> GatewayConfig:
        return GatewayConfig.from_settings(self)


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML configuration file.

    A missing file is not an error: defaults plus environment overrides
    are enough to run when DASHSCOPE_API_KEY is set.

    Environment variable overrides:
        - TTS_GW_SETTINGS: settings file path (when ``path`` is None)
        - DASHSCOPE_API_KEY: provider.api_key
        - TTS_GW_VOICE: provider.voice_name
        - TTS_GW_OUTPUT_PATH: provider.output_path

    Raises:
        ConfigValidationError: If the file is not a YAML mapping.
    """
    p = Path(path or os.getenv("TTS_GW_SETTINGS", "config/settings.yaml"))

    raw: Dict[str, Any] = {}
    if p.exists():
        with p.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ConfigValidationError(f"settings file must contain a mapping: {p.resolve()}")
        raw = loaded

    provider = raw.setdefault("provider", {})
    if os.getenv("DASHSCOPE_API_KEY"):
        provider["api_key"] = os.environ["DASHSCOPE_API_KEY"]
    if os.getenv("TTS_GW_VOICE"):
        provider["voice_name"] = os.environ["TTS_GW_VOICE"]
    if os.getenv("TTS_GW_OUTPUT_PATH"):
        provider["output_path"] = os.environ["TTS_GW_OUTPUT_PATH"]

    return Settings(raw=raw)
