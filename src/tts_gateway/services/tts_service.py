"""
TTSService - Synthesis Orchestration for One Provider Configuration.

Pipeline:
    Validate → Select backend → [Attempt → (Download)] × retries → Persist

    Attempt:   one adapter call on a bounded worker (synth deadline)
    Download:  for URL-returning backends, a second bounded worker fetches
               the file; a failed download consumes the same attempt
    Persist:   bytes are written once, after the retry loop succeeded;
               a disk failure raises PersistenceError and is not retried

Inbound contract:
    text_to_speech(text) -> path of the new file, "" if synthesis was
        unavailable after all attempts (or cancelled)
    stream_text_to_speech(text, consumer) -> chunk count; raises
        UnsupportedOperationError unless the backend streams

Service instances are cached per provider configuration (get_service).
A configuration change means remove_cache() then get_service() again.

Example:
    >>> from tts_gateway.core.config import ProviderConfig
    >>> from tts_gateway.services import get_service
    >>>
    >>> service = get_service(ProviderConfig(api_key="sk-...", voice_name="Cherry"))
    >>> path = service.text_to_speech("Hello there")
    >>> if not path:
    ...     print("synthesis unavailable")
"""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from tts_gateway.core.config import GatewayConfig, ProviderConfig
from tts_gateway.core.logging import debug, error, fail, get_logger, info, success, verbose
from tts_gateway.core.metrics import GatewayMetrics, metrics as default_metrics
from tts_gateway.services.validators import validate_text
from tts_gateway.tts.backend import BaseBackend, create_backend
from tts_gateway.tts.errors import (
    PersistenceError,
    StreamInterruptedError,
    SynthesisCancelledError,
    SynthesisUnavailableError,
    UnsupportedOperationError,
)
from tts_gateway.tts.executor import run_bounded
from tts_gateway.tts.outcome import PersistedAudio, SynthesisAttempt, SynthesisOutcome, SynthesisRequest
from tts_gateway.tts.retry import RetryController, WaitFn
from tts_gateway.tts.selector import BackendSelector, default_selector
from tts_gateway.tts.sink import AudioSink, ChunkConsumer

_LOG = get_logger("tts-gateway.service")


class TTSService:
    """
    Speech synthesis for one provider configuration.

    Thread-safe: requests share no mutable state beyond the metrics sink,
    and each request gets its own retry controller and workers.

    Args:
        provider: Provider record (credentials, voice, output path).
        config: Validated gateway configuration; defaults if omitted.
        selector: Voice -> backend rules; built-in rules if omitted.
        backend: Pre-built adapter, bypassing selection (tests, embedding).
        session: Shared requests session for downloads; each download opens
            its own session if omitted.
        retry_wait: Replacement for the inter-attempt wait.
        metrics: Metrics sink; process-wide instance if omitted.
    """
    provider_name = "aliyun"

    def __init__(
        self,
        provider: ProviderConfig,
        config: Optional[GatewayConfig] = None,
        selector: Optional[BackendSelector] = None,
        backend: Optional[BaseBackend] = None,
        session: Optional[requests.Session] = None,
        retry_wait: Optional[WaitFn] = None,
        metrics: Optional[GatewayMetrics] = None,
    ):
        self._provider = provider
        self._config = config or GatewayConfig()
        self._selector = selector or default_selector()
        self._metrics = metrics or default_metrics
        self._retry_wait = retry_wait

        if backend is None:
            kind, rule = self._selector.explain(provider.voice_name)
            backend = create_backend(kind, self._config.backends)
        else:
            rule = "injected"
        self._backend = backend

        self._sink = AudioSink(
            Path(provider.output_path),
            audio_format=backend.audio_format,
            session=session,
            chunk_bytes=self._config.backends.download_chunk_bytes,
            download_timeout_s=self._config.retry.download_timeout_s,
        )
        self._text_preview_chars = self._config.logging.text_preview_chars

        info(_LOG, "service_init",
             provider=self.provider_name,
             voice=provider.voice_name,
             backend=backend.name,
             rule=rule,
             output=str(self._sink.output_dir),
             max_attempts=self._config.retry.max_attempts)

    # ── properties ───────────────────────────────────────────────────────────

    @property
    def provider(self) -> ProviderConfig:
        return self._provider

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def backend(self) -> BaseBackend:
        return self._backend

    @property
    def backend_name(self) -> str:
        return self._backend.name

    @property
    def sink(self) -> AudioSink:
        return self._sink

    @property
    def audio_format(self) -> str:
        return self._sink.audio_format

    @property
    def supports_stream_tts(self) -> bool:
        return self._backend.capabilities.streaming

    def get_provider_name(self) -> str:
        return self.provider_name

    def get_audio_file_name(self) -> str:
        """A fresh file name for this service's audio format."""
        return self._sink.new_file_name()

    # ── request plumbing ─────────────────────────────────────────────────────

    def _request(self, text: str) -> SynthesisRequest:
        text = validate_text(text, self._config.text_max_chars)
        preview = text[:self._text_preview_chars] if self._text_preview_chars > 0 else ""
        info(_LOG, "request", backend=self.backend_name, chars=len(text), text_preview=preview)
        debug(_LOG, "request_full", text=text, voice=self._provider.voice_name)
        return SynthesisRequest(
            text=text,
            voice=self._provider.voice_name,
            credentials=self._provider.api_key,
            output_dir=self._sink.output_dir,
        )

    def _attempt(self, request: SynthesisRequest, attempt: SynthesisAttempt) -> SynthesisOutcome:
        """One retry unit: the backend call, plus the download for URL results."""
        fields = {
            "backend": self.backend_name,
            "attempt": attempt.number,
            "max_attempts": self._config.retry.max_attempts,
        }
        outcome = run_bounded(
            partial(self._backend.call, request),
            attempt.remaining(),
            name=f"tts-{self.backend_name}",
            **fields,
        )
        if outcome.is_success and outcome.remote_url:
            verbose(_LOG, "remote_audio", **fields)
            return self._sink.download(outcome.remote_url, **fields)
        return outcome

    # ── public API ───────────────────────────────────────────────────────────

    def synthesize(self, text: str, cancel: Optional[threading.Event] = None) -> PersistedAudio:
        """
        Synthesize ``text`` into a new local file.

        Args:
            text: Text to synthesize.
            cancel: Event that, once set, stops the retry loop at its next wait.

        Returns:
            PersistedAudio of the new file.

        Raises:
            InvalidInputError: If the text is rejected.
            SynthesisUnavailableError: If every attempt failed.
            SynthesisCancelledError: If the retry wait was cancelled.
            PersistenceError: If the audio could not be written locally.
        """
        request = self._request(text)
        t0 = time.perf_counter()

        controller = RetryController(
            self._config.retry,
            backend=self.backend_name,
            cancel=cancel,
            wait=self._retry_wait,
            metrics=self._metrics,
        )
        result = controller.run(partial(self._attempt, request))
        elapsed = time.perf_counter() - t0

        if not result.succeeded:
            last = result.outcome
            details = {
                "backend": self.backend_name,
                "attempts": result.attempts,
                "reason": last.label if last else None,
            }
            if result.cancelled:
                self._metrics.record_request(self.backend_name, "cancelled", elapsed)
                fail(_LOG, "cancelled", seconds=round(elapsed, 3), **details)
                raise SynthesisCancelledError("synthesis cancelled during retry wait", details=details)
            self._metrics.record_request(self.backend_name, "unavailable", elapsed)
            fail(_LOG, "unavailable", detail=last.detail if last else "", seconds=round(elapsed, 3), **details)
            raise SynthesisUnavailableError(
                f"synthesis unavailable after {result.attempts} attempt(s)",
                details=details,
            )

        try:
            persisted = self._sink.persist(result.outcome)
        except PersistenceError as e:
            elapsed = time.perf_counter() - t0
            self._metrics.record_request(self.backend_name, "error", elapsed)
            error(_LOG, "persist_failed", backend=self.backend_name, error=e.message, seconds=round(elapsed, 3))
            raise

        elapsed = time.perf_counter() - t0
        self._metrics.record_request(self.backend_name, "success", elapsed, audio_bytes=persisted.size_bytes)
        success(_LOG, "done", backend=self.backend_name, file=persisted.file_path.name,
                bytes=persisted.size_bytes, attempts=result.attempts, seconds=round(elapsed, 3))
        return persisted

    def text_to_speech(self, text: str) -> str:
        """
        Synthesize ``text`` and return the new file's path.

        Returns:
            The file path, or "" when synthesis was unavailable or cancelled.

        Raises:
            InvalidInputError: If the text is rejected.
            PersistenceError: If the audio could not be written locally.
        """
        try:
            return str(self.synthesize(text).file_path)
        except (SynthesisUnavailableError, SynthesisCancelledError):
            return ""

    def stream_text_to_speech(self, text: str, consumer: ChunkConsumer) -> int:
        """
        Stream synthesized audio to ``consumer`` chunk by chunk.

        Streaming is a single attempt: a failure after it started is not
        retried, because the consumer has already received audio.

        Returns:
            Number of chunks delivered.

        Raises:
            UnsupportedOperationError: If the backend cannot stream.
            StreamInterruptedError: If the stream failed.
        """
        if not self.supports_stream_tts:
            raise UnsupportedOperationError(
                f"backend '{self.backend_name}' does not support streaming",
                details={"backend": self.backend_name, "voice": self._provider.voice_name},
            )

        request = self._request(text)
        t0 = time.perf_counter()

        def on_chunk(_size: int) -> None:
            self._metrics.record_stream_chunk(self.backend_name)

        try:
            chunks = self._backend.stream(request, self._config.retry.synth_timeout_s)
            count = self._sink.forward(chunks, consumer, on_chunk=on_chunk)
        except StreamInterruptedError as e:
            elapsed = time.perf_counter() - t0
            self._metrics.record_request(self.backend_name, "error", elapsed)
            fail(_LOG, "stream_interrupted", backend=self.backend_name, error=e.message,
                 chunks=e.details.get("chunks", 0), seconds=round(elapsed, 3))
            raise
        except UnsupportedOperationError:
            raise
        except Exception as e:
            elapsed = time.perf_counter() - t0
            self._metrics.record_request(self.backend_name, "error", elapsed)
            fail(_LOG, "stream_interrupted", backend=self.backend_name, error=str(e), seconds=round(elapsed, 3))
            raise StreamInterruptedError(f"stream could not start: {e}", details={"chunks": 0}) from e

        elapsed = time.perf_counter() - t0
        self._metrics.record_request(self.backend_name, "success", elapsed)
        success(_LOG, "stream_done", backend=self.backend_name, chunks=count, seconds=round(elapsed, 3))
        return count

    # =========================================================================
    # Health Check
    # =========================================================================

    def get_health_info(self) -> Dict[str, Any]:
        """Service configuration and backend capabilities, without credentials."""
        retry = self._config.retry
        return {
            "ok": True,
            "provider": self.provider_name,
            "voice": self._provider.voice_name,
            "backend": self.backend_name,
            "audio_format": self.audio_format,
            "output_path": str(self._sink.output_dir),
            "capabilities": {
                "streaming": self._backend.capabilities.streaming,
                "remote_audio": self._backend.capabilities.remote_audio,
            },
            "retry": {
                "max_attempts": retry.max_attempts,
                "retry_delay_ms": retry.retry_delay_ms,
                "synth_timeout_s": retry.synth_timeout_s,
                "download_timeout_s": retry.download_timeout_s,
            },
        }


# =============================================================================
# Per-Configuration Service Cache
# =============================================================================

# Least recently used first; bounded by GatewayConfig.service_cache_size
_services: "OrderedDict[str, TTSService]" = OrderedDict()
_services_lock = threading.Lock()


def get_service(provider: ProviderConfig, config: Optional[GatewayConfig] = None) -> TTSService:
    """
    Get or create the service for a provider configuration.

    Thread-safe LRU cache keyed by ProviderConfig.cache_key. Once more than
    ``config.service_cache_size`` configurations are cached, the least
    recently used service is dropped.
    """
    config = config or GatewayConfig()
    key = provider.cache_key
    with _services_lock:
        service = _services.get(key)
        if service is not None:
            _services.move_to_end(key)
            return service

        service = TTSService(provider, config)
        _services[key] = service
        while len(_services) > config.service_cache_size:
            _, evicted = _services.popitem(last=False)
            verbose(_LOG, "service_evicted", voice=evicted.provider.voice_name, reason="lru")
    return service


def remove_cache(provider: ProviderConfig) -> bool:
    """
    Drop the cached service of a provider configuration.

    Returns:
        True if a service was cached.
    """
    with _services_lock:
        removed = _services.pop(provider.cache_key, None) is not None
    if removed:
        info(_LOG, "service_evicted", voice=provider.voice_name)
    return removed


def reset_services() -> None:
    """
    Clear the service cache.

    Used primarily for testing to ensure clean state between tests.
    """
    with _services_lock:
        _services.clear()
