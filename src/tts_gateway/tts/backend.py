"""
Backend Call Adapters: Base Class and Factory.

This module provides:
    - BackendKind: Identifier of each vendor backend
    - BackendCapabilities: Which optional features a backend supports
    - BaseBackend: One blocking vendor call turned into a SynthesisOutcome
    - create_backend(): Factory with lazy imports of the concrete adapters

Adapter contract:
    call(request) performs exactly one vendor invocation and never retries.
    A usable payload (non-empty bytes, or an http(s) URL) is a success; an
    empty or malformed result, or an exception raised by the vendor SDK, is
    a retryable failure. Retrying is the retry controller's job.

Supported backends:
    - sambert:   sentence-level model, returns WAV bytes
    - qwen:      multimodal model, returns a URL to the rendered audio
    - cosyvoice: default; returns bytes and can stream PCM chunks

Implementing a New Backend:
    1. Create backends/<name>.py
    2. Inherit from BaseBackend
    3. Implement build_params(), invoke() and classify()
    4. register_backend("<name>", factory), or add a branch to _create_builtin()
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional

from tts_gateway.core.config import BackendConfig
from tts_gateway.core.logging import debug, get_logger
from tts_gateway.tts.errors import UnsupportedOperationError
from tts_gateway.tts.executor import CancelToken
from tts_gateway.tts.outcome import FailureReason, SynthesisOutcome, SynthesisRequest

Primitive = Callable[[Dict[str, Any]], Any]


class BackendKind(str, Enum):
    SAMBERT = "sambert"
    QWEN = "qwen"
    COSYVOICE = "cosyvoice"


@dataclass(frozen=True)
class BackendCapabilities:
    """
    Describes what a backend supports.

    Attributes:
        streaming: Can deliver audio incrementally (stream_text_to_speech).
        remote_audio: Returns a URL that must be downloaded instead of bytes.
    """
    streaming: bool
    remote_audio: bool


class BaseBackend:
    """
    Base class for vendor backend adapters.

    Subclasses implement:
        - build_params(): the vendor parameter bundle for a request
        - invoke(): the blocking SDK call
        - classify(): turn the raw SDK response into an outcome

    ``primitive`` replaces invoke() with an injected callable receiving the
    same parameter bundle, so adapters can be exercised without the SDK.

    Attributes:
        name: Backend identifier used in logs and metrics.
        kind: BackendKind of this adapter.
        capabilities: BackendCapabilities of this adapter.
    """
    name: str = "base"
    kind: Optional[BackendKind] = None
    capabilities: BackendCapabilities = BackendCapabilities(streaming=False, remote_audio=False)

    def __init__(self, config: Optional[BackendConfig] = None, primitive: Optional[Primitive] = None):
        self.config = config or BackendConfig()
        self.logger = get_logger(f"tts-gateway.backend.{self.name}")
        self._primitive = primitive

    @property
    def audio_format(self) -> str:
        return self.config.audio_format

    def build_params(self, request: SynthesisRequest) -> Dict[str, Any]:
        raise NotImplementedError

    def invoke(self, params: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def classify(self, raw: Any) -> SynthesisOutcome:
        raise NotImplementedError

    def call(self, request: SynthesisRequest, token: Optional[CancelToken] = None) -> SynthesisOutcome:
        """
        Perform one vendor invocation.

        Args:
            request: The synthesis request.
            token: Cancel token of the bounded executor. Vendor SDK calls
                cannot be interrupted, so it is only consulted before the call.

        Returns:
            SynthesisOutcome; never raises for vendor failures.
        """
        if token is not None and token.cancelled:
            return SynthesisOutcome.retryable(FailureReason.TIMEOUT, "cancelled before invocation")

        params = self.build_params(request)
        debug(self.logger, "backend_params", backend=self.name,
              **{k: v for k, v in params.items() if k not in ("api_key", "text")})
        try:
            raw = self._primitive(params) if self._primitive is not None else self.invoke(params)
        except ImportError as e:
            # Missing SDK will not fix itself between attempts
            return SynthesisOutcome.terminal(FailureReason.TRANSPORT_ERROR, error=e)
        except Exception as e:
            return SynthesisOutcome.retryable(FailureReason.TRANSPORT_ERROR, error=e)
        return self.classify(raw)

    def stream(self, request: SynthesisRequest, chunk_timeout_s: float) -> Iterator[bytes]:
        """
        Yield audio chunks as the backend produces them.

        Raises:
            UnsupportedOperationError: If the backend cannot stream.
        """
        raise UnsupportedOperationError(
            f"backend '{self.name}' does not support streaming",
            details={"backend": self.name},
        )


def coerce_audio(raw: Any) -> Optional[bytes]:
    """Return ``raw`` as non-empty bytes, or None."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        data = bytes(raw)
        return data or None
    return None


# =============================================================================
# Backend Factory
# =============================================================================

BackendFactory = Callable[[BackendConfig, Optional[Primitive]], BaseBackend]

_FACTORIES: Dict[str, BackendFactory] = {}


def register_backend(kind: str, factory: BackendFactory) -> None:
    """
    Register (or replace) the factory for a backend kind.

    Args:
        kind: Backend identifier as returned by the selector.
        factory: ``factory(config, primitive) -> BaseBackend``.
    """
    _FACTORIES[str(getattr(kind, "value", kind))] = factory


def _create_builtin(kind: str, config: BackendConfig, primitive: Optional[Primitive]) -> BaseBackend:
    """
    Create a built-in adapter.

    Uses lazy imports so the vendor SDK is only imported by the adapter
    that is actually used.
    """
    if kind == BackendKind.SAMBERT.value:
        from tts_gateway.tts.backends.sambert import SambertBackend
        return SambertBackend(config, primitive)

    if kind == BackendKind.QWEN.value:
        from tts_gateway.tts.backends.qwen import QwenBackend
        return QwenBackend(config, primitive)

    if kind == BackendKind.COSYVOICE.value:
        from tts_gateway.tts.backends.cosyvoice import CosyVoiceBackend
        return CosyVoiceBackend(config, primitive)

    raise ValueError(f"Unknown backend kind: {kind}")


def create_backend(
    kind: BackendKind | str,
    config: Optional[BackendConfig] = None,
    primitive: Optional[Primitive] = None,
) -> BaseBackend:
    """
    Create a backend adapter.

    Args:
        kind: Backend kind (BackendKind or its string value).
        config: Backend configuration; defaults apply if omitted.
        primitive: Optional replacement for the vendor SDK call.

    Raises:
        ValueError: If the kind is unknown.
    """
    key = str(getattr(kind, "value", kind)).strip().lower()
    config = config or BackendConfig()
    factory = _FACTORIES.get(key)
    if factory is not None:
        return factory(config, primitive)
    return _create_builtin(key, config, primitive)
