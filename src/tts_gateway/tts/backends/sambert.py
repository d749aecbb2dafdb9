"""
Sambert Backend (DashScope, sentence-level synthesis).

The voice identifier doubles as the model name (e.g. "sambert-zhichu-v1"),
which is how the selector recognises these voices. The SDK returns a
result object whose get_audio_data() holds the encoded audio.

SDK entry point:
    dashscope.audio.tts.SpeechSynthesizer.call(
        model=..., text=..., sample_rate=16000, format="wav", api_key=...)
"""
from __future__ import annotations

from typing import Any, Dict

from tts_gateway.tts.backend import (
    BackendCapabilities,
    BackendKind,
    BaseBackend,
    coerce_audio,
)
from tts_gateway.tts.outcome import FailureReason, SynthesisOutcome, SynthesisRequest


class SambertBackend(BaseBackend):
    """Returns the whole utterance as WAV bytes."""
    name = "sambert"
    kind = BackendKind.SAMBERT
    capabilities = BackendCapabilities(streaming=False, remote_audio=False)

    def build_params(self, request: SynthesisRequest) -> Dict[str, Any]:
        return {
            "model": request.voice,
            "text": request.text,
            "sample_rate": self.config.sample_rate,
            "format": self.config.audio_format,
            "api_key": request.credentials,
        }

    def invoke(self, params: Dict[str, Any]) -> Any:
        from dashscope.audio.tts import SpeechSynthesizer
        return SpeechSynthesizer.call(**params)

    def classify(self, raw: Any) -> SynthesisOutcome:
        if raw is None:
            return SynthesisOutcome.retryable(FailureReason.INVALID_RESULT, "no result")

        get_audio = getattr(raw, "get_audio_data", None)
        audio = coerce_audio(get_audio() if callable(get_audio) else raw)
        if audio is None:
            response = getattr(raw, "get_response", None)
            detail = str(response()) if callable(response) else "empty audio"
            return SynthesisOutcome.retryable(FailureReason.INVALID_RESULT, detail)
        return SynthesisOutcome.with_audio(audio)
