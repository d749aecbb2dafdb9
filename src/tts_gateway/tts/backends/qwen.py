"""
Qwen TTS Backend (DashScope multimodal conversation).

Serves the fixed voice set Chelsie, Cherry, Ethan and Serena. The response
does not carry audio bytes: ``output.audio.url`` points at the rendered
file, which the audio sink downloads within the same retry attempt.

SDK entry point:
    dashscope.MultiModalConversation.call(
        model="qwen-tts", api_key=..., text=..., voice="Cherry")
"""
from __future__ import annotations

from typing import Any, Dict

from tts_gateway.tts.backend import BackendCapabilities, BackendKind, BaseBackend
from tts_gateway.tts.outcome import FailureReason, SynthesisOutcome, SynthesisRequest


def _dig(obj: Any, *path: str) -> Any:
    """Walk attributes or mapping keys; None as soon as a step is missing."""
    for key in path:
        if obj is None:
            return None
        if isinstance(obj, dict):
            obj = obj.get(key)
        else:
            obj = getattr(obj, key, None)
    return obj


class QwenBackend(BaseBackend):
    """Returns a URL to the synthesized audio."""
    name = "qwen"
    kind = BackendKind.QWEN
    capabilities = BackendCapabilities(streaming=False, remote_audio=True)

    def build_params(self, request: SynthesisRequest) -> Dict[str, Any]:
        return {
            "model": self.config.qwen_model,
            "api_key": request.credentials,
            "text": request.text,
            "voice": request.voice,
        }

    def invoke(self, params: Dict[str, Any]) -> Any:
        import dashscope
        return dashscope.MultiModalConversation.call(**params)

    def classify(self, raw: Any) -> SynthesisOutcome:
        if raw is None:
            return SynthesisOutcome.retryable(FailureReason.INVALID_RESULT, "no result")

        if isinstance(raw, str):
            url = raw
        else:
            status = _dig(raw, "status_code")
            if isinstance(status, int) and status != 200:
                message = _dig(raw, "message") or _dig(raw, "code") or ""
                return SynthesisOutcome.retryable(
                    FailureReason.TRANSPORT_ERROR, f"status {status}: {message}".rstrip(": ")
                )
            url = _dig(raw, "output", "audio", "url")

        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            return SynthesisOutcome.retryable(FailureReason.INVALID_RESULT, "response has no audio url")
        return SynthesisOutcome.with_remote_url(url)
