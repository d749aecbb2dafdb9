"""
CosyVoice Backend (DashScope tts_v2, default backend).

Any voice that is neither a sambert model nor a Qwen voice lands here
(e.g. "longxiaochun"). Two modes:

    call():   blocking; SpeechSynthesizer.call(text) returns WAV bytes
    stream(): a ResultCallback receives PCM chunks as they are produced;
              they are handed to the caller through a queue
              ending the stream before completion cancels the synthesizer

Note:
    The tts_v2 synthesizer takes its API key from the module-global
    ``dashscope.api_key``, so concurrent requests with different keys in
    one process race on it.

SDK entry point:
    dashscope.audio.tts_v2.SpeechSynthesizer(
        model="cosyvoice-v1", voice=..., format=AudioFormat.WAV_16000HZ_MONO_16BIT)
"""
from __future__ import annotations

import queue
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

from tts_gateway.core.config import BackendConfig
from tts_gateway.core.logging import verbose, warn
from tts_gateway.tts.backend import (
    BackendCapabilities,
    BackendKind,
    BaseBackend,
    Primitive,
    coerce_audio,
)
from tts_gateway.tts.errors import StreamInterruptedError
from tts_gateway.tts.outcome import FailureReason, SynthesisOutcome, SynthesisRequest

StreamPrimitive = Callable[[Dict[str, Any]], Iterable[bytes]]

_DONE = object()


def _audio_format(kind: str, sample_rate: int) -> Any:
    from dashscope.audio.tts_v2 import AudioFormat
    name = f"{kind.upper()}_{sample_rate}HZ_MONO_16BIT"
    try:
        return getattr(AudioFormat, name)
    except AttributeError:
        raise ValueError(f"unsupported audio format for cosyvoice: {name}") from None


class CosyVoiceBackend(BaseBackend):
    """Returns bytes from call() and PCM chunks from stream()."""
    name = "cosyvoice"
    kind = BackendKind.COSYVOICE
    capabilities = BackendCapabilities(streaming=True, remote_audio=False)

    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        primitive: Optional[Primitive] = None,
        stream_primitive: Optional[StreamPrimitive] = None,
    ):
        super().__init__(config, primitive)
        self._stream_primitive = stream_primitive

    def build_params(self, request: SynthesisRequest) -> Dict[str, Any]:
        return {
            "model": self.config.cosyvoice_model,
            "voice": request.voice,
            "text": request.text,
            "sample_rate": self.config.sample_rate,
            "format": self.config.audio_format,
            "api_key": request.credentials,
        }

    def invoke(self, params: Dict[str, Any]) -> Any:
        import dashscope
        from dashscope.audio.tts_v2 import SpeechSynthesizer

        dashscope.api_key = params["api_key"]
        synthesizer = SpeechSynthesizer(
            model=params["model"],
            voice=params["voice"],
            format=_audio_format(params["format"], params["sample_rate"]),
        )
        return synthesizer.call(params["text"])

    def classify(self, raw: Any) -> SynthesisOutcome:
        audio = coerce_audio(raw)
        if audio is None:
            detail = "no result" if raw is None else "empty audio"
            return SynthesisOutcome.retryable(FailureReason.INVALID_RESULT, detail)
        return SynthesisOutcome.with_audio(audio)

    def stream(self, request: SynthesisRequest, chunk_timeout_s: float) -> Iterator[bytes]:
        """
        Yield PCM chunks in the order the backend produced them.

        Args:
            request: The synthesis request.
            chunk_timeout_s: Longest wait for the next chunk.

        Raises:
            StreamInterruptedError: On a backend error or a stalled stream.
        """
        params = self.build_params(request)
        params["format"] = "pcm"
        if self._stream_primitive is not None:
            return iter(self._stream_primitive(params))
        return self._stream_sdk(params, chunk_timeout_s)

    def _stream_sdk(self, params: Dict[str, Any], chunk_timeout_s: float) -> Iterator[bytes]:
        import dashscope
        from dashscope.audio.tts_v2 import ResultCallback, SpeechSynthesizer

        chunks: "queue.Queue[Any]" = queue.Queue()

        class _QueueCallback(ResultCallback):
            def on_data(self, data: bytes) -> None:
                chunks.put(data)

            def on_error(self, message) -> None:
                chunks.put(StreamInterruptedError(f"cosyvoice stream error: {message}"))

            def on_complete(self) -> None:
                chunks.put(_DONE)

            def on_close(self) -> None:
                chunks.put(_DONE)

        dashscope.api_key = params["api_key"]
        synthesizer = SpeechSynthesizer(
            model=params["model"],
            voice=params["voice"],
            format=_audio_format(params["format"], params["sample_rate"]),
            callback=_QueueCallback(),
        )
        synthesizer.call(params["text"])
        verbose(self.logger, "stream_started", backend=self.name, voice=params["voice"])

        finished = False
        try:
            while True:
                try:
                    item = chunks.get(timeout=chunk_timeout_s)
                except queue.Empty:
                    raise StreamInterruptedError(
                        f"no audio chunk within {chunk_timeout_s}s",
                        details={"backend": self.name},
                    ) from None
                if item is _DONE:
                    finished = True
                    return
                if isinstance(item, StreamInterruptedError):
                    raise item
                if item:
                    yield bytes(item)
        finally:
            # Any exit before on_complete ends the vendor session
            if not finished:
                self._cancel(synthesizer)

    def _cancel(self, synthesizer: Any) -> None:
        try:
            synthesizer.streaming_cancel()
        except Exception as e:
            warn(self.logger, "stream_cancel_failed", backend=self.name, error=str(e))
        else:
            verbose(self.logger, "stream_cancelled", backend=self.name)
