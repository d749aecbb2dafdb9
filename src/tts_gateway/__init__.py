"""
tts-gateway: Speech Synthesis Gateway over DashScope Backends.

One voice identifier picks one of three vendor backends:
    - sambert-*                        -> Sambert (WAV bytes)
    - Chelsie / Cherry / Ethan / Serena -> Qwen TTS (audio URL, downloaded)
    - anything else                    -> CosyVoice (WAV bytes, PCM streaming)

Every backend call runs under a deadline, failed attempts are retried
with a fixed delay, and the result is written to a uniquely named file.

Example Usage:
    >>> from tts_gateway.core.config import ProviderConfig
    >>> from tts_gateway.services import get_service
    >>>
    >>> service = get_service(ProviderConfig(api_key="sk-...", voice_name="Cherry"))
    >>> path = service.text_to_speech("Hello there")
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
