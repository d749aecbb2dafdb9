"""
Input Validation for the Synthesis Service.

Validation happens before any backend call so rejected input never
consumes an attempt.

Validation Rules:
    - Text: Required, non-blank, max ``text_max_chars`` characters
    - Voice: Optional, max 100 characters, no path separators

Error codes (InvalidInputError.details["code"]):
    - TEXT_REQUIRED, TEXT_TOO_LONG
    - VOICE_TOO_LONG, VOICE_INVALID_CHARS
"""
from __future__ import annotations

from typing import Optional

from tts_gateway.core.config import Defaults
from tts_gateway.core.logging import get_logger, warn
from tts_gateway.tts.errors import InvalidInputError

_LOG = get_logger("tts-gateway.validators")

MAX_VOICE_CHARS = 100


def validate_text(text: Optional[str], max_length: int = Defaults.TEXT_MAX_CHARS) -> str:
    """
    Validate text input.

    Returns:
        The text stripped of surrounding whitespace.

    Raises:
        InvalidInputError: If the text is blank or too long.
    """
    if not text or not text.strip():
        raise InvalidInputError("Text is required", details={"code": "TEXT_REQUIRED"})

    text = text.strip()

    if len(text) > max_length:
        warn(_LOG, "text_too_long", chars=len(text), max_chars=max_length)
        raise InvalidInputError(
            f"Text exceeds maximum length ({len(text)} > {max_length})",
            details={"code": "TEXT_TOO_LONG"},
        )

    return text


def validate_voice(voice: Optional[str], max_length: int = MAX_VOICE_CHARS) -> Optional[str]:
    """
    Validate a voice identifier override.

    Returns:
        The voice, or None when not given.

    Raises:
        InvalidInputError: If the voice is too long or contains path separators.
    """
    if not voice:
        return None

    if len(voice) > max_length:
        raise InvalidInputError(
            f"Voice exceeds maximum length ({len(voice)} > {max_length})",
            details={"code": "VOICE_TOO_LONG"},
        )

    if "/" in voice or "\\" in voice:
        raise InvalidInputError("Voice contains invalid characters", details={"code": "VOICE_INVALID_CHARS"})

    return voice
