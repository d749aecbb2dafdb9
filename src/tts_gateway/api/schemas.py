"""
API Request/Response Schemas.

Example Request:
    {
        "text": "Hello there",
        "voice": "Cherry"
    }

Example Response:
    {
        "ok": true,
        "path": "audio/3f2a...c9.wav",
        "file_name": "3f2a...c9.wav",
        "size_bytes": 48044,
        "backend": "qwen",
        "format": "wav",
        "request_id": "a1b2c3d4e5f6"
    }

``voice`` overrides the configured voice and therefore may switch the
backend (see tts/selector.py).
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TTSRequest(BaseModel):
    """
    Synthesis request for /v1/tts.

    Attributes:
        text: The text to synthesize, 1-4000 characters.
        voice: Voice identifier; the configured voice when omitted.
    """
    text: str = Field(..., min_length=1, max_length=4000)
    voice: Optional[str] = Field(default=None, max_length=100)


class TTSResponse(BaseModel):
    """Record of the file written for a successful synthesis."""
    ok: bool
    path: str
    file_name: str
    size_bytes: int
    backend: str
    format: str
    request_id: str
