"""
Error Codes and Exceptions.

Two families of failure exist in the gateway:

    Recoverable, carried as SynthesisOutcome values (never raised):
        Timeout, InvalidResult, TransportError during synthesis or download.
        The retry controller consumes them up to the attempt budget.

    Surfaced immediately, raised as TTSError subclasses:
        PersistenceError        - local disk write failed (not retried)
        UnsupportedOperationError - streaming on a non-streaming backend
        StreamInterruptedError  - backend failed mid-stream (terminal)
        SynthesisUnavailableError - attempt budget exhausted
        SynthesisCancelledError - retry wait was cancelled
        InvalidInputError       - text rejected before any backend call

All TTSError subclasses serialize with to_dict() into the API error shape:
    {"ok": false, "error": "<CODE>", "message": "...", "details": {...}}
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Machine-readable error codes used in API responses and logs."""
    SYNTHESIS_UNAVAILABLE = "SYNTHESIS_UNAVAILABLE"   # Retries exhausted
    CANCELLED = "CANCELLED"                           # Retry wait interrupted
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"         # Local file write failed
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"   # Streaming not supported
    STREAM_INTERRUPTED = "STREAM_INTERRUPTED"         # Failure mid-stream
    INVALID_INPUT = "INVALID_INPUT"                   # Bad request data
    INTERNAL_ERROR = "INTERNAL_ERROR"                 # Unexpected error


class TTSError(Exception):
    """
    Base exception for gateway errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode.
        details: Additional context (backend, attempts, reason, ...).
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(TTSError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INVALID_INPUT, details)


class SynthesisUnavailableError(TTSError):
    """Raised when every attempt failed; callers pick their own fallback."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.SYNTHESIS_UNAVAILABLE, details)


class SynthesisCancelledError(TTSError):
    """Raised when the inter-attempt wait was cancelled."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.CANCELLED, details)


class PersistenceError(TTSError):
    """Raised when synthesized audio could not be written locally."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.PERSISTENCE_FAILED, details)


class UnsupportedOperationError(TTSError):
    """Raised when streaming is requested from a backend that cannot stream."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.UNSUPPORTED_OPERATION, details)


class StreamInterruptedError(TTSError):
    """Raised when a streaming synthesis fails after it started."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.STREAM_INTERRUPTED, details)
