"""
Synthesis Data Model.

    SynthesisRequest  - immutable input of one synthesis call
    SynthesisAttempt  - one retry iteration with its own deadline
    SynthesisOutcome  - tagged result of an attempt: success (bytes, remote
                        URL or an already persisted file), retryable failure
                        or terminal failure
    PersistedAudio    - the file the audio sink produced

Outcomes are values, not exceptions: adapters and the bounded executor
return them and only the retry controller decides what happens next.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


class FailureReason(str, Enum):
    TIMEOUT = "timeout"
    INVALID_RESULT = "invalid_result"
    TRANSPORT_ERROR = "transport_error"
    PERSISTENCE_ERROR = "persistence_error"


@dataclass(frozen=True)
class SynthesisRequest:
    """
    One synthesis call.

    Attributes:
        text: Text to synthesize.
        voice: Voice identifier (also the model name for sambert voices).
        credentials: API key handed to the vendor SDK; excluded from repr.
        output_dir: Directory the audio sink writes into.
    """
    text: str
    voice: str
    credentials: str = field(repr=False)
    output_dir: Path


@dataclass(frozen=True)
class SynthesisAttempt:
    """
    A single iteration of the retry loop.

    Attributes:
        index: Zero-based attempt index.
        deadline: time.monotonic() instant by which the backend call must finish.
    """
    index: int
    deadline: float

    @classmethod
    def start(cls, index: int, timeout_s: float) -> "SynthesisAttempt":
        return cls(index=index, deadline=time.monotonic() + timeout_s)

    @property
    def number(self) -> int:
        """One-based attempt number, as shown in logs."""
        return self.index + 1

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())


@dataclass(frozen=True)
class PersistedAudio:
    """A synthesized audio file on local storage."""
    file_path: Path
    size_bytes: int = 0


@dataclass(frozen=True)
class SynthesisOutcome:
    """
    Result of one backend call, one download, or one whole attempt.

    Exactly one payload field is set on success: ``audio`` for backends
    returning raw bytes, ``remote_url`` for backends returning a location,
    ``persisted`` once a remote payload has been downloaded to disk.
    """
    kind: OutcomeKind
    audio: Optional[bytes] = field(default=None, repr=False)
    remote_url: Optional[str] = None
    persisted: Optional[PersistedAudio] = None
    reason: Optional[FailureReason] = None
    detail: str = ""
    error: Optional[BaseException] = field(default=None, repr=False, compare=False)

    # -- constructors -------------------------------------------------------

    @classmethod
    def with_audio(cls, audio: bytes) -> "SynthesisOutcome":
        return cls(kind=OutcomeKind.SUCCESS, audio=audio)

    @classmethod
    def with_remote_url(cls, url: str) -> "SynthesisOutcome":
        return cls(kind=OutcomeKind.SUCCESS, remote_url=url)

    @classmethod
    def with_file(cls, persisted: PersistedAudio) -> "SynthesisOutcome":
        return cls(kind=OutcomeKind.SUCCESS, persisted=persisted)

    @classmethod
    def retryable(
        cls,
        reason: FailureReason,
        detail: str = "",
        error: Optional[BaseException] = None,
    ) -> "SynthesisOutcome":
        return cls(kind=OutcomeKind.RETRYABLE, reason=reason, detail=detail or _describe(error), error=error)

    @classmethod
    def terminal(
        cls,
        reason: FailureReason,
        detail: str = "",
        error: Optional[BaseException] = None,
    ) -> "SynthesisOutcome":
        return cls(kind=OutcomeKind.TERMINAL, reason=reason, detail=detail or _describe(error), error=error)

    # -- predicates ---------------------------------------------------------

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def is_retryable(self) -> bool:
        return self.kind is OutcomeKind.RETRYABLE

    @property
    def is_terminal(self) -> bool:
        return self.kind is OutcomeKind.TERMINAL

    @property
    def label(self) -> str:
        """Short label for metrics and logs: "success" or the failure reason."""
        if self.is_success:
            return "success"
        return self.reason.value if self.reason else self.kind.value


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return ""
    text = str(error)
    return f"{type(error).__name__}: {text}" if text else type(error).__name__
