"""
Audio Sink - Local Persistence and Delivery.

Three ways audio leaves the gateway:

    write_bytes()  - raw audio from a backend, written once after synthesis
    download()     - a remote URL fetched within the caller's retry attempt,
                     bounded by the download deadline
    forward()      - streamed chunks handed to a consumer in order

Every file gets a fresh name (uuid4 hex + extension), so repeated requests
for the same text never overwrite each other. Writes go to a temporary
sibling first and are renamed into place; a failed or abandoned write never
leaves a partial file under the final name.

Failure semantics:
    write_bytes(): PersistenceError (raised, never retried)
    download():    RetryableFailure outcome (consumes an attempt)
    forward():     StreamInterruptedError (terminal, no retry)
"""
from __future__ import annotations

import time
import uuid
from contextlib import nullcontext
from functools import partial
from pathlib import Path
from typing import Any, Callable, ContextManager, Iterable, Optional

import requests

from tts_gateway.core.config import Defaults
from tts_gateway.core.logging import get_logger, info, verbose, warn
from tts_gateway.tts.errors import PersistenceError, StreamInterruptedError
from tts_gateway.tts.executor import CancelToken, run_bounded
from tts_gateway.tts.outcome import FailureReason, PersistedAudio, SynthesisOutcome

_LOG = get_logger("tts-gateway.sink")

ChunkConsumer = Callable[[bytes], Any]


def new_audio_file_name(audio_format: str = Defaults.AUDIO_FORMAT) -> str:
    """Collision-resistant file name: 32 hex chars plus the format extension."""
    return f"{uuid.uuid4().hex}.{audio_format}"


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        warn(_LOG, "partial_file_cleanup_failed", path=str(path), error=str(e))


class AudioSink:
    """
    Writes audio under one output directory.

    Args:
        output_dir: Target directory; created on first write.
        audio_format: File extension of produced files.
        session: requests session shared by all downloads. When omitted,
            each download opens and closes its own session.
        chunk_bytes: Download read size.
        download_timeout_s: Deadline for one download.
    """

    def __init__(
        self,
        output_dir: str | Path,
        audio_format: str = Defaults.AUDIO_FORMAT,
        session: Optional[requests.Session] = None,
        chunk_bytes: int = Defaults.DOWNLOAD_CHUNK_BYTES,
        download_timeout_s: float = Defaults.DOWNLOAD_TIMEOUT_S,
    ):
        self.output_dir = Path(output_dir)
        self.audio_format = audio_format
        self._session = session
        self._chunk_bytes = chunk_bytes
        self._download_timeout_s = download_timeout_s

    def _session_scope(self) -> ContextManager[Any]:
        if self._session is not None:
            return nullcontext(self._session)
        return requests.Session()

    def new_file_name(self) -> str:
        return new_audio_file_name(self.audio_format)

    def new_path(self) -> Path:
        return self.output_dir / self.new_file_name()

    # ── bytes ────────────────────────────────────────────────────────────────

    def write_bytes(self, audio: bytes) -> PersistedAudio:
        """
        Write audio bytes to a new file in one pass.

        Raises:
            PersistenceError: If the directory or file cannot be written.
        """
        path = self.new_path()
        tmp = path.with_name(path.name + ".tmp")
        t0 = time.perf_counter()
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(audio)
            tmp.replace(path)
        except OSError as e:
            _discard(tmp)
            raise PersistenceError(
                f"could not write audio file: {e}",
                details={"path": str(path), "bytes": len(audio)},
            ) from e

        info(_LOG, "saved", file=path.name, bytes=len(audio), seconds=round(time.perf_counter() - t0, 4))
        return PersistedAudio(file_path=path, size_bytes=len(audio))

    # ── remote URL ───────────────────────────────────────────────────────────

    def fetch(self, url: str, token: Optional[CancelToken] = None) -> SynthesisOutcome:
        """
        Download ``url`` into a new file. Runs on an executor worker.

        The rename into the final name happens through token.commit(), so a
        download that outlives its deadline never publishes a file.
        """
        token = token or CancelToken()
        path = self.new_path()
        part = path.with_name(path.name + ".part")
        size = 0
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with self._session_scope() as session:
                response = session.get(url, stream=True, timeout=self._download_timeout_s)
                try:
                    response.raise_for_status()
                    with part.open("wb") as f:
                        for chunk in response.iter_content(chunk_size=self._chunk_bytes):
                            if token.cancelled:
                                return SynthesisOutcome.retryable(FailureReason.TIMEOUT, "download abandoned")
                            if chunk:
                                f.write(chunk)
                                size += len(chunk)
                finally:
                    response.close()

            if size == 0:
                return SynthesisOutcome.retryable(FailureReason.INVALID_RESULT, "downloaded audio is empty")
            if not token.commit(partial(part.replace, path)):
                return SynthesisOutcome.retryable(FailureReason.TIMEOUT, "download abandoned")
        except requests.RequestException as e:
            return SynthesisOutcome.retryable(FailureReason.TRANSPORT_ERROR, error=e)
        except OSError as e:
            return SynthesisOutcome.retryable(FailureReason.PERSISTENCE_ERROR, error=e)
        finally:
            if part.exists():
                _discard(part)

        return SynthesisOutcome.with_file(PersistedAudio(file_path=path, size_bytes=size))

    def download(self, url: str, **log_fields: Any) -> SynthesisOutcome:
        """Fetch ``url`` on a worker bounded by the download deadline."""
        verbose(_LOG, "download_start", timeout_s=self._download_timeout_s, **log_fields)
        return run_bounded(
            partial(self.fetch, url),
            self._download_timeout_s,
            name="tts-download",
            **log_fields,
        )

    def persist(self, outcome: SynthesisOutcome) -> PersistedAudio:
        """
        Turn a successful outcome into a local file.

        Raises:
            PersistenceError: If the outcome cannot be persisted.
        """
        if outcome.persisted is not None:
            return outcome.persisted
        if outcome.audio:
            return self.write_bytes(outcome.audio)
        if outcome.remote_url:
            fetched = self.download(outcome.remote_url)
            if fetched.is_success and fetched.persisted is not None:
                return fetched.persisted
            raise PersistenceError(
                f"could not download audio: {fetched.detail or fetched.label}",
                details={"url": outcome.remote_url},
            )
        raise PersistenceError("nothing to persist", details={"outcome": outcome.label})

    # ── streaming ────────────────────────────────────────────────────────────

    def forward(
        self,
        chunks: Iterable[bytes],
        consumer: ChunkConsumer,
        on_chunk: Optional[Callable[[int], Any]] = None,
    ) -> int:
        """
        Hand each chunk to ``consumer`` in arrival order.

        Returns:
            Number of chunks forwarded.

        Raises:
            StreamInterruptedError: If the source fails or yields nothing.
        """
        count = 0
        try:
            for chunk in chunks:
                if not chunk:
                    continue
                consumer(chunk)
                count += 1
                if on_chunk is not None:
                    on_chunk(len(chunk))
        except StreamInterruptedError as e:
            e.details.setdefault("chunks", count)
            raise
        except Exception as e:
            raise StreamInterruptedError(
                f"stream failed after {count} chunk(s): {e}",
                details={"chunks": count},
            ) from e

        if count == 0:
            raise StreamInterruptedError("stream ended without audio", details={"chunks": 0})
        return count
