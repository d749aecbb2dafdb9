"""
Timeout-Bounded Execution of Blocking Backend Calls.

Vendor SDK calls and remote downloads block on the network for an unknown
time. run_bounded() runs one such call on a dedicated daemon thread and
waits for it at most ``timeout_s`` seconds.

Lifecycle of one bounded call:

    caller                          worker thread
    ──────                          ─────────────
    start worker ─────────────────> call(token)
    wait(timeout_s)                   ...
      ├─ finished: join, return outcome
      └─ expired:  token.cancel()     ...returns late
                   return Timeout     token.commit() fails -> result dropped

Python threads cannot be killed, so cancellation is cooperative: the
CancelToken is set, anything the worker would publish (a result, a file
rename) must pass through token.commit(), and commit() refuses once the
token is cancelled. A worker that committed just before the deadline wins
the race and its result is accepted, because nothing after the commit can
block.

Worker threads are daemons so an abandoned call never holds the process
open, and each runs inside a copy of the caller's contextvars so log lines
keep the caller's request id.
"""
from __future__ import annotations

import contextvars
import threading
import time
from typing import Any, Callable, Optional

from tts_gateway.core.logging import debug, get_logger, verbose, warn
from tts_gateway.tts.outcome import FailureReason, SynthesisOutcome

_LOG = get_logger("tts-gateway.executor")

BoundedCall = Callable[["CancelToken"], SynthesisOutcome]


class CancelToken:
    """
    Stop signal shared by one caller and one worker.

    The lock makes cancel() and commit() mutually exclusive, so exactly one
    of them wins: either the caller abandons the worker, or the worker
    publishes its result.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._committed = False

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def committed(self) -> bool:
        return self._committed

    def cancel(self) -> bool:
        """
        Signal the worker to stop.

        Returns:
            False if the worker already committed its result.
        """
        with self._lock:
            if self._committed:
                return False
            self._event.set()
            return True

    def commit(self, action: Optional[Callable[[], Any]] = None) -> bool:
        """
        Publish the worker's result, running ``action`` under the lock.

        Returns:
            False (and skips ``action``) if the token was cancelled.
        """
        with self._lock:
            if self._event.is_set():
                return False
            if action is not None:
                action()
            self._committed = True
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


class _Worker:
    """One daemon thread running one call."""

    def __init__(self, call: BoundedCall, token: CancelToken, name: str):
        self._call = call
        self._token = token
        self._done = threading.Event()
        self.outcome: Optional[SynthesisOutcome] = None
        self.error: Optional[BaseException] = None
        ctx = contextvars.copy_context()
        self._thread = threading.Thread(target=ctx.run, args=(self._run,), name=name, daemon=True)

    def _run(self) -> None:
        try:
            outcome = self._call(self._token)
            if self._token.commit():
                self.outcome = outcome
            else:
                verbose(_LOG, "late_result_discarded", worker=self._thread.name,
                        outcome=getattr(outcome, "label", type(outcome).__name__))
        except Exception as e:
            if self._token.commit():
                self.error = e
            else:
                verbose(_LOG, "late_error_discarded", worker=self._thread.name, error=str(e))
        finally:
            self._done.set()

    def start(self) -> None:
        self._thread.start()

    def wait(self, timeout: Optional[float]) -> bool:
        return self._done.wait(timeout)

    def join(self) -> None:
        self._thread.join()


def run_bounded(
    call: BoundedCall,
    timeout_s: float,
    name: str = "tts-worker",
    **log_fields: Any,
) -> SynthesisOutcome:
    """
    Run ``call`` on a fresh worker and wait at most ``timeout_s`` seconds.

    Never raises for worker failures; every exit path is an outcome:
        - worker returned an outcome in time  -> that outcome
        - deadline passed                     -> RetryableFailure(TIMEOUT)
        - worker raised                       -> RetryableFailure(TRANSPORT_ERROR)
        - worker returned something else      -> RetryableFailure(INVALID_RESULT)

    Args:
        call: Callable taking the CancelToken and returning a SynthesisOutcome.
        timeout_s: Deadline in seconds.
        name: Worker thread name.
        **log_fields: Extra fields (backend, attempt, ...) for log lines.
    """
    token = CancelToken()
    worker = _Worker(call, token, name)
    t0 = time.perf_counter()
    worker.start()

    if not worker.wait(timeout_s):
        if token.cancel():
            elapsed = time.perf_counter() - t0
            warn(_LOG, "worker_timeout", worker=name, timeout_s=round(timeout_s, 3),
                 seconds=round(elapsed, 3), **log_fields)
            return SynthesisOutcome.retryable(FailureReason.TIMEOUT, f"no result within {round(timeout_s, 3)}s")
        # The worker committed right at the deadline; only bookkeeping remains.
        debug(_LOG, "worker_commit_race_won", worker=name, **log_fields)
        worker.wait(None)

    worker.join()
    elapsed = time.perf_counter() - t0

    if worker.error is not None:
        warn(_LOG, "worker_error", worker=name, error=str(worker.error),
             error_type=type(worker.error).__name__, seconds=round(elapsed, 3), **log_fields)
        return SynthesisOutcome.retryable(FailureReason.TRANSPORT_ERROR, error=worker.error)

    outcome = worker.outcome
    if not isinstance(outcome, SynthesisOutcome):
        return SynthesisOutcome.retryable(
            FailureReason.INVALID_RESULT,
            f"worker returned {type(outcome).__name__}",
        )

    verbose(_LOG, "worker_done", worker=name, outcome=outcome.label, seconds=round(elapsed, 3), **log_fields)
    return outcome
