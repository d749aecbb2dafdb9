"""
Retry Controller.

Drives a synthesis attempt function through a fixed-delay retry loop:

    Attempting ──success──────────────> Succeeded
        │
        ├─terminal failure────────────> Exhausted
        ├─retryable, budget left──> wait(delay) ──> Attempting
        │                              └─interrupted─> Exhausted (cancelled)
        └─retryable, budget spent─────> Exhausted

Attempts are strictly sequential: attempt i+1 starts only after attempt i
has returned (the bounded executor guarantees that happens by its deadline)
and the delay has elapsed. No wait follows the last attempt.

The delay is taken through an injectable ``wait(seconds) -> interrupted``
callable. The default waits on the controller's cancel event, so cancel()
from another thread wakes the loop immediately and ends it as cancelled.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from tts_gateway.core.config import RetryConfig
from tts_gateway.core.logging import error, get_logger, verbose, warn
from tts_gateway.core.metrics import GatewayMetrics, metrics as default_metrics
from tts_gateway.tts.outcome import SynthesisAttempt, SynthesisOutcome

_LOG = get_logger("tts-gateway.retry")

AttemptFn = Callable[[SynthesisAttempt], SynthesisOutcome]
WaitFn = Callable[[float], bool]


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryResult:
    """
    Final state of one retry loop.

    Attributes:
        state: SUCCEEDED or EXHAUSTED.
        outcome: Outcome of the last attempt (None if none ran).
        attempts: Number of attempts made.
        cancelled: True if the loop ended because the wait was interrupted.
    """
    state: RetryState
    outcome: Optional[SynthesisOutcome]
    attempts: int
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state is RetryState.SUCCEEDED


class RetryController:
    """
    Fixed-delay retry loop for one request.

    One controller per request: cancel() only affects the loop it belongs to.

    Args:
        config: Attempt budget and delay.
        backend: Backend name for logs and metrics.
        cancel: Event that interrupts the inter-attempt wait; created if omitted.
        wait: ``wait(seconds) -> interrupted``; defaults to waiting on ``cancel``.
        metrics: Metrics sink; defaults to the process-wide instance.
    """

    def __init__(
        self,
        config: RetryConfig,
        backend: str = "-",
        cancel: Optional[threading.Event] = None,
        wait: Optional[WaitFn] = None,
        metrics: Optional[GatewayMetrics] = None,
    ):
        if config.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {config.max_attempts}")
        self._config = config
        self._backend = backend
        self._cancel = cancel or threading.Event()
        self._wait = wait or self._cancel.wait
        self._metrics = metrics or default_metrics
        self._state = RetryState.ATTEMPTING

    @property
    def state(self) -> RetryState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Interrupt the current (or next) inter-attempt wait."""
        self._cancel.set()

    def _finish(self, state: RetryState, outcome: Optional[SynthesisOutcome], attempts: int,
                cancelled: bool = False) -> RetryResult:
        self._state = state
        return RetryResult(state=state, outcome=outcome, attempts=attempts, cancelled=cancelled)

    def run(self, attempt_fn: AttemptFn) -> RetryResult:
        """
        Run attempts until one succeeds, a terminal failure occurs, the
        budget is spent, or the wait is interrupted.
        """
        max_attempts = self._config.max_attempts
        delay_s = self._config.retry_delay_s
        outcome: Optional[SynthesisOutcome] = None

        for index in range(max_attempts):
            attempt = SynthesisAttempt.start(index, self._config.synth_timeout_s)
            outcome = attempt_fn(attempt)
            self._metrics.record_attempt(self._backend, outcome.label)

            if outcome.is_success:
                verbose(_LOG, "attempt_ok", backend=self._backend, attempt=attempt.number,
                        max_attempts=max_attempts)
                return self._finish(RetryState.SUCCEEDED, outcome, attempt.number)

            if outcome.is_terminal:
                error(_LOG, "attempt_terminal", backend=self._backend, attempt=attempt.number,
                      max_attempts=max_attempts, reason=outcome.label, detail=outcome.detail)
                return self._finish(RetryState.EXHAUSTED, outcome, attempt.number)

            if attempt.number >= max_attempts:
                break

            warn(_LOG, "attempt_failed_retrying", backend=self._backend, attempt=attempt.number,
                 max_attempts=max_attempts, reason=outcome.label, detail=outcome.detail,
                 delay_ms=self._config.retry_delay_ms)
            self._metrics.record_retry_wait(self._backend)
            if self._wait(delay_s):
                warn(_LOG, "retry_cancelled", backend=self._backend, attempt=attempt.number)
                return self._finish(RetryState.EXHAUSTED, outcome, attempt.number, cancelled=True)

        error(_LOG, "attempts_exhausted", backend=self._backend, attempt=max_attempts,
              max_attempts=max_attempts, reason=outcome.label if outcome else "-",
              detail=outcome.detail if outcome else "")
        return self._finish(RetryState.EXHAUSTED, outcome, max_attempts)
