"""
Shared fixtures: fast retry timings, a temporary provider record and
scripted stand-ins for the vendor SDK and the HTTP session.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Iterable, List, Optional

import pytest
import requests

from tts_gateway.core.config import GatewayConfig, ProviderConfig, RetryConfig
from tts_gateway.core.metrics import GatewayMetrics


class ScriptedPrimitive:
    """
    Replaces a vendor SDK call.

    Each call consumes the next scripted item:
        - an exception instance is raised
        - a callable is called with the parameter bundle
        - anything else is returned as-is
    The last item repeats once the script is exhausted.
    """

    def __init__(self, *items: Any):
        self.items: List[Any] = list(items)
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def __call__(self, params: dict) -> Any:
        with self._lock:
            self.calls.append(dict(params))
            index = min(len(self.calls), len(self.items)) - 1
            item = self.items[index]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(params)
        return item


def sleeping(seconds: float, result: Any = b"late-audio"):
    """Scripted item that blocks like a stalled vendor call."""
    def _call(_params):
        time.sleep(seconds)
        return result
    return _call


class FakeResponse:
    def __init__(self, chunks: Iterable[bytes] = (b"RIFF", b"data"), status_code: int = 200,
                 delay: float = 0.0):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.delay = delay
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size: int = 8192):
        for chunk in self.chunks:
            if self.delay:
                time.sleep(self.delay)
            yield chunk

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """requests.Session stand-in returning scripted responses (or raising)."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.requests: List[dict] = []
        self.closed = False

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.closed = True

    def get(self, url: str, stream: bool = False, timeout: Optional[float] = None):
        self.requests.append({"url": url, "stream": stream, "timeout": timeout})
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, BaseException):
            raise response
        return response


class RecordingWait:
    """Inter-attempt wait that returns immediately and remembers its delays."""

    def __init__(self, interrupt: bool = False):
        self.delays: List[float] = []
        self.interrupt = interrupt

    def __call__(self, seconds: float) -> bool:
        self.delays.append(seconds)
        return self.interrupt


@pytest.fixture
def fast_config() -> GatewayConfig:
    return GatewayConfig(
        retry=RetryConfig(max_attempts=3, retry_delay_ms=10, synth_timeout_s=0.3, download_timeout_s=0.3)
    )


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "audio"


@pytest.fixture
def provider(output_dir) -> ProviderConfig:
    return ProviderConfig(api_key="sk-test", voice_name="longxiaochun", output_path=str(output_dir))


@pytest.fixture
def fresh_metrics() -> GatewayMetrics:
    return GatewayMetrics()


@pytest.fixture
def recording_wait() -> RecordingWait:
    return RecordingWait()


@pytest.fixture(autouse=True)
def _reset_service_cache():
    from tts_gateway.services.tts_service import reset_services
    reset_services()
    yield
    reset_services()
