"""Test configuration and fixtures."""

import asyncio
import struct
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, Generator, Optional, Union

import pytest

from voiceclone.core.config import settings
from voiceclone.core.models import (
    BackendOutcome,
    CloneJob,
    CloneRequest,
    LanguageCode,
)

BASE_URL = "http://backend.test/api"
CLONE_URL = f"{BASE_URL}/app/voice/clone"


def status_url(task_id: str) -> str:
    return f"{BASE_URL}/app/voice/clone/{task_id}"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class ScriptedStatusSource:
    """Status source replaying a script of outcomes or exceptions.

    Tracks how many polls are in flight at once and can advance a fake clock
    or run a hook while a poll is in flight.
    """

    def __init__(
        self,
        script: list[Union[BackendOutcome, Exception]],
        default: Optional[BackendOutcome] = None,
        clock: Optional[FakeClock] = None,
        step: float = 0.0,
        during_poll: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.script = list(script)
        self.default = default
        self.clock = clock
        self.step = step
        self.during_poll = during_poll
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_status(self, job_id: str) -> BackendOutcome:
        self.calls.append(job_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.clock is not None:
                self.clock.now += self.step
            if self.during_poll is not None:
                self.during_poll(len(self.calls))
            item = self.script.pop(0) if self.script else self.default
            if item is None:
                raise AssertionError("status script exhausted")
            if isinstance(item, Exception):
                raise item
            return item
        finally:
            self.in_flight -= 1


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_audio_data() -> bytes:
    """Generate a small 16-bit PCM WAV file in memory."""
    samples = bytes(range(256)) * 8
    header = (
        b"RIFF"
        + struct.pack("<I", 36 + len(samples))
        + b"WAVEfmt "
        + struct.pack("<IHHIIHH", 16, 1, 1, 16000, 32000, 2, 16)
        + b"data"
        + struct.pack("<I", len(samples))
    )
    return header + samples


@pytest.fixture
def reference_file(temp_dir: Path, sample_audio_data: bytes) -> Path:
    """Write the sample audio to a reference file on disk."""
    path = temp_dir / "reference.wav"
    path.write_bytes(sample_audio_data)
    return path


@pytest.fixture
def clone_request() -> CloneRequest:
    """Create a sample clone request."""
    return CloneRequest(
        audio_payload="data:audio/wav;base64,UklGRg==",
        target_text="Hello, world!",
        language_code=LanguageCode.ENGLISH,
    )


@pytest.fixture
def pending_job() -> CloneJob:
    """A job the backend deferred under task id t1."""
    job = CloneJob(request_id="req-1")
    job.mark_pending("t1")
    return job


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def setup_test_environment(temp_dir: Path) -> Generator[None, None, None]:
    """Point settings at a fake backend and temporary directories."""
    overrides: dict[str, Any] = {
        "api_base_url": BASE_URL,
        "download_dir": temp_dir / "downloads",
        "poll_interval": 0.01,
        "poll_timeout": 5.0,
        "max_poll_failures": 3,
        "submit_retries": 0,
        "default_language": "zh-CN",
        "default_model": None,
        "max_text_length": 5000,
        "max_audio_bytes": 10 * 1024 * 1024,
    }
    saved = {key: getattr(settings, key) for key in overrides}
    for key, value in overrides.items():
        setattr(settings, key, value)

    yield

    for key, value in saved.items():
        setattr(settings, key, value)


# Pytest configuration
def pytest_configure(config: Any) -> None:
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
