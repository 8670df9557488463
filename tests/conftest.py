"""Pytest configuration and fixtures."""

import asyncio
from pathlib import Path

import pytest

from hotroute.reload import DependencyTracker, ReloadOutcome
from hotroute.routes import RouteRegistry
from hotroute.state import StateStore, reset_state_store


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_state_store():
    """Isolate tests that touch the process-wide state store."""
    reset_state_store()
    yield
    reset_state_store()


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> StateStore:
    """A private store driven by the fake clock."""
    return StateStore(clock=clock)


class RecordingExecutor:
    """Reload executor that records calls and fails on request.

    ``failures`` maps a path to the number of attempts that should fail
    before one succeeds; ``-1`` fails forever.
    """

    def __init__(self, failures: dict[str, int] | None = None, delay: float = 0.0):
        self.failures = dict(failures or {})
        self.delay = delay
        self.calls: list[str] = []

    async def reload(self, path: str) -> ReloadOutcome:
        self.calls.append(path)
        if self.delay:
            await asyncio.sleep(self.delay)

        remaining = self.failures.get(path, 0)
        if remaining == -1:
            return ReloadOutcome.failed("SyntaxError: invalid syntax")
        if remaining > 0:
            self.failures[path] = remaining - 1
            return ReloadOutcome.failed("ImportError: not ready")
        return ReloadOutcome.ok()


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


API_DIR = "/app/pages/api"


@pytest.fixture
def registry() -> RouteRegistry:
    return RouteRegistry(API_DIR)


@pytest.fixture
def tracker() -> DependencyTracker:
    return DependencyTracker()


def write(path: Path, content: str = "") -> Path:
    """Write a file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path
