"""Shared test fixtures for the shellgate test suite."""
import pytest

from shellgate.config import (
    ENV_BRIDGE_ENABLED,
    ENV_BRIDGE_HOST,
    ENV_BRIDGE_PORT,
    ENV_TARGET_PLATFORM,
)
from tests.helpers import RecordingExecutor


@pytest.fixture
def recording_executor():
    """Executor double; inspect ``.calls`` to see what would have run."""
    return RecordingExecutor()


@pytest.fixture(autouse=True)
def _clean_bridge_env(monkeypatch):
    for name in (ENV_BRIDGE_ENABLED, ENV_BRIDGE_HOST, ENV_BRIDGE_PORT, ENV_TARGET_PLATFORM):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def anyio_backend():
    """Run anyio-marked tests on asyncio only; the code uses asyncio APIs."""
    return "asyncio"
