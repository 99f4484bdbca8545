"""
Shared pytest fixtures for localnet tests.

This module provides:
- Settings rooted in a per-test temporary working directory
- A scripted ``FakeCommandBackend`` in place of the real CLIs
- A ``RecordingSleeper`` so backoff and settle waits never block
- Log context cleanup between tests

Usage:
    def test_something(settings, backend, sleeper):
        orchestrator = SetupOrchestrator(settings, executor=backend, sleeper=sleeper)
"""

import sys
from pathlib import Path

import pytest

# Ensure localnet package and tests._support are importable
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from localnet.core.logging import clear_context
from localnet.core.settings import LocalnetSettings
from tests._support.fake_backend import FakeCommandBackend, RecordingSleeper


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def settings(workdir: Path) -> LocalnetSettings:
    """Default settings with every relative path under ``workdir``."""
    return LocalnetSettings(workdir=workdir, log_json=True)


@pytest.fixture
def backend(workdir: Path) -> FakeCommandBackend:
    return FakeCommandBackend(workdir)


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture(autouse=True)
def _clean_log_context():
    """Clear structlog contextvars so run_id/stage never leak between tests."""
    clear_context()
    yield
    clear_context()
