"""Shared fixtures for pulse tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

from pulse_cli.config import PulseConfig
from pulse_cli.sinks.base import TelemetrySink


class MockSink(TelemetrySink):
    """Mock sink for testing."""

    def __init__(self):
        self.spans: list[dict[str, Any]] = []
        self.closed = False

    def write(self, span):
        self.spans.append(span)

    def flush(self):
        pass

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.pulse and PULSE_* settings."""
    for key in list(os.environ):
        if key.startswith("PULSE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PULSE_HOME", str(tmp_path / ".pulse"))


@pytest.fixture
def home(tmp_path) -> Path:
    """A fake home directory with no agents installed."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def claude_settings(home) -> Path:
    """An existing, empty Claude Code settings file."""
    path = home / ".claude" / "settings.json"
    path.parent.mkdir(parents=True)
    path.write_text("{}\n")
    return path


@pytest.fixture
def config() -> PulseConfig:
    return PulseConfig(
        api_url="https://pulse.example.com",
        api_key="pk_test_123456",
        project_id="proj_test",
    )


@pytest.fixture
def mock_sink() -> MockSink:
    return MockSink()
