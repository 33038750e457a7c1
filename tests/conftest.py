"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logfire
import pytest

from tests.factories import FakeLoop, FakeMedia, RecordingSink
from vodchat.core.config import Settings


logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
def settings() -> Settings:
    """Engine settings with the documented defaults."""
    return Settings(_env_file=None)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with a short sampling interval and stagger window."""
    return Settings(
        _env_file=None,
        sample_interval_seconds=0.01,
        stagger_window_seconds=0.05,
        offset_hints_url=None,
    )


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def media() -> FakeMedia:
    return FakeMedia(current_time=0.0, duration=3600.0)
