from __future__ import annotations

import pytest

from tests.circuit_gate.support.fakes import (
    FakeLogger,
    FakeScheduler,
    RecordingListener,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def scheduler() -> FakeScheduler:
    """Provide a manual clock/timer facility per test."""
    return FakeScheduler()


@pytest.fixture
def listener() -> RecordingListener:
    """Provide a fresh recording listener per test."""
    return RecordingListener()
