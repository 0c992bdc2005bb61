"""Fixtures for logfanout unit tests."""

from __future__ import annotations

import time
from typing import Any, List, Tuple

import pytest

from logfanout.logger import clear_context
from logfanout.message import Level, Message
from logfanout.targets.base import Target
from logfanout.targets.memory import MemoryTarget

from tests.utils.logging import reset_logging_metrics


class RecordingTarget(Target):
    """Target recording every collect call and every export."""

    def __init__(self, name: str | None = None, *, journal: List[str] | None = None, **options: Any) -> None:
        super().__init__(name, **options)
        self.collect_calls: List[Tuple[Tuple[Message, ...], bool]] = []
        self.exports: List[Tuple[Message, ...]] = []
        self._journal = journal

    def collect(self, messages, final):
        self.collect_calls.append((tuple(messages), final))
        if self._journal is not None:
            self._journal.append(self.name)
        super().collect(messages, final)

    def export(self, messages):
        self.exports.append(messages)


class FailingTarget(Target):
    """Target whose export always raises."""

    def __init__(self, name: str | None = None, **options: Any) -> None:
        super().__init__(name, **options)
        self.attempts: List[Tuple[Message, ...]] = []

    def export(self, messages):
        self.attempts.append(messages)
        raise OSError("disk unavailable")


def pytest_collection_modifyitems(config, items):  # pragma: no cover - Pytest hook
    """Tag every test in this directory with the `logfanout` marker."""

    for item in items:
        item.add_marker(pytest.mark.logfanout)


@pytest.fixture(autouse=True)
def _reset_logging_state():
    """Reset metrics and bound context around each test."""

    reset_logging_metrics()
    clear_context()
    yield
    clear_context()
    reset_logging_metrics()


@pytest.fixture
def make_message():
    """Factory for messages with sensible defaults."""

    def _make(
        text: Any = "hello",
        level: Level | str = Level.INFO,
        category: str = "app.db",
        **metadata: Any,
    ) -> Message:
        return Message(
            text=text,
            level=level,
            category=category,
            timestamp=time.time(),
            metadata=metadata,
        )

    return _make


@pytest.fixture
def memory_target():
    """Memory target exporting only on the final collect."""

    return MemoryTarget("memory", export_interval=0)


@pytest.fixture
def recording_target_cls():
    return RecordingTarget


@pytest.fixture
def failing_target_cls():
    return FailingTarget
