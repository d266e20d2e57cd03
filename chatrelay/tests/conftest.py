"""
Test configuration and fixtures for the ChatRelay test suite.

Environment variables are pinned before any chatrelay import so module-level
configuration loading sees test values.
"""

import os
from collections.abc import Generator
from typing import Any

import pytest

os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")

# Imports must come after environment variables to prevent config loading surprises
from chatrelay.config import reset_config  # noqa: E402
from chatrelay.realtime.message_router import MessageRouter  # noqa: E402


class RecordingHandle:
    """SendHandle double that records frames instead of writing to a socket."""

    def __init__(self) -> None:
        self.frames: list[str] = []
        self.closed = False

    def send(self, frame: str) -> None:
        if not self.closed:
            self.frames.append(frame)

    def close(self) -> None:
        self.closed = True

    def clear(self) -> None:
        self.frames.clear()


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset config singleton before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def router() -> MessageRouter:
    """Provide a router with a fresh registry, allocator and validator."""
    return MessageRouter()


@pytest.fixture
def make_handle():
    """Factory for recording send handles."""
    return RecordingHandle


def pytest_collection_modifyitems(config: Any, items: list[Any]) -> None:
    """Auto-mark tests under unit/ with @pytest.mark.unit."""
    for item in items:
        file_path = str(item.fspath)
        if "/unit/" in file_path or "\\unit\\" in file_path:
            item.add_marker(pytest.mark.unit)
