"""Shared fixtures for Worktime tests."""

import tempfile
from datetime import datetime
from pathlib import Path
from typing import List

import pytest

from worktime.core.controller import SessionController
from worktime.core.store import SessionStore
from worktime.models.command import CommandResult


class MockClock:
    """Clock pinned to a settable moment in July 2025."""

    def __init__(self, moment: datetime = datetime(2025, 7, 1, 9, 0)):
        self.moment = moment

    def get_now(self) -> datetime:
        return self.moment

    def set(self, day: int, hour: int, minute: int = 0) -> None:
        self.moment = datetime(2025, 7, day, hour, minute)


class RecordingSink:
    """Collects command results instead of printing them."""

    def __init__(self):
        self.results: List[CommandResult] = []

    def print(self, result: CommandResult) -> None:
        self.results.append(result)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for a test database."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def corruptions():
    """Corruption errors reported by the background audit."""
    return []


@pytest.fixture
def store(temp_dir, clock, corruptions):
    """Open a session store on an empty database."""
    session_store = SessionStore(
        temp_dir / "worktime.db", clock, on_corruption=corruptions.append
    )
    yield session_store
    session_store.close()


@pytest.fixture
def controller(store, clock):
    return SessionController(store, clock)


@pytest.fixture
def sink():
    return RecordingSink()
