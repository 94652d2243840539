"""Pytest fixtures shared across the unit tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from tests.fakes import FakeTargetStore

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def store() -> FakeTargetStore:
    """An empty, reachable in-memory target store."""
    return FakeTargetStore()


@pytest.fixture
def clock():
    """A clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW
