"""
Pytest fixtures for LeaseGate tests.
"""

import os
from datetime import datetime, timezone

import pytest

# Keep test config independent of the machine running the suite.
os.environ.setdefault("LEASEGATE_ENV", "development")
os.environ.setdefault("LEASEGATE_KUBERNETES_API_URL", "https://kube.test")

from leasegate.observability.metrics import MetricsRegistry
from leasegate.repository import InMemoryLeaseRepository

from helpers import FakeClock, RecordingRepository


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def clock(now) -> FakeClock:
    return FakeClock(now)


@pytest.fixture
def store() -> InMemoryLeaseRepository:
    return InMemoryLeaseRepository()


@pytest.fixture
def repo(store) -> RecordingRepository:
    return RecordingRepository(store)


@pytest.fixture
def sink() -> MetricsRegistry:
    return MetricsRegistry()
