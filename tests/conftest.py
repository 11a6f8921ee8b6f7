"""Pytest configuration shared by scheduler, store, flow and API tests."""

import os
from datetime import UTC, datetime

import pytest

# Keep the default app store in memory so importing `mastery.main` never creates
# a SQLite file. Individual tests override the store/clock via dependency overrides.
os.environ.setdefault("REVIEW_STORE_BACKEND", "memory")

from mastery.clock import FixedClock  # noqa: E402
from mastery.store import InMemoryReviewStore  # noqa: E402


FIXED_NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


@pytest.fixture()
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture()
def memory_store() -> InMemoryReviewStore:
    return InMemoryReviewStore()
