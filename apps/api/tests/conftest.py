"""Shared fixtures for the decision aid API tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from renal_aid.services.session_store import SessionStore

TTL = timedelta(minutes=15)


class ManualClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 21, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> SessionStore:
    return SessionStore(ttl=TTL, clock=clock)
