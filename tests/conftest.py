from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest


class ManualClock:
    """Deterministic clock; tests advance it explicitly."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, milliseconds: float) -> datetime:
        self.now += timedelta(milliseconds=milliseconds)
        return self.now


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()
