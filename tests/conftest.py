# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from .fakes import FakeAccountManager, FakeBoard, FakeClock, FakeRepo


@pytest.fixture()
def clock() -> FakeClock:
    """Virtual clock at 2024-05-01 12:30:00 UTC (mid-day so +-1h slots stay on the same day)."""
    return FakeClock(datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc).timestamp())


@pytest.fixture()
def board() -> FakeBoard:
    return FakeBoard({"Foo": "1", "Bar": "2", "Done": "3"})


@pytest.fixture()
def repo() -> FakeRepo:
    return FakeRepo()


@pytest.fixture()
def account_manager() -> FakeAccountManager:
    return FakeAccountManager()
