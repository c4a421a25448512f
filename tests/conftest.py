"""
Shared fixtures for payout job tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from roi_payouts.core.config import Settings
from roi_payouts.services.payouts.store import InMemoryRecordStore


RUN_AT = datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = RUN_AT):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite:///:memory:",
        "store_credentials": None,
        "rate_unit": "percent",
        "time_gate_enabled": False,
        "plan_catalog_enabled": True,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def active_investment(**overrides) -> dict:
    """A flat, active investment document on an inline 4%/day rate."""
    document = {
        "initialAmount": 1000,
        "dailyRate": 4,
        "daysCompleted": 0,
        "isActive": True,
        "status": "active",
        "payoutLog": [],
    }
    document.update(overrides)
    return document


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return make_settings()


@pytest.fixture
def store():
    return InMemoryRecordStore()
