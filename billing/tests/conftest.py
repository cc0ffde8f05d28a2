"""
Billing fixtures: a controllable clock and a ledger over the dict-backed Redis.
"""

from datetime import datetime, timedelta

import pytest

from billing.entitlement_ledger import EntitlementLedger


class FakeClock:
    """Callable clock starting at local noon so +/- a few hours stays on the same day."""

    def __init__(self):
        self.now = datetime(2026, 3, 10, 12, 0).astimezone()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(record_store, clock):
    return EntitlementLedger(record_store, plan_days=30, clock=clock)
