import os
from datetime import datetime, time, timezone

import pytest

# Must be set before call_retry.config is imported; .env does not override it.
os.environ.setdefault("DATABASE_URL", "sqlite://")


class FixedClock:
    """Settable clock for deterministic scheduling."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingReporter:
    def __init__(self):
        self.records = []

    def record(self, event, decision):
        self.records.append((event, decision))


@pytest.fixture(autouse=True)
def _safe_test_config(monkeypatch):
    """Force deterministic, offline-safe config for tests.

    The repo loads .env on import; these overrides prevent real network calls
    (Twilio/Redis) unless a test explicitly opts in.
    """
    from call_retry.config import config, Config

    for name, value in [
        ("TWILIO_ACCOUNT_SID", ""),
        ("TWILIO_AUTH_TOKEN", ""),
        ("TWILIO_CALLER_ID", ""),
        ("TWILIO_PHONE_NUMBER", ""),
        ("REDIS_URL", ""),
        ("COMPANY_NAME", "Acme Law"),
        ("COMPANY_PHONE", "+442071234567"),
        ("BOOKING_LINK", "https://example.com/book"),
    ]:
        monkeypatch.setattr(Config, name, value, raising=False)
        # Keep the instance in sync for any code that reads instance attributes directly.
        monkeypatch.setattr(config, name, value, raising=False)

    return config


@pytest.fixture
def business_hours():
    from call_retry.models import BusinessHoursConfig

    return BusinessHoursConfig(time(9, 0), time(19, 0), {1, 2, 3, 4, 5})


@pytest.fixture
def calendar(business_hours):
    from call_retry.business_hours import BusinessHoursCalendar

    return BusinessHoursCalendar(business_hours)


@pytest.fixture
def resolver():
    from call_retry.timezone_resolver import TimezoneResolver

    return TimezoneResolver()


@pytest.fixture
def policy():
    from call_retry.retry_policy import RetryPolicyTable

    return RetryPolicyTable(max_attempts=3)


@pytest.fixture
def clock():
    # Wednesday 2025-01-08 10:00 UTC (10:00 in London)
    return FixedClock(datetime(2025, 1, 8, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def scheduler(resolver, calendar, policy, clock, reporter):
    from call_retry.scheduler import RetryScheduler

    return RetryScheduler(resolver, calendar, policy, clock=clock, reporter=reporter)
