"""
Business-hours calendar.

Answers "may we call this customer at this instant?" and "when is the next
instant we may call?" in the customer's local wall-clock time. All arithmetic
happens on local calendar days so the window stays put across DST changes.
"""

from datetime import date, datetime, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from call_retry.errors import ConfigurationError, UnknownTimezoneError
from call_retry.models import BusinessHoursConfig

DAY_NAMES = ["", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Any weekday set repeats within a week
_MAX_DAY_ADVANCE = 7


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise UnknownTimezoneError(name) from e


def as_utc(instant: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware datetimes are returned as-is."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=dt_timezone.utc)
    return instant


class BusinessHoursCalendar:
    """Calling window evaluated in the customer's local time."""

    def __init__(self, config: BusinessHoursConfig):
        self.config = config

    def is_callable(self, instant: datetime, timezone: str) -> bool:
        """True if ``instant`` falls on an allowed weekday within [start, end)."""
        local = as_utc(instant).astimezone(load_zone(timezone))
        if local.isoweekday() not in self.config.allowed_weekdays:
            return False
        return self.config.start_time <= local.time() < self.config.end_time

    def next_callable_instant(self, instant: datetime, timezone: str) -> datetime:
        """
        Return the earliest callable instant at or after ``instant``.

        Returns ``instant`` itself when it is already callable. Otherwise the
        result is the start of a business day, as an aware UTC datetime.
        """
        instant = as_utc(instant)
        if self.is_callable(instant, timezone):
            return instant

        zone = load_zone(timezone)
        local = instant.astimezone(zone)
        today = local.date()

        if local.time() < self.config.start_time and today.isoweekday() in self.config.allowed_weekdays:
            return self._start_of_day(today, zone)

        day = today
        for _ in range(_MAX_DAY_ADVANCE):
            day += timedelta(days=1)
            if day.isoweekday() in self.config.allowed_weekdays:
                return self._start_of_day(day, zone)

        # BusinessHoursConfig rejects empty weekday sets, so this is unreachable
        raise ConfigurationError("No allowed business weekday found within a week")

    def _start_of_day(self, day: date, zone: ZoneInfo) -> datetime:
        local_start = datetime.combine(day, self.config.start_time, tzinfo=zone)
        return local_start.astimezone(dt_timezone.utc)

    def describe(self) -> dict:
        """Business hours in a human-readable form."""
        return {
            "start": self.config.start_time.strftime("%H:%M"),
            "end": self.config.end_time.strftime("%H:%M"),
            "days": [DAY_NAMES[d] for d in sorted(self.config.allowed_weekdays)],
        }
