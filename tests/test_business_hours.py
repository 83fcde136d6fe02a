"""Tests for the business-hours calendar."""

from datetime import datetime, time, timedelta, timezone

import pytest

from call_retry.business_hours import BusinessHoursCalendar, as_utc
from call_retry.errors import ConfigurationError, UnknownTimezoneError
from call_retry.models import BusinessHoursConfig

UTC = timezone.utc


def utc(*args):
    return datetime(*args, tzinfo=UTC)


class TestIsCallable:

    def test_inside_window(self, calendar):
        # Wednesday 10:00 London (GMT)
        assert calendar.is_callable(utc(2025, 1, 8, 10, 0), "Europe/London") is True

    def test_start_is_inclusive_end_is_exclusive(self, calendar):
        assert calendar.is_callable(utc(2025, 1, 8, 9, 0), "Europe/London") is True
        assert calendar.is_callable(utc(2025, 1, 8, 18, 59), "Europe/London") is True
        assert calendar.is_callable(utc(2025, 1, 8, 19, 0), "Europe/London") is False

    def test_weekend_is_not_callable(self, calendar):
        # Saturday noon
        assert calendar.is_callable(utc(2025, 1, 11, 12, 0), "Europe/London") is False

    def test_evaluated_in_local_time(self, calendar):
        # 10:00 UTC is 05:00 in New York and 14:30 in Kabul
        instant = utc(2025, 1, 8, 10, 0)
        assert calendar.is_callable(instant, "America/New_York") is False
        assert calendar.is_callable(instant, "Asia/Kabul") is True

    def test_naive_datetime_is_treated_as_utc(self, calendar):
        assert calendar.is_callable(datetime(2025, 1, 8, 10, 0), "Europe/London") is True
        assert as_utc(datetime(2025, 1, 8, 10, 0)).tzinfo is UTC

    def test_unknown_timezone_raises(self, calendar):
        with pytest.raises(UnknownTimezoneError) as exc_info:
            calendar.is_callable(utc(2025, 1, 8, 10, 0), "Mars/Olympus_Mons")
        assert exc_info.value.timezone_name == "Mars/Olympus_Mons"


class TestNextCallableInstant:

    def test_callable_instant_is_returned_unchanged(self, calendar):
        instant = utc(2025, 1, 8, 11, 17, 42)
        assert calendar.next_callable_instant(instant, "Europe/London") == instant

    def test_before_start_moves_to_same_day_start(self, calendar):
        result = calendar.next_callable_instant(utc(2025, 1, 8, 6, 30), "Europe/London")
        assert result == utc(2025, 1, 8, 9, 0)

    def test_after_end_moves_to_next_day_start(self, calendar):
        result = calendar.next_callable_instant(utc(2025, 1, 8, 20, 0), "Europe/London")
        assert result == utc(2025, 1, 9, 9, 0)

    def test_friday_evening_moves_to_monday(self, calendar):
        result = calendar.next_callable_instant(utc(2025, 1, 10, 19, 30), "Europe/London")
        assert result == utc(2025, 1, 13, 9, 0)

    def test_weekend_moves_to_monday(self, calendar):
        result = calendar.next_callable_instant(utc(2025, 1, 11, 14, 0), "Europe/London")
        assert result == utc(2025, 1, 13, 9, 0)

    def test_local_window_in_other_zone(self, calendar):
        # 05:00 in New York -> 09:00 EST the same day
        result = calendar.next_callable_instant(utc(2025, 1, 8, 10, 0), "America/New_York")
        assert result == utc(2025, 1, 8, 14, 0)

    def test_half_hour_offset_zone(self, calendar):
        # 19:30 in Kabul -> Thursday 09:00 Kabul (UTC+4:30)
        result = calendar.next_callable_instant(utc(2025, 1, 8, 15, 0), "Asia/Kabul")
        assert result == utc(2025, 1, 9, 4, 30)

    def test_result_is_aware_utc(self, calendar):
        result = calendar.next_callable_instant(utc(2025, 1, 11, 14, 0), "Asia/Tokyo")
        assert result.tzinfo is not None
        assert result.utcoffset() == timedelta(0)

    def test_across_spring_forward(self, calendar):
        # Friday 2025-03-28 20:00 GMT; clocks go forward on Sunday 30 March
        result = calendar.next_callable_instant(utc(2025, 3, 28, 20, 0), "Europe/London")
        # Monday 09:00 BST
        assert result == utc(2025, 3, 31, 8, 0)

    def test_across_fall_back(self, calendar):
        # Saturday 2025-10-25 14:00 BST; clocks go back on Sunday 26 October
        result = calendar.next_callable_instant(utc(2025, 10, 25, 13, 0), "Europe/London")
        # Monday 09:00 GMT
        assert result == utc(2025, 10, 27, 9, 0)

    def test_new_york_across_spring_forward(self, calendar):
        # Friday 2025-03-07 20:00 EST; clocks go forward on Sunday 9 March
        result = calendar.next_callable_instant(utc(2025, 3, 8, 1, 0), "America/New_York")
        # Monday 09:00 EDT
        assert result == utc(2025, 3, 10, 13, 0)

    def test_new_york_across_fall_back(self, calendar):
        # Friday 2025-10-31 20:00 EDT; clocks go back on Sunday 2 November
        result = calendar.next_callable_instant(utc(2025, 11, 1, 0, 0), "America/New_York")
        # Monday 09:00 EST
        assert result == utc(2025, 11, 3, 14, 0)

    @pytest.mark.parametrize("hours", range(0, 24 * 8, 5))
    def test_result_is_callable_idempotent_and_not_earlier(self, calendar, hours):
        instant = utc(2025, 3, 24, 0, 0) + timedelta(hours=hours, minutes=7)
        for zone in ("Europe/London", "America/New_York", "Asia/Kabul", "Pacific/Auckland"):
            result = calendar.next_callable_instant(instant, zone)
            assert result >= instant
            assert calendar.is_callable(result, zone)
            assert calendar.next_callable_instant(result, zone) == result

    def test_single_allowed_weekday(self):
        calendar = BusinessHoursCalendar(BusinessHoursConfig(time(10, 0), time(12, 0), {7}))
        # Monday -> following Sunday 10:00
        result = calendar.next_callable_instant(utc(2025, 1, 6, 12, 0), "UTC")
        assert result == utc(2025, 1, 12, 10, 0)

    def test_sunday_after_hours_wraps_a_full_week(self):
        calendar = BusinessHoursCalendar(BusinessHoursConfig(time(10, 0), time(12, 0), {7}))
        result = calendar.next_callable_instant(utc(2025, 1, 12, 13, 0), "UTC")
        assert result == utc(2025, 1, 19, 10, 0)


def test_describe(calendar):
    assert calendar.describe() == {
        "start": "09:00",
        "end": "19:00",
        "days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
    }


class TestBusinessHoursConfig:

    def test_weekdays_are_frozen(self, business_hours):
        assert isinstance(business_hours.allowed_weekdays, frozenset)

    def test_start_must_precede_end(self):
        with pytest.raises(ConfigurationError):
            BusinessHoursConfig(time(19, 0), time(9, 0), {1})
        with pytest.raises(ConfigurationError):
            BusinessHoursConfig(time(9, 0), time(9, 0), {1})

    def test_empty_weekdays_rejected(self):
        with pytest.raises(ConfigurationError):
            BusinessHoursConfig(time(9, 0), time(19, 0), set())

    @pytest.mark.parametrize("days", [{0}, {8}, {1, 2, 9}])
    def test_out_of_range_weekdays_rejected(self, days):
        with pytest.raises(ConfigurationError):
            BusinessHoursConfig(time(9, 0), time(19, 0), days)
