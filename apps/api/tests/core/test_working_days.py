"""
Unit tests for working-day arithmetic.
"""

from datetime import UTC, datetime

import pytest

from app.core.working_days import add_working_days, is_working_day, working_days_between

# 2026-10-16 is a Friday
FRIDAY = datetime(2026, 10, 16, 10, 30, tzinfo=UTC)
SATURDAY = datetime(2026, 10, 17, 10, 30, tzinfo=UTC)


class TestIsWorkingDay:
    def test_weekdays_are_working_days(self):
        assert is_working_day(FRIDAY)
        assert is_working_day(datetime(2026, 10, 19, tzinfo=UTC))  # Monday

    def test_weekend_is_not(self):
        assert not is_working_day(SATURDAY)
        assert not is_working_day(datetime(2026, 10, 18, tzinfo=UTC))


class TestAddWorkingDays:
    def test_skips_weekend(self):
        assert add_working_days(FRIDAY, 1) == datetime(2026, 10, 19, 10, 30, tzinfo=UTC)

    def test_zero_days_returns_start(self):
        assert add_working_days(FRIDAY, 0) == FRIDAY

    def test_start_on_weekend(self):
        assert add_working_days(SATURDAY, 1) == datetime(2026, 10, 19, 10, 30, tzinfo=UTC)

    def test_fourteen_working_days(self):
        """Default review window: 14 working days spans two weekends."""
        assert add_working_days(FRIDAY, 14) == datetime(2026, 11, 5, 10, 30, tzinfo=UTC)

    def test_preserves_time_and_timezone(self):
        result = add_working_days(FRIDAY, 3)
        assert result.tzinfo is UTC
        assert (result.hour, result.minute) == (10, 30)

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            add_working_days(FRIDAY, -1)


class TestWorkingDaysBetween:
    def test_over_weekend(self):
        assert working_days_between(FRIDAY, datetime(2026, 10, 19, tzinfo=UTC)) == 1

    def test_inverse_of_add(self):
        deadline = add_working_days(FRIDAY, 10)
        assert working_days_between(FRIDAY, deadline) == 10

    def test_same_day(self):
        assert working_days_between(FRIDAY, FRIDAY) == 0
