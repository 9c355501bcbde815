"""
Working-day arithmetic.

A working day is any calendar day that is not a Saturday or Sunday. This is
the only deadline unit used by the review pipeline; public holidays are not
taken into account.
"""

from datetime import datetime, timedelta

_SATURDAY = 5


def is_working_day(value: datetime) -> bool:
    """Return True if the date falls on Monday-Friday."""
    return value.weekday() < _SATURDAY


def add_working_days(start: datetime, days: int) -> datetime:
    """
    Add `days` working days to `start`.

    Steps forward one calendar day at a time, skipping weekends, until the
    requested number of working days has been counted. The time of day and
    timezone of `start` are preserved.

    Args:
        start: Starting timestamp
        days: Number of working days to add (must be >= 0)

    Returns:
        The deadline timestamp

    Raises:
        ValueError: If days is negative
    """
    if days < 0:
        raise ValueError("days must be non-negative")

    result = start
    added = 0
    while added < days:
        result = result + timedelta(days=1)
        if is_working_day(result):
            added += 1
    return result


def working_days_between(start: datetime, end: datetime) -> int:
    """Count working days in the interval (start, end]."""
    count = 0
    current = start
    while current.date() < end.date():
        current = current + timedelta(days=1)
        if is_working_day(current):
            count += 1
    return count
