"""
Whole-night date range helpers.

A stay is the half-open range [start, end): the guest sleeps the nights
starting on start, start+1, ..., end-1 and leaves on end.
"""

from datetime import date, timedelta
from typing import Iterator, Optional

from ..exceptions import InvalidDateRangeError


def ranges_overlap(s1: date, e1: date, s2: date, e2: date) -> bool:
    """Half-open overlap: back-to-back stays (e1 == s2) do not overlap."""
    return s1 < e2 and s2 < e1


def nights_between(start: date, end: date) -> int:
    return (end - start).days


def iter_nights(start: date, end: date) -> Iterator[date]:
    """Yield the start date of every night in [start, end)."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def validate_range(
    start: Optional[date],
    end: Optional[date],
    today: Optional[date] = None,
    allow_past: bool = True,
    max_advance_days: Optional[int] = None,
) -> None:
    """
    Raise InvalidDateRangeError unless start < end.

    With ``today`` given, also reject stays starting in the past (unless
    allow_past) or more than max_advance_days ahead.
    """
    if start is None or end is None:
        raise InvalidDateRangeError(start, end, "Both check-in and check-out dates are required")

    if end <= start:
        raise InvalidDateRangeError(start, end)

    if today is None:
        return

    if not allow_past and start < today:
        raise InvalidDateRangeError(start, end, f"Check-in date {start} is in the past")

    if max_advance_days is not None and start > today + timedelta(days=max_advance_days):
        raise InvalidDateRangeError(
            start, end, f"Check-in date {start} is more than {max_advance_days} days ahead"
        )
