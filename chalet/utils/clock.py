"""
Clock helpers.

All timestamps are stored as naive UTC datetimes. Services accept a ``clock``
callable so tests can pin "now" (hold expiry is decided by comparing against it).
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (matches the stored columns)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
