"""
Christmas Access Rules

Stays touching a Christmas period follow seasonal rules, decided by the
booking date relative to 30 September of the period's start year:

- Up to and including 30 September: an access code is required for every
  booking, and parties at subsidized rates may take at most two rooms.
- From 1 October: no code is needed, but bulk bookings are closed.

Administrators are exempt.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ..exceptions import ChristmasAccessError
from ..models import GuestClass
from ..utils.clock import Clock, utcnow
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

CODE_CUTOFF_MONTH = 9
CODE_CUTOFF_DAY = 30
MAX_SUBSIDIZED_ROOMS = 2


@dataclass(frozen=True)
class ChristmasAccess:
    code_required: bool
    bulk_blocked: bool


def access_requirement(today: date, period_start: date, is_bulk: bool = False) -> ChristmasAccess:
    """Access rule in force on ``today`` for a period starting on ``period_start``"""
    cutoff = date(period_start.year, CODE_CUTOFF_MONTH, CODE_CUTOFF_DAY)
    if today <= cutoff:
        return ChristmasAccess(code_required=True, bulk_blocked=False)
    return ChristmasAccess(code_required=False, bulk_blocked=is_bulk)


class ChristmasRules:
    def __init__(self, store, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    def check(
        self,
        start: date,
        end: date,
        stays: Iterable,
        is_bulk: bool,
        access_code: Optional[str] = None,
        is_admin: bool = False,
    ) -> None:
        """Raise ChristmasAccessError if the stay breaks a period's rules."""
        if is_admin:
            return

        periods = self.store.christmas.periods_for_stay(start, end)
        if not periods:
            return

        stays = list(stays)
        today = self.clock().date()
        for period in periods:
            access = access_requirement(today, period.start_date, is_bulk)

            if access.bulk_blocked:
                raise ChristmasAccessError(
                    "bulk_blocked",
                    "Bulk bookings of the Christmas period are closed from 1 October",
                    period_id=period.id,
                )

            if not access.code_required:
                continue

            if not self.store.christmas.has_code(access_code):
                reason = "invalid_code" if access_code else "code_required"
                logger.warning(f"Christmas booking rejected ({reason}) for period {period.id}")
                raise ChristmasAccessError(
                    reason,
                    "A valid access code is required to book the Christmas period before 1 October",
                    period_id=period.id,
                )

            subsidized = [s for s in stays if s.guests.guest_class == GuestClass.SUBSIDIZED.value]
            if subsidized and len(stays) > MAX_SUBSIDIZED_ROOMS:
                raise ChristmasAccessError(
                    "room_limit",
                    f"Until 30 September subsidized guests may book at most "
                    f"{MAX_SUBSIDIZED_ROOMS} rooms for Christmas",
                    period_id=period.id,
                )
