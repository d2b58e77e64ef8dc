"""
Conflict Guard

Checks a requested room stay against the other confirmed room assignments
of the same room and against blockages. Ranges are half-open, so a
check-out on the same day as another guest's check-in is not a conflict.

Holds are advisory and never checked here: confirmation always wins over a
hold, and a hold never blocks a booking.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from ..exceptions import RoomUnavailableError
from ..utils.date_ranges import ranges_overlap, validate_range

logger = logging.getLogger(__name__)

__all__ = ["Conflict", "ConflictGuard", "ranges_overlap"]


@dataclass
class Conflict:
    """Who holds the room: a booking or a blockage"""
    room_id: str
    start_date: date
    end_date: date
    booking_id: Optional[str] = None
    blockage_id: Optional[str] = None
    reason: Optional[str] = None

    def to_error(self, requested_start: date, requested_end: date) -> RoomUnavailableError:
        return RoomUnavailableError(
            room_id=self.room_id,
            start=requested_start,
            end=requested_end,
            booking_id=self.booking_id,
            blockage_id=self.blockage_id,
            reason=self.reason,
        )


class ConflictGuard:
    def __init__(self, store):
        self.store = store

    def find_conflict(
        self,
        room_id: str,
        start: date,
        end: date,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Conflict]:
        validate_range(start, end)

        assignments = self.store.bookings.list_assignments(
            [room_id], start, end, exclude_booking_id=exclude_booking_id
        )
        for assignment in assignments:
            # The query already filters, keep the rule explicit
            if ranges_overlap(start, end, assignment.start_date, assignment.end_date):
                return Conflict(
                    room_id=room_id,
                    start_date=assignment.start_date,
                    end_date=assignment.end_date,
                    booking_id=assignment.booking_id,
                )

        # A blockage conflicts when it covers any night start date of the stay
        last_night = end - timedelta(days=1)
        for blockage in self.store.blockages.list_covering(start, last_night):
            if blockage.applies_to_all_rooms or room_id in blockage.room_ids:
                return Conflict(
                    room_id=room_id,
                    start_date=blockage.start_date,
                    end_date=blockage.end_date,
                    blockage_id=blockage.id,
                    reason=blockage.reason,
                )

        return None

    def check_conflict(
        self,
        room_id: str,
        start: date,
        end: date,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        return self.find_conflict(room_id, start, end, exclude_booking_id) is not None

    def ensure_available(self, stays: Iterable, exclude_booking_id: Optional[str] = None) -> None:
        """
        Raise RoomUnavailableError for the first stay that conflicts.

        ``stays`` holds objects with room_id, start_date and end_date
        (StayRoom, RoomAssignment).
        """
        for stay in stays:
            conflict = self.find_conflict(
                stay.room_id, stay.start_date, stay.end_date, exclude_booking_id
            )
            if conflict is not None:
                logger.info(
                    f"Conflict for room {stay.room_id} {stay.start_date}..{stay.end_date}: "
                    f"booking={conflict.booking_id} blockage={conflict.blockage_id}"
                )
                raise conflict.to_error(stay.start_date, stay.end_date)
