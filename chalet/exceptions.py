"""
Booking domain errors.

Every error carries an HTTP status code so the API layer can translate it
without a lookup table; services raise them and never retry.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from .utils.clock import utcnow


class BookingError(Exception):
    """Base class for all booking-core errors"""

    status_code = 500
    code = "booking_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.timestamp = utcnow().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": self.message}


class RoomUnavailableError(BookingError):
    """A requested night is taken by a confirmed booking, a blockage or (for holds) a booking"""

    status_code = 409
    code = "room_unavailable"

    def __init__(
        self,
        room_id: str,
        start: date,
        end: date,
        booking_id: Optional[str] = None,
        blockage_id: Optional[str] = None,
        proposal_id: Optional[str] = None,
        reason: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.room_id = room_id
        self.start = start
        self.end = end
        self.booking_id = booking_id
        self.blockage_id = blockage_id
        self.proposal_id = proposal_id
        self.reason = reason
        if message is None:
            if blockage_id:
                message = f"Room {room_id} is blocked between {start} and {end}"
                if reason:
                    message += f" ({reason})"
            else:
                message = f"Room {room_id} is already booked between {start} and {end}"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["conflict"] = {
            "room_id": self.room_id,
            "start_date": self.start.isoformat() if self.start else None,
            "end_date": self.end.isoformat() if self.end else None,
            "booking_id": self.booking_id,
            "blockage_id": self.blockage_id,
            "proposal_id": self.proposal_id,
        }
        return data


class InvalidDateRangeError(BookingError):
    status_code = 400
    code = "invalid_date_range"

    def __init__(self, start: Optional[date], end: Optional[date], message: Optional[str] = None):
        self.start = start
        self.end = end
        super().__init__(message or f"Check-out date {end} must be after check-in date {start}")


class CapacityExceededError(BookingError):
    status_code = 400
    code = "capacity_exceeded"

    def __init__(self, room_id: str, guests: int, bed_count: int):
        self.room_id = room_id
        self.guests = guests
        self.bed_count = bed_count
        super().__init__(
            f"Room {room_id} has {bed_count} beds but {guests} adults and children were requested"
        )


class RoomNotFoundError(BookingError):
    status_code = 404
    code = "room_not_found"

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} does not exist")


class ProposalNotFoundError(BookingError):
    status_code = 404
    code = "proposal_not_found"

    def __init__(self, proposal_id: str):
        self.proposal_id = proposal_id
        super().__init__(f"Proposed booking {proposal_id} was not found")


class ProposalExpiredError(BookingError):
    status_code = 410
    code = "proposal_expired"

    def __init__(self, proposal_id: str, expired_at: Optional[datetime] = None):
        self.proposal_id = proposal_id
        self.expired_at = expired_at
        super().__init__(f"Proposed booking {proposal_id} has expired")


class BookingNotFoundError(BookingError):
    status_code = 404
    code = "booking_not_found"

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} was not found")


class InvalidEditTokenError(BookingError):
    status_code = 403
    code = "invalid_edit_token"

    def __init__(self, booking_id: Optional[str] = None):
        self.booking_id = booking_id
        super().__init__("Invalid edit token")


class BookingLockedError(BookingError):
    """Self-service change of a paid booking or one past the edit deadline"""

    status_code = 403
    code = "booking_locked"

    def __init__(self, booking_id: str, reason: str, message: str):
        self.booking_id = booking_id
        self.reason = reason
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class ChristmasAccessError(BookingError):
    """A booking touching a Christmas period broke the access rules"""

    status_code = 403
    code = "christmas_restricted"

    def __init__(self, reason: str, message: str, period_id: Optional[str] = None):
        self.reason = reason
        self.period_id = period_id
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        data["period_id"] = self.period_id
        return data


class BlockageNotFoundError(BookingError):
    status_code = 404
    code = "blockage_not_found"

    def __init__(self, blockage_id: str):
        self.blockage_id = blockage_id
        super().__init__(f"Blockage {blockage_id} was not found")


class StorageError(BookingError):
    """Store-level failure (I/O, constraint violation); the transaction was rolled back"""

    status_code = 500
    code = "storage_error"

    def __init__(self, message: str, original: Optional[Exception] = None):
        self.original = original
        super().__init__(message)
