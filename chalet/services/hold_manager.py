"""
Hold Manager

Proposed bookings ("holds") let a session provisionally claim rooms while
the guest fills in the booking form. Holds expire after a fixed TTL and are
never renewed; expiry is decided by comparing expires_at with the clock at
read time, and purge_expired() removes dead rows periodically.

A hold may overlap another session's hold (the slower session loses at
confirmation time). It may never overlap a confirmed booking or a blockage.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from ..config import settings
from ..exceptions import (
    BookingError, CapacityExceededError, ProposalExpiredError,
    ProposalNotFoundError, RoomNotFoundError, RoomUnavailableError,
)
from ..models import CompositionKind, GuestClass, ProposedBooking
from ..utils.clock import Clock, utcnow
from ..utils.date_ranges import validate_range
from ..utils.logging_config import get_logger
from .availability import AvailabilityResolver
from .price_calculator import GuestComposition, UniformGuests

logger = get_logger(__name__)


class HoldManager:
    def __init__(
        self,
        store,
        resolver: Optional[AvailabilityResolver] = None,
        clock: Clock = utcnow,
        ttl_minutes: Optional[int] = None,
    ):
        self.store = store
        self.clock = clock
        self.resolver = resolver or AvailabilityResolver(store, clock=clock)
        self.ttl = timedelta(minutes=ttl_minutes or settings.hold_ttl_minutes)

    def create_hold(
        self,
        session_id: str,
        start: date,
        end: date,
        room_ids: Iterable[str],
        composition: Optional[GuestComposition] = None,
        total_price: Optional[Decimal] = None,
    ) -> str:
        """
        Hold rooms for [start, end) on behalf of a session. Returns the proposal id.

        ``composition`` defaults to an empty external party.
        """
        if not session_id:
            raise BookingError("session_id is required", status_code=400)

        validate_range(start, end)

        room_ids = list(dict.fromkeys(room_ids))
        if not room_ids:
            raise BookingError("At least one room is required", status_code=400)

        if composition is None:
            composition = UniformGuests(guest_class=GuestClass.EXTERNAL.value)
        elif composition.kind not in (CompositionKind.UNIFORM.value, CompositionKind.PER_GUEST.value):
            raise BookingError(f"Unknown guest composition {composition.kind!r}", status_code=400)
        sleepers = composition.sleepers()

        with self.store.transaction("creating a hold"):
            rooms = {room.id: room for room in self.store.rooms.lock(room_ids)}
            for room_id in room_ids:
                if room_id not in rooms:
                    raise RoomNotFoundError(room_id)

            beds = sum(rooms[rid].bed_count for rid in room_ids)
            if sleepers > beds:
                raise CapacityExceededError(",".join(room_ids), sleepers, beds)

            # The session's own holds never block it
            snapshot = self.resolver.load_snapshot(
                room_ids, start, end - timedelta(days=1), excluding_session_id=session_id
            )
            for room_id in sorted(room_ids):
                obstacle = self.resolver.find_stay_obstacle(
                    room_id, start, end, include_holds=False, snapshot=snapshot
                )
                if obstacle is not None:
                    raise RoomUnavailableError(
                        room_id=room_id,
                        start=start,
                        end=end,
                        booking_id=obstacle.night_after.booking_id or obstacle.booking_id,
                        blockage_id=obstacle.blockage_id,
                        reason=obstacle.blockage_reason,
                    )

            now = self.clock()
            proposal = self.store.proposed_bookings.create(
                session_id=session_id,
                start_date=start,
                end_date=end,
                room_ids=room_ids,
                guest_class=composition.guest_class,
                adults=composition.adults,
                children=composition.children,
                toddlers=composition.toddlers,
                total_price=total_price,
                created_at=now,
                expires_at=now + self.ttl,
            )
            proposal_id = proposal.proposal_id
            expires_at = proposal.expires_at

        logger.hold_created(proposal_id, session_id, room_ids, expires_at)
        return proposal_id

    def get_hold(self, proposal_id: str) -> ProposedBooking:
        proposal = self.store.proposed_bookings.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        if not proposal.is_active(self.clock()):
            raise ProposalExpiredError(proposal_id, expired_at=proposal.expires_at)
        return proposal

    def delete_hold(self, proposal_id: str) -> None:
        """Delete a hold, expired or not."""
        with self.store.transaction("deleting a hold"):
            deleted = self.store.proposed_bookings.delete(proposal_id)
            if not deleted:
                raise ProposalNotFoundError(proposal_id)
        logger.info(f"Hold deleted: {proposal_id}")

    def delete_holds_by_session(self, session_id: str) -> int:
        with self.store.transaction("deleting session holds"):
            count = self.store.proposed_bookings.delete_by_session(session_id)
        if count:
            logger.info(f"Deleted {count} holds of session {session_id}")
        return count

    def purge_expired(self) -> int:
        """Delete every hold whose expires_at has passed. Safe to run repeatedly."""
        with self.store.transaction("purging expired holds"):
            count = self.store.proposed_bookings.delete_expired(self.clock())
        logger.holds_purged(count)
        return count

    def list_active_by_session(self, session_id: str) -> List[ProposedBooking]:
        return self.store.proposed_bookings.list_active_by_session(session_id, self.clock())

    def list_active_by_date_range(
        self,
        start: date,
        end: date,
        room_ids: Optional[Iterable[str]] = None,
    ) -> List[ProposedBooking]:
        validate_range(start, end)
        return self.store.proposed_bookings.list_active_by_date_range(
            start, end, self.clock(), room_ids=room_ids
        )
