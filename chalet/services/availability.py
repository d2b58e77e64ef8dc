"""
Availability Resolver

Classifies (room, day) pairs with the night-based model. Day D touches two
nights: the night before ([D-1, D)) and the night after ([D, D+1)).
Each night is free, confirmed (a booking's room assignment covers it) or
proposed (another session's active hold covers it). A night covered by both
counts as confirmed.

Precedence for a day:
1. blocked   - a blockage covers the room on D (short-circuit)
2. available - no occupied night
3. edge      - one occupied night (D is still a valid check-in / check-out day)
4. occupied  - both nights confirmed
5. proposed  - both nights held
6. edge + mixed - one night confirmed, the other held
"""

import enum
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import RoomNotFoundError
from ..utils.clock import Clock, utcnow
from ..utils.date_ranges import iter_days, iter_nights, validate_range

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    EDGE = "edge"
    OCCUPIED = "occupied"
    BLOCKED = "blocked"
    PROPOSED = "proposed"


class NightKind(str, enum.Enum):
    FREE = "free"
    CONFIRMED = "confirmed"
    PROPOSED = "proposed"


@dataclass(frozen=True)
class NightOccupancy:
    kind: NightKind = NightKind.FREE
    booking_id: Optional[str] = None
    proposal_id: Optional[str] = None

    @property
    def occupied(self) -> bool:
        return self.kind != NightKind.FREE


FREE_NIGHT = NightOccupancy()


@dataclass
class DayAvailability:
    room_id: str
    day: date
    status: AvailabilityStatus
    night_before: NightOccupancy = FREE_NIGHT
    night_after: NightOccupancy = FREE_NIGHT
    mixed: bool = False
    blockage_id: Optional[str] = None
    blockage_reason: Optional[str] = None

    @property
    def selectable(self) -> bool:
        """Whether the day can still serve as a check-in or check-out day"""
        return self.status in (AvailabilityStatus.AVAILABLE, AvailabilityStatus.EDGE)

    @property
    def occupied_side(self) -> Optional[str]:
        if self.status != AvailabilityStatus.EDGE or self.mixed:
            return None
        return "before" if self.night_before.occupied else "after"

    @property
    def booking_id(self) -> Optional[str]:
        return self.night_before.booking_id or self.night_after.booking_id

    @property
    def proposal_id(self) -> Optional[str]:
        return self.night_before.proposal_id or self.night_after.proposal_id

    def to_dict(self) -> dict:
        return {
            "room_id": self.room_id,
            "date": self.day.isoformat(),
            "status": self.status.value,
            "night_before": self.night_before.kind.value,
            "night_after": self.night_after.kind.value,
            "mixed": self.mixed,
            "occupied_side": self.occupied_side,
            "booking_id": self.booking_id,
            "proposal_id": self.proposal_id,
            "blockage_id": self.blockage_id,
            "blockage_reason": self.blockage_reason,
        }


def classify_day(
    room_id: str,
    day: date,
    night_before: NightOccupancy,
    night_after: NightOccupancy,
) -> DayAvailability:
    """Apply the precedence rules to a day whose nights are known (no blockage)."""
    occupied = [n for n in (night_before, night_after) if n.occupied]

    if not occupied:
        status, mixed = AvailabilityStatus.AVAILABLE, False
    elif len(occupied) == 1:
        status, mixed = AvailabilityStatus.EDGE, False
    elif night_before.kind == night_after.kind == NightKind.CONFIRMED:
        status, mixed = AvailabilityStatus.OCCUPIED, False
    elif night_before.kind == night_after.kind == NightKind.PROPOSED:
        status, mixed = AvailabilityStatus.PROPOSED, False
    else:
        status, mixed = AvailabilityStatus.EDGE, True

    return DayAvailability(
        room_id=room_id,
        day=day,
        status=status,
        night_before=night_before,
        night_after=night_after,
        mixed=mixed,
    )


@dataclass
class AvailabilitySnapshot:
    """
    Occupancy loaded for a window of days, so a whole calendar resolves
    from one set of queries.
    """
    confirmed: Dict[str, List[Tuple[date, date, str]]] = field(default_factory=lambda: defaultdict(list))
    held: Dict[str, List[Tuple[date, date, str]]] = field(default_factory=lambda: defaultdict(list))
    blockages: list = field(default_factory=list)

    def night(self, room_id: str, night: date) -> NightOccupancy:
        for start, end, booking_id in self.confirmed.get(room_id, ()):
            if start <= night < end:
                return NightOccupancy(NightKind.CONFIRMED, booking_id=booking_id)
        for start, end, proposal_id in self.held.get(room_id, ()):
            if start <= night < end:
                return NightOccupancy(NightKind.PROPOSED, proposal_id=proposal_id)
        return FREE_NIGHT

    def blockage_for(self, room_id: str, day: date):
        for blockage in self.blockages:
            if blockage.covers(room_id, day):
                return blockage
        return None

    def resolve(self, room_id: str, day: date) -> DayAvailability:
        blockage = self.blockage_for(room_id, day)
        if blockage is not None:
            return DayAvailability(
                room_id=room_id,
                day=day,
                status=AvailabilityStatus.BLOCKED,
                blockage_id=blockage.id,
                blockage_reason=blockage.reason,
            )
        return classify_day(
            room_id,
            day,
            self.night(room_id, day - ONE_DAY),
            self.night(room_id, day),
        )


class AvailabilityResolver:
    """
    Resolves availability against an InventoryStore.

    ``excluding_session_id`` hides that session's own holds so a guest
    editing a reservation does not see their hold as taken.
    """

    def __init__(self, store, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    def load_snapshot(
        self,
        room_ids: Iterable[str],
        first_day: date,
        last_day: date,
        excluding_session_id: Optional[str] = None,
    ) -> AvailabilitySnapshot:
        """Load everything that can affect days first_day..last_day (inclusive)."""
        room_ids = list(room_ids)
        now = self.clock()
        snapshot = AvailabilitySnapshot()

        # Nights from first_day - 1 up to last_day
        window_start = first_day - ONE_DAY
        window_end = last_day + ONE_DAY

        for a in self.store.bookings.list_assignments(room_ids, window_start, window_end):
            snapshot.confirmed[a.room_id].append((a.start_date, a.end_date, a.booking_id))

        wanted = set(room_ids)
        holds = self.store.proposed_bookings.list_active_by_date_range(
            window_start, window_end, now,
            room_ids=room_ids,
            excluding_session_id=excluding_session_id,
        )
        for hold in holds:
            for room_id in hold.room_ids:
                if room_id in wanted:
                    snapshot.held[room_id].append((hold.start_date, hold.end_date, hold.proposal_id))

        snapshot.blockages = self.store.blockages.list_covering(first_day, last_day)
        return snapshot

    def resolve(
        self,
        room_id: str,
        day: date,
        excluding_session_id: Optional[str] = None,
    ) -> DayAvailability:
        snapshot = self.load_snapshot([room_id], day, day, excluding_session_id)
        return snapshot.resolve(room_id, day)

    def resolve_range(
        self,
        room_ids: Optional[Iterable[str]],
        start: date,
        end: date,
        excluding_session_id: Optional[str] = None,
    ) -> Dict[str, List[DayAvailability]]:
        """
        Calendar feed: every room, every day from start to end inclusive.
        ``room_ids=None`` means the whole inventory.
        """
        if end < start:
            validate_range(start, end)

        if room_ids is None:
            room_ids = [r.id for r in self.store.rooms.list_all()]
        else:
            room_ids = list(room_ids)
            known = self.store.rooms.get_many(room_ids)
            for room_id in room_ids:
                if room_id not in known:
                    raise RoomNotFoundError(room_id)

        snapshot = self.load_snapshot(room_ids, start, end, excluding_session_id)
        return {
            room_id: [snapshot.resolve(room_id, day) for day in iter_days(start, end)]
            for room_id in room_ids
        }

    def find_stay_obstacle(
        self,
        room_id: str,
        start: date,
        end: date,
        excluding_session_id: Optional[str] = None,
        include_holds: bool = True,
        snapshot: Optional[AvailabilitySnapshot] = None,
    ) -> Optional[DayAvailability]:
        """
        First night of [start, end) the room cannot be given for, or None.

        A night d is unusable when d is blocked, when the night [d, d+1) is
        confirmed, or (with include_holds) when it is held by another session.
        """
        validate_range(start, end)
        if snapshot is None:
            snapshot = self.load_snapshot([room_id], start, end - ONE_DAY, excluding_session_id)

        for night in iter_nights(start, end):
            day = snapshot.resolve(room_id, night)
            if day.status in (AvailabilityStatus.BLOCKED, AvailabilityStatus.OCCUPIED):
                return day
            if day.night_after.kind == NightKind.CONFIRMED:
                return day
            if include_holds and day.night_after.kind == NightKind.PROPOSED:
                return day
        return None

    def is_available_for_stay(
        self,
        room_id: str,
        start: date,
        end: date,
        excluding_session_id: Optional[str] = None,
        include_holds: bool = True,
    ) -> bool:
        return self.find_stay_obstacle(
            room_id, start, end,
            excluding_session_id=excluding_session_id,
            include_holds=include_holds,
        ) is None
