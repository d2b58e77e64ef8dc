"""
Booking Service

Create / update / delete orchestration for confirmed bookings:
validation, room locking, conflict guard, pricing and the store write all
run in one transaction, so a failure at any step leaves nothing behind.

Price lock: every booking is created with price_locked = True. Its total is
recomputed only when the stay itself (dates, rooms, guests) changes;
recalculate_price() never overwrites a locked total and only reports a
mismatch with today's price tables.
"""

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from ..config import settings
from ..exceptions import (
    BookingError, BookingLockedError, BookingNotFoundError, CapacityExceededError,
    InvalidDateRangeError, InvalidEditTokenError, RoomNotFoundError,
)
from ..models import Booking, RoomAssignment, GuestRecord, CompositionKind, PersonType
from ..utils.clock import Clock, utcnow
from ..utils.date_ranges import validate_range
from ..utils.logging_config import get_logger
from .christmas_rules import ChristmasRules
from .conflict_guard import ConflictGuard
from .price_calculator import (
    GuestComposition, GuestSpec, PerGuestGuests, PriceQuote, PricingMode,
    StayRoom, UniformGuests, calculate_price,
)

logger = get_logger(__name__)

CONTACT_FIELDS = ("name", "email", "phone", "company", "address", "city", "zip_code", "notes")
REQUIRED_CONTACT_FIELDS = ("name", "email", "phone")


@dataclass
class RoomRequest:
    """A room of a booking draft; dates default to the booking's range"""
    room_id: str
    guests: GuestComposition
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class ContactInfo:
    name: str
    email: str
    phone: str
    company: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class BookingDraft:
    start_date: date
    end_date: date
    rooms: List[RoomRequest]
    contact: Optional[ContactInfo] = None
    christmas_code: Optional[str] = None


@dataclass
class BookingChanges:
    """Partial update; None means unchanged"""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    rooms: Optional[List[RoomRequest]] = None
    contact: Dict[str, Optional[str]] = field(default_factory=dict)
    paid: Optional[bool] = None
    christmas_code: Optional[str] = None


@dataclass
class PriceCheck:
    booking_id: str
    stored_total: Decimal
    computed_total: Decimal
    price_locked: bool
    updated: bool

    @property
    def matches(self) -> bool:
        return self.stored_total == self.computed_total


def stays_from_booking(booking: Booking, tiers: Dict[str, str]) -> List[StayRoom]:
    """Rebuild the priced stay of a stored booking."""
    stays = []
    for assignment in booking.assignments:
        if assignment.composition_kind == CompositionKind.PER_GUEST.value:
            guests = PerGuestGuests(guests=tuple(
                GuestSpec(
                    person_type=g.person_type,
                    guest_class=g.guest_class or assignment.guest_class,
                    first_name=g.first_name,
                    last_name=g.last_name,
                )
                for g in booking.guests if g.room_id == assignment.room_id
            ))
        else:
            guests = UniformGuests(
                guest_class=assignment.guest_class,
                adults=assignment.adults,
                children=assignment.children,
                toddlers=assignment.toddlers,
            )
        stays.append(StayRoom(
            room_id=assignment.room_id,
            tier=tiers[assignment.room_id],
            start_date=assignment.start_date,
            end_date=assignment.end_date,
            guests=guests,
        ))
    return stays


class BookingService:
    def __init__(
        self,
        store,
        guard: Optional[ConflictGuard] = None,
        clock: Clock = utcnow,
        christmas: Optional[ChristmasRules] = None,
    ):
        self.store = store
        self.guard = guard or ConflictGuard(store)
        self.clock = clock
        self.christmas = christmas or ChristmasRules(store, clock=clock)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _validate_dates(self, start: date, end: date, is_admin: bool) -> None:
        validate_range(
            start,
            end,
            today=self.clock().date(),
            allow_past=settings.allow_past_dates or is_admin,
            max_advance_days=settings.max_advance_days,
        )

    def _build_stays(self, start: date, end: date, requests: List[RoomRequest], rooms: Dict) -> List[StayRoom]:
        if not requests:
            raise BookingError("A booking needs at least one room", status_code=400)

        seen = set()
        stays = []
        for request in requests:
            if request.room_id in seen:
                raise BookingError(f"Room {request.room_id} is listed twice", status_code=400)
            seen.add(request.room_id)

            room = rooms.get(request.room_id)
            if room is None:
                raise RoomNotFoundError(request.room_id)

            room_start = request.start_date or start
            room_end = request.end_date or end
            validate_range(room_start, room_end)
            if room_start < start or room_end > end:
                raise InvalidDateRangeError(
                    room_start, room_end,
                    f"Dates of room {room.id} ({room_start}..{room_end}) fall outside the booking ({start}..{end})"
                )

            sleepers = request.guests.sleepers()
            if sleepers > room.bed_count:
                raise CapacityExceededError(room.id, sleepers, room.bed_count)

            stays.append(StayRoom(
                room_id=room.id,
                tier=room.tier,
                start_date=room_start,
                end_date=room_end,
                guests=request.guests,
            ))
        return stays

    def _price(self, stays: List[StayRoom]) -> PriceQuote:
        config = self.store.price_config.get()
        inventory = [room.id for room in self.store.rooms.list_all()]
        return calculate_price(config, stays, inventory_room_ids=inventory)

    @staticmethod
    def _assignment_values(stay: StayRoom) -> dict:
        guests = stay.guests
        return {
            "start_date": stay.start_date,
            "end_date": stay.end_date,
            "composition_kind": guests.kind,
            "guest_class": guests.guest_class,
            "adults": guests.adults,
            "children": guests.children,
            "toddlers": guests.toddlers,
        }

    @staticmethod
    def _guest_records(stays: List[StayRoom]) -> List[GuestRecord]:
        records = []
        for stay in stays:
            if not isinstance(stay.guests, PerGuestGuests):
                continue
            for guest in stay.guests.guests:
                records.append(GuestRecord(
                    person_type=guest.person_type,
                    first_name=guest.first_name,
                    last_name=guest.last_name,
                    room_id=stay.room_id,
                    guest_class=guest.guest_class,
                ))
        # adults, then children, then toddlers; stable within a type
        order = {PersonType.ADULT.value: 0, PersonType.CHILD.value: 1, PersonType.TODDLER.value: 2}
        records.sort(key=lambda r: order.get(r.person_type, 3))
        for index, record in enumerate(records):
            record.order_index = index
        return records

    def _authorize(self, booking: Booking, edit_token: Optional[str], is_admin: bool) -> None:
        """
        Check that the caller may change or cancel the booking.

        Guests need the edit token, and lose self-service access once the
        booking is paid or check-in is closer than the edit deadline.
        Administrators are never locked out.
        """
        if is_admin:
            return
        if not edit_token or not secrets.compare_digest(edit_token, booking.edit_token):
            raise InvalidEditTokenError(booking.id)

        if booking.paid:
            raise BookingLockedError(
                booking.id, "paid", "Paid bookings can only be changed by the administrator"
            )

        days_left = (booking.start_date - self.clock().date()).days
        if days_left < settings.edit_deadline_days:
            raise BookingLockedError(
                booking.id,
                "edit_deadline",
                f"Bookings can be changed or cancelled only until {settings.edit_deadline_days} "
                f"days before check-in ({days_left} days left)",
            )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def quote(self, draft: BookingDraft) -> PriceQuote:
        """Price a draft for live display. Writes nothing."""
        validate_range(draft.start_date, draft.end_date)
        rooms = self.store.rooms.get_many(r.room_id for r in draft.rooms)
        stays = self._build_stays(draft.start_date, draft.end_date, draft.rooms, rooms)
        return self._price(stays)

    def create_booking(
        self,
        draft: BookingDraft,
        session_id: Optional[str] = None,
        is_admin: bool = False,
    ) -> Booking:
        if draft.contact is None or not (draft.contact.name or "").strip():
            raise BookingError("Contact name is required", status_code=400)

        self._validate_dates(draft.start_date, draft.end_date, is_admin)

        with self.store.transaction("creating a booking"):
            rooms = {room.id: room for room in self.store.rooms.lock(r.room_id for r in draft.rooms)}
            stays = self._build_stays(draft.start_date, draft.end_date, draft.rooms, rooms)

            self.guard.ensure_available(stays)

            quote = self._price(stays)
            self.christmas.check(
                draft.start_date, draft.end_date, stays,
                is_bulk=quote.mode == PricingMode.BULK,
                access_code=draft.christmas_code,
                is_admin=is_admin,
            )

            booking = Booking(
                id=str(uuid.uuid4()),
                edit_token=secrets.token_urlsafe(32),
                start_date=draft.start_date,
                end_date=draft.end_date,
                is_bulk=quote.mode == PricingMode.BULK,
                total_price=quote.total,
                price_locked=True,
                **{name: getattr(draft.contact, name) for name in CONTACT_FIELDS},
            )
            booking.assignments = [
                RoomAssignment(room_id=stay.room_id, **self._assignment_values(stay))
                for stay in stays
            ]
            booking.guests = self._guest_records(stays)
            self.store.bookings.create(booking)

            # The confirmed booking supersedes the session's holds
            if session_id:
                self.store.proposed_bookings.delete_by_session(session_id)

            booking_id = booking.id

        booking = self.store.bookings.get(booking_id)
        logger.booking_created(booking.id, booking.name, booking.total_price, booking.room_ids)
        return booking

    def update_booking(
        self,
        booking_id: str,
        changes: BookingChanges,
        edit_token: Optional[str] = None,
        is_admin: bool = False,
    ) -> Booking:
        with self.store.transaction("updating a booking"):
            booking = self.store.bookings.lock(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            self._authorize(booking, edit_token, is_admin)

            if changes.paid is not None and changes.paid != booking.paid:
                if not is_admin:
                    raise BookingError("Only the administrator can change the payment status", status_code=403)
                booking.paid = changes.paid

            for name, value in changes.contact.items():
                if name not in CONTACT_FIELDS:
                    continue
                if name in REQUIRED_CONTACT_FIELDS and not (value or "").strip():
                    raise BookingError(f"Contact {name} cannot be empty", status_code=400)
                setattr(booking, name, value)

            new_start = changes.start_date or booking.start_date
            new_end = changes.end_date or booking.end_date
            dates_changed = (new_start, new_end) != (booking.start_date, booking.end_date)
            stay_changed = dates_changed or changes.rooms is not None

            if stay_changed:
                self._validate_dates(new_start, new_end, is_admin)

                if changes.rooms is not None:
                    requests = changes.rooms
                else:
                    # Same rooms and guests, moved to the new range
                    tiers = {a.room_id: a.room.tier for a in booking.assignments}
                    requests = [
                        RoomRequest(room_id=stay.room_id, guests=stay.guests)
                        for stay in stays_from_booking(booking, tiers)
                    ]

                rooms = {room.id: room for room in self.store.rooms.lock(r.room_id for r in requests)}
                stays = self._build_stays(new_start, new_end, requests, rooms)
                self.guard.ensure_available(stays, exclude_booking_id=booking.id)
                quote = self._price(stays)
                self.christmas.check(
                    new_start, new_end, stays,
                    is_bulk=quote.mode == PricingMode.BULK,
                    access_code=changes.christmas_code,
                    is_admin=is_admin,
                )

                existing = {a.room_id: a for a in booking.assignments}
                assignments = []
                for stay in stays:
                    assignment = existing.get(stay.room_id) or RoomAssignment(room_id=stay.room_id)
                    for key, value in self._assignment_values(stay).items():
                        setattr(assignment, key, value)
                    assignments.append(assignment)
                booking.assignments = assignments
                booking.guests = self._guest_records(stays)

                booking.start_date = new_start
                booking.end_date = new_end
                booking.is_bulk = quote.mode == PricingMode.BULK
                booking.total_price = quote.total
                booking.price_locked = True

            self.store.bookings.update(booking)
            total = booking.total_price

        logger.booking_updated(booking_id, stay_changed, total)
        return self.store.bookings.get(booking_id)

    def delete_booking(
        self,
        booking_id: str,
        edit_token: Optional[str] = None,
        is_admin: bool = False,
    ) -> None:
        with self.store.transaction("deleting a booking"):
            booking = self.store.bookings.lock(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            self._authorize(booking, edit_token, is_admin)
            self.store.bookings.delete(booking_id)

        logger.booking_deleted(booking_id, is_admin)

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.store.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    def get_by_edit_token(self, edit_token: str) -> Booking:
        booking = self.store.bookings.get_by_edit_token(edit_token)
        if booking is None:
            raise InvalidEditTokenError()
        return booking

    def list_bookings(self) -> List[Booking]:
        return self.store.bookings.list_all()

    def recalculate_price(self, booking_id: str) -> PriceCheck:
        """
        Recompute a booking's price with the current tables.

        Locked bookings keep their stored total (a difference is logged);
        unlocked ones take the fresh total and become locked.
        """
        with self.store.transaction("recalculating a price"):
            booking = self.store.bookings.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)

            tiers = {a.room_id: a.room.tier for a in booking.assignments}
            computed = self._price(stays_from_booking(booking, tiers)).total
            stored = Decimal(booking.total_price).quantize(Decimal("0.01"))
            was_locked = bool(booking.price_locked)

            updated = False
            if was_locked:
                if stored != computed:
                    logger.price_discrepancy(booking_id, stored, computed)
            else:
                booking.total_price = computed
                booking.price_locked = True
                self.store.bookings.update(booking)
                updated = True

        return PriceCheck(
            booking_id=booking_id,
            stored_total=stored,
            computed_total=computed,
            price_locked=was_locked,
            updated=updated,
        )
