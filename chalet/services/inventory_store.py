"""
Inventory Store

SQLAlchemy-backed store for rooms, bookings, blockages, holds and price
tables. Services receive an InventoryStore instead of reaching for a
module-level session, so tests can hand them an in-memory database.

All writes of one logical operation go through ``store.transaction()``:
commit on success, full rollback on any error.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..exceptions import BookingError
from ..models import (
    Room, RoomTier, Booking, RoomAssignment, GuestClass,
    BlockageInstance, BlockageRoom, ProposedBooking, ProposedBookingRoom,
    PriceRate, BulkPriceConfig, ChristmasPeriod, ChristmasAccessCode,
)
from ..utils.db_helpers import acquire_row_lock, lock_rows_in_order, wrap_storage_error
from .price_calculator import PriceConfig, TierRates, BulkRates

logger = logging.getLogger(__name__)


DEFAULT_ROOMS = [
    # (id, tier, beds)
    ("12", RoomTier.SMALL, 2),
    ("13", RoomTier.SMALL, 3),
    ("14", RoomTier.LARGE, 4),
    ("22", RoomTier.SMALL, 2),
    ("23", RoomTier.SMALL, 3),
    ("24", RoomTier.LARGE, 4),
    ("42", RoomTier.SMALL, 2),
    ("43", RoomTier.SMALL, 2),
    ("44", RoomTier.LARGE, 4),
]

DEFAULT_RATES = {
    # (guest_class, tier): (empty room, per adult, per child)
    (GuestClass.SUBSIDIZED, RoomTier.SMALL): (250, 50, 25),
    (GuestClass.SUBSIDIZED, RoomTier.LARGE): (350, 70, 35),
    (GuestClass.EXTERNAL, RoomTier.SMALL): (400, 100, 50),
    (GuestClass.EXTERNAL, RoomTier.LARGE): (500, 120, 60),
}

DEFAULT_BULK = {
    "base_price": 2000,
    "subsidized_adult_rate": 100,
    "subsidized_child_rate": 0,
    "external_adult_rate": 250,
    "external_child_rate": 50,
}


class RoomRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> List[Room]:
        return self.db.query(Room).order_by(Room.id).all()

    def get(self, room_id: str) -> Optional[Room]:
        return self.db.get(Room, room_id)

    def get_many(self, room_ids: Iterable[str]) -> Dict[str, Room]:
        ids = list(set(room_ids))
        if not ids:
            return {}
        return {r.id: r for r in self.db.query(Room).filter(Room.id.in_(ids)).all()}

    def lock(self, room_ids: Iterable[str]) -> List[Room]:
        """Lock room rows (id order) for the rest of the transaction."""
        return lock_rows_in_order(self.db, Room, Room.id, room_ids)


class BookingRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Booking).options(
            selectinload(Booking.assignments),
            selectinload(Booking.guests),
        )

    def create(self, booking: Booking) -> Booking:
        """Insert the booking with its assignments and guest records."""
        self.db.add(booking)
        self.db.flush()
        return booking

    def update(self, booking: Booking) -> Booking:
        self.db.flush()
        return booking

    def delete(self, booking_id: str) -> bool:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            return False
        self.db.delete(booking)
        self.db.flush()
        return True

    def get(self, booking_id: str) -> Optional[Booking]:
        return self._query().filter(Booking.id == booking_id).first()

    def lock(self, booking_id: str) -> Optional[Booking]:
        """Fetch a booking and hold its row lock until the transaction ends."""
        return acquire_row_lock(self.db, Booking, Booking.id == booking_id)

    def get_by_edit_token(self, edit_token: str) -> Optional[Booking]:
        if not edit_token:
            return None
        return self._query().filter(Booking.edit_token == edit_token).first()

    def list_all(self) -> List[Booking]:
        return self._query().order_by(Booking.start_date, Booking.created_at).all()

    def list_assignments(
        self,
        room_ids: Iterable[str],
        start: date,
        end: date,
        exclude_booking_id: Optional[str] = None,
    ) -> List[RoomAssignment]:
        """Assignments of the given rooms whose range overlaps [start, end)"""
        query = self.db.query(RoomAssignment).filter(
            RoomAssignment.room_id.in_(list(room_ids)),
            RoomAssignment.start_date < end,
            RoomAssignment.end_date > start,
        )
        if exclude_booking_id:
            query = query.filter(RoomAssignment.booking_id != exclude_booking_id)
        return query.order_by(RoomAssignment.room_id, RoomAssignment.start_date).all()


class BlockageRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(BlockageInstance).options(selectinload(BlockageInstance.rooms))

    def list_all(self) -> List[BlockageInstance]:
        return self._query().order_by(BlockageInstance.start_date).all()

    def list_covering(self, first_day: date, last_day: date) -> List[BlockageInstance]:
        """Blockages covering any day from first_day to last_day inclusive"""
        return self._query().filter(
            BlockageInstance.start_date <= last_day,
            BlockageInstance.end_date >= first_day,
        ).order_by(BlockageInstance.start_date).all()

    def get(self, blockage_id: str) -> Optional[BlockageInstance]:
        return self._query().filter(BlockageInstance.id == blockage_id).first()

    def create(
        self,
        start_date: date,
        end_date: date,
        room_ids: Iterable[str] = (),
        reason: Optional[str] = None,
    ) -> BlockageInstance:
        blockage = BlockageInstance(start_date=start_date, end_date=end_date, reason=reason)
        blockage.rooms = [BlockageRoom(room_id=rid) for rid in sorted(set(room_ids))]
        self.db.add(blockage)
        self.db.flush()
        return blockage

    def delete(self, blockage_id: str) -> bool:
        blockage = self.db.get(BlockageInstance, blockage_id)
        if blockage is None:
            return False
        self.db.delete(blockage)
        self.db.flush()
        return True


class ProposedBookingRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(ProposedBooking).options(selectinload(ProposedBooking.rooms))

    def _delete_where(self, condition) -> int:
        ids = [row.proposal_id for row in self.db.query(ProposedBooking.proposal_id).filter(condition)]
        if not ids:
            return 0
        self.db.query(ProposedBookingRoom).filter(
            ProposedBookingRoom.proposal_id.in_(ids)
        ).delete(synchronize_session=False)
        count = self.db.query(ProposedBooking).filter(
            ProposedBooking.proposal_id.in_(ids)
        ).delete(synchronize_session=False)
        self.db.expire_all()
        return count

    def create(
        self,
        session_id: str,
        start_date: date,
        end_date: date,
        room_ids: Iterable[str],
        created_at: datetime,
        expires_at: datetime,
        guest_class: str = GuestClass.EXTERNAL.value,
        adults: int = 0,
        children: int = 0,
        toddlers: int = 0,
        total_price: Optional[Decimal] = None,
    ) -> ProposedBooking:
        proposal = ProposedBooking(
            session_id=session_id,
            start_date=start_date,
            end_date=end_date,
            guest_class=guest_class,
            adults=adults,
            children=children,
            toddlers=toddlers,
            total_price=total_price,
            created_at=created_at,
            expires_at=expires_at,
        )
        proposal.rooms = [ProposedBookingRoom(room_id=rid) for rid in sorted(set(room_ids))]
        self.db.add(proposal)
        self.db.flush()
        return proposal

    def get(self, proposal_id: str) -> Optional[ProposedBooking]:
        return self._query().filter(ProposedBooking.proposal_id == proposal_id).first()

    def delete(self, proposal_id: str) -> bool:
        return self._delete_where(ProposedBooking.proposal_id == proposal_id) > 0

    def delete_by_session(self, session_id: str) -> int:
        return self._delete_where(ProposedBooking.session_id == session_id)

    def delete_expired(self, now: datetime) -> int:
        return self._delete_where(ProposedBooking.expires_at <= now)

    def list_active_by_session(self, session_id: str, now: datetime) -> List[ProposedBooking]:
        return self._query().filter(
            ProposedBooking.session_id == session_id,
            ProposedBooking.expires_at > now,
        ).order_by(ProposedBooking.created_at).all()

    def list_active_by_date_range(
        self,
        start: date,
        end: date,
        now: datetime,
        room_ids: Optional[Iterable[str]] = None,
        excluding_session_id: Optional[str] = None,
    ) -> List[ProposedBooking]:
        """Active holds whose [start, end) overlaps the given [start, end)"""
        query = self._query().filter(
            ProposedBooking.expires_at > now,
            ProposedBooking.start_date < end,
            ProposedBooking.end_date > start,
        )
        if excluding_session_id:
            query = query.filter(ProposedBooking.session_id != excluding_session_id)
        if room_ids is not None:
            query = query.filter(
                ProposedBooking.rooms.any(ProposedBookingRoom.room_id.in_(list(room_ids)))
            )
        return query.order_by(ProposedBooking.created_at).all()


class PriceConfigRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self) -> PriceConfig:
        rates = {
            (row.guest_class, row.room_tier): TierRates(
                empty_room_rate=Decimal(row.empty_room_rate),
                adult_rate=Decimal(row.adult_rate),
                child_rate=Decimal(row.child_rate),
            )
            for row in self.db.query(PriceRate).all()
        }
        bulk_row = self.db.get(BulkPriceConfig, 1)
        if bulk_row is None:
            bulk_row = BulkPriceConfig(id=1, **DEFAULT_BULK)
        bulk = BulkRates(
            base_price=Decimal(bulk_row.base_price),
            subsidized_adult=Decimal(bulk_row.subsidized_adult_rate),
            subsidized_child=Decimal(bulk_row.subsidized_child_rate),
            external_adult=Decimal(bulk_row.external_adult_rate),
            external_child=Decimal(bulk_row.external_child_rate),
        )
        return PriceConfig(rates=rates, bulk=bulk)

    def set_rate(self, guest_class: str, room_tier: str, empty_room_rate, adult_rate, child_rate) -> PriceRate:
        row = self.db.get(PriceRate, (guest_class, room_tier))
        if row is None:
            row = PriceRate(guest_class=guest_class, room_tier=room_tier)
            self.db.add(row)
        row.empty_room_rate = empty_room_rate
        row.adult_rate = adult_rate
        row.child_rate = child_rate
        self.db.flush()
        return row

    def set_bulk(self, **values) -> BulkPriceConfig:
        row = self.db.get(BulkPriceConfig, 1)
        if row is None:
            row = BulkPriceConfig(id=1, **DEFAULT_BULK)
            self.db.add(row)
        for key, value in values.items():
            if value is not None and hasattr(row, key):
                setattr(row, key, value)
        self.db.flush()
        return row


class ChristmasRepository:
    """Christmas periods and the access codes that open them early"""

    def __init__(self, db: Session):
        self.db = db

    def list_periods(self) -> List[ChristmasPeriod]:
        return self.db.query(ChristmasPeriod).order_by(ChristmasPeriod.start_date).all()

    def periods_for_stay(self, start: date, end: date) -> List[ChristmasPeriod]:
        """Periods containing any night of the stay [start, end)"""
        return self.db.query(ChristmasPeriod).filter(
            ChristmasPeriod.start_date < end,
            ChristmasPeriod.end_date >= start,
        ).order_by(ChristmasPeriod.start_date).all()

    def get_period(self, period_id: str) -> Optional[ChristmasPeriod]:
        return self.db.get(ChristmasPeriod, period_id)

    def create_period(self, start_date: date, end_date: date, name: Optional[str] = None) -> ChristmasPeriod:
        period = ChristmasPeriod(start_date=start_date, end_date=end_date, name=name)
        self.db.add(period)
        self.db.flush()
        return period

    def delete_period(self, period_id: str) -> bool:
        period = self.db.get(ChristmasPeriod, period_id)
        if period is None:
            return False
        self.db.delete(period)
        self.db.flush()
        return True

    def list_codes(self) -> List[str]:
        return [row.code for row in self.db.query(ChristmasAccessCode).order_by(ChristmasAccessCode.code)]

    def has_code(self, code: str) -> bool:
        if not code:
            return False
        return self.db.get(ChristmasAccessCode, code) is not None

    def add_code(self, code: str) -> ChristmasAccessCode:
        row = self.db.get(ChristmasAccessCode, code)
        if row is None:
            row = ChristmasAccessCode(code=code)
            self.db.add(row)
            self.db.flush()
        return row

    def delete_code(self, code: str) -> bool:
        row = self.db.get(ChristmasAccessCode, code)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True


class InventoryStore:
    """Facade over one SQLAlchemy session exposing the repositories."""

    def __init__(self, db: Session):
        self.db = db
        self.rooms = RoomRepository(db)
        self.bookings = BookingRepository(db)
        self.blockages = BlockageRepository(db)
        self.proposed_bookings = ProposedBookingRepository(db)
        self.price_config = PriceConfigRepository(db)
        self.christmas = ChristmasRepository(db)

    @contextmanager
    def transaction(self, action: str = "writing to the inventory store"):
        """
        Run a block as one atomic unit of work.

        Domain errors roll back and propagate unchanged; SQLAlchemy errors
        roll back and surface as StorageError.
        """
        try:
            yield self
            self.db.commit()
        except BookingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise wrap_storage_error(e, action) from e
        except Exception:
            self.db.rollback()
            raise

    def seed_defaults(self) -> bool:
        """Insert default rooms and price tables into an empty store."""
        seeded = False
        with self.transaction("seeding default data"):
            if self.db.query(Room).count() == 0:
                for room_id, tier, beds in DEFAULT_ROOMS:
                    self.db.add(Room(id=room_id, name=f"Room {room_id}", tier=tier.value, bed_count=beds))
                seeded = True

            if self.db.query(PriceRate).count() == 0:
                for (guest_class, tier), (empty, adult, child) in DEFAULT_RATES.items():
                    self.db.add(PriceRate(
                        guest_class=guest_class.value,
                        room_tier=tier.value,
                        empty_room_rate=empty,
                        adult_rate=adult,
                        child_rate=child,
                    ))
                seeded = True

            if self.db.get(BulkPriceConfig, 1) is None:
                self.db.add(BulkPriceConfig(id=1, **DEFAULT_BULK))
                seeded = True

        if seeded:
            logger.info("Seeded default rooms and price tables")
        return seeded
