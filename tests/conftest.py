"""
Shared fixtures: an in-memory SQLite store seeded with the default rooms
and price tables, and a clock pinned to 2025-06-01 12:00 UTC.
"""

import pytest
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import sessionmaker

from chalet.database import build_engine, create_tables
from chalet.services.availability import AvailabilityResolver
from chalet.services.booking_service import BookingDraft, BookingService, ContactInfo, RoomRequest
from chalet.services.conflict_guard import ConflictGuard
from chalet.services.hold_manager import HoldManager
from chalet.services.inventory_store import InventoryStore
from chalet.services.price_calculator import UniformGuests

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(FIXED_NOW)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def store(db):
    store = InventoryStore(db)
    store.seed_defaults()
    return store


@pytest.fixture
def resolver(store, clock):
    return AvailabilityResolver(store, clock=clock)


@pytest.fixture
def holds(store, clock):
    return HoldManager(store, clock=clock)


@pytest.fixture
def guard(store):
    return ConflictGuard(store)


@pytest.fixture
def bookings(store, clock):
    return BookingService(store, clock=clock)


def make_contact(name: str = "Jana Novakova") -> ContactInfo:
    return ContactInfo(name=name, email="jana@example.cz", phone="+420123456789")


@pytest.fixture
def make_draft():
    """Factory for a single- or multi-room draft with uniform guests"""

    def _make(
        start: date,
        end: date,
        room_ids=("12",),
        guest_class: str = "external",
        adults: int = 2,
        children: int = 0,
        toddlers: int = 0,
        contact: Optional[ContactInfo] = None,
    ) -> BookingDraft:
        return BookingDraft(
            start_date=start,
            end_date=end,
            rooms=[
                RoomRequest(
                    room_id=room_id,
                    guests=UniformGuests(guest_class, adults=adults, children=children, toddlers=toddlers),
                )
                for room_id in room_ids
            ],
            contact=contact or make_contact(),
        )

    return _make


@pytest.fixture
def book(bookings, make_draft):
    """Create a confirmed booking for one room"""

    def _book(room_id: str, start: date, end: date, **kwargs):
        return bookings.create_booking(make_draft(start, end, room_ids=(room_id,), **kwargs))

    return _book
