import uuid
import enum

from sqlalchemy import (
    Column, String, Date, Numeric, Text, ForeignKey, DateTime, Index, Boolean,
    Integer, CheckConstraint
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class GuestClass(str, enum.Enum):
    """Pricing class of a guest: employees' parties pay subsidized rates"""
    SUBSIDIZED = "subsidized"
    EXTERNAL = "external"


class PersonType(str, enum.Enum):
    ADULT = "adult"
    CHILD = "child"
    TODDLER = "toddler"  # free, not counted against beds


class CompositionKind(str, enum.Enum):
    """How the guests of one room are described"""
    UNIFORM = "uniform"      # counts + one class for the whole room
    PER_GUEST = "per_guest"  # individual guest records, each with its own class


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Capability secret for self-service edit/delete
    edit_token = Column(String(64), nullable=False, unique=True, index=True)

    # Contact
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=False)
    company = Column(String(200), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    zip_code = Column(String(10), nullable=True)
    notes = Column(Text, nullable=True)

    # Overall stay envelope [start_date, end_date); rooms may override
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    is_bulk = Column(Boolean, default=False, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    price_locked = Column(Boolean, default=False, nullable=False)
    # Set by the administrator; paid bookings are read-only for the guest
    paid = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    assignments = relationship(
        "RoomAssignment",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RoomAssignment.room_id",
    )
    guests = relationship(
        "GuestRecord",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="GuestRecord.order_index",
    )

    __table_args__ = (
        Index("ix_booking_dates", "start_date", "end_date"),
        CheckConstraint("end_date > start_date", name="check_booking_range"),
    )

    @property
    def room_ids(self):
        return [a.room_id for a in self.assignments]

    def __repr__(self):
        return f"<Booking {self.id} {self.name} {self.start_date}..{self.end_date}>"


class RoomAssignment(Base):
    """One room of a booking with its own effective date range and guests"""
    __tablename__ = "room_assignments"

    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True)
    room_id = Column(String(10), ForeignKey("rooms.id", ondelete="RESTRICT"), primary_key=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    composition_kind = Column(String(20), nullable=False, default=CompositionKind.UNIFORM.value)
    # Uniform composition; for per_guest rows these are derived totals
    guest_class = Column(String(20), nullable=False, default=GuestClass.EXTERNAL.value)
    adults = Column(Integer, nullable=False, default=0)
    children = Column(Integer, nullable=False, default=0)
    toddlers = Column(Integer, nullable=False, default=0)

    booking = relationship("Booking", back_populates="assignments")
    room = relationship("Room")

    __table_args__ = (
        Index("ix_room_assignment_room_dates", "room_id", "start_date", "end_date"),
        CheckConstraint("end_date > start_date", name="check_assignment_range"),
    )

    def __repr__(self):
        return f"<RoomAssignment {self.booking_id}/{self.room_id} {self.start_date}..{self.end_date}>"


class GuestRecord(Base):
    """A named guest; carries its own class when the room is priced per guest"""
    __tablename__ = "guest_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    person_type = Column(String(10), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    room_id = Column(String(10), nullable=True)
    guest_class = Column(String(20), nullable=True)

    booking = relationship("Booking", back_populates="guests")

    def __repr__(self):
        return f"<GuestRecord {self.person_type} {self.first_name} {self.last_name}>"
