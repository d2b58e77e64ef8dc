"""
Proposed Booking Model

Short-lived, per-session holds created while a guest fills in the booking
form. A hold is advisory only: it hides the rooms from other sessions'
availability view until it expires, it never guarantees the slot.
"""

import uuid

from sqlalchemy import Column, String, Date, DateTime, Integer, Numeric, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow
from .booking import GuestClass


def generate_proposal_id() -> str:
    return f"PROP{uuid.uuid4().hex[:12].upper()}"


class ProposedBooking(Base):
    __tablename__ = "proposed_bookings"

    proposal_id = Column(String(20), primary_key=True, default=generate_proposal_id)
    session_id = Column(String(128), nullable=False, index=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    guest_class = Column(String(20), nullable=False, default=GuestClass.EXTERNAL.value)
    adults = Column(Integer, nullable=False, default=0)
    children = Column(Integer, nullable=False, default=0)
    toddlers = Column(Integer, nullable=False, default=0)

    # Informational quote shown to the guest; never used for billing
    total_price = Column(Numeric(10, 2), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)

    rooms = relationship(
        "ProposedBookingRoom",
        back_populates="proposal",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_proposed_booking_dates", "start_date", "end_date"),
    )

    @property
    def room_ids(self):
        return [r.room_id for r in self.rooms]

    def is_active(self, now) -> bool:
        return self.expires_at > now

    def __repr__(self):
        return f"<ProposedBooking {self.proposal_id} session={self.session_id} expires={self.expires_at}>"


class ProposedBookingRoom(Base):
    __tablename__ = "proposed_booking_rooms"

    proposal_id = Column(
        String(20),
        ForeignKey("proposed_bookings.proposal_id", ondelete="CASCADE"),
        primary_key=True
    )
    room_id = Column(String(10), primary_key=True, index=True)

    proposal = relationship("ProposedBooking", back_populates="rooms")
