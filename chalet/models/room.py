import enum

from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint

from ..database import Base
from ..utils.clock import utcnow


class RoomTier(str, enum.Enum):
    """Room size class; selects the price row together with the guest class"""
    SMALL = "small"
    LARGE = "large"


class Room(Base):
    """
    A bookable room. Reference data: editable by administrators only.
    bed_count bounds adults + children (toddlers sleep with their parents).
    """
    __tablename__ = "rooms"

    id = Column(String(10), primary_key=True)
    name = Column(String(100), nullable=False)
    tier = Column(String(10), nullable=False, default=RoomTier.SMALL.value)
    bed_count = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("bed_count > 0", name="check_room_bed_count_positive"),
        CheckConstraint("tier IN ('small', 'large')", name="check_room_tier"),
    )

    def __repr__(self):
        return f"<Room {self.id} {self.tier} beds={self.bed_count}>"
