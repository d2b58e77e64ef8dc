import uuid

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


def generate_blockage_id() -> str:
    return f"BLK{uuid.uuid4().hex[:9].upper()}"


class BlockageInstance(Base):
    """
    Administrative closure (maintenance, owner use, ...).

    Covers every date from start_date to end_date inclusive, so a single-day
    blockage has start_date == end_date. No rooms listed means all rooms.
    """
    __tablename__ = "blockage_instances"

    id = Column(String(20), primary_key=True, default=generate_blockage_id)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    rooms = relationship(
        "BlockageRoom",
        back_populates="blockage",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_blockage_dates", "start_date", "end_date"),
        CheckConstraint("end_date >= start_date", name="check_blockage_range"),
    )

    @property
    def room_ids(self):
        return [r.room_id for r in self.rooms]

    @property
    def applies_to_all_rooms(self) -> bool:
        return not self.rooms

    def covers(self, room_id: str, day) -> bool:
        if not (self.start_date <= day <= self.end_date):
            return False
        return self.applies_to_all_rooms or room_id in self.room_ids

    def __repr__(self):
        return f"<BlockageInstance {self.id} {self.start_date}..{self.end_date}>"


class BlockageRoom(Base):
    __tablename__ = "blockage_rooms"

    blockage_id = Column(String(20), ForeignKey("blockage_instances.id", ondelete="CASCADE"), primary_key=True)
    room_id = Column(String(10), primary_key=True, index=True)

    blockage = relationship("BlockageInstance", back_populates="rooms")
