"""
Price Configuration Models

Static price tables:
- price_rates: one row per (guest_class, room_tier) with the empty-room
  nightly rate and the per-adult / per-child nightly surcharges
- bulk_price_config: single row with the whole-property nightly base price
  and per-person surcharges by guest class

Toddlers are always free, so they have no columns here.
"""

from sqlalchemy import Column, String, Numeric, Integer, DateTime

from ..database import Base
from ..utils.clock import utcnow


class PriceRate(Base):
    __tablename__ = "price_rates"

    guest_class = Column(String(20), primary_key=True)
    room_tier = Column(String(10), primary_key=True)

    empty_room_rate = Column(Numeric(10, 2), nullable=False, default=0)
    adult_rate = Column(Numeric(10, 2), nullable=False, default=0)
    child_rate = Column(Numeric(10, 2), nullable=False, default=0)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<PriceRate {self.guest_class}/{self.room_tier} empty={self.empty_room_rate}>"


class BulkPriceConfig(Base):
    __tablename__ = "bulk_price_config"

    id = Column(Integer, primary_key=True, default=1)

    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    subsidized_adult_rate = Column(Numeric(10, 2), nullable=False, default=0)
    subsidized_child_rate = Column(Numeric(10, 2), nullable=False, default=0)
    external_adult_rate = Column(Numeric(10, 2), nullable=False, default=0)
    external_child_rate = Column(Numeric(10, 2), nullable=False, default=0)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<BulkPriceConfig base={self.base_price}>"
