import uuid

from sqlalchemy import Column, String, Date, DateTime, Index, CheckConstraint

from ..database import Base
from ..utils.clock import utcnow


def generate_period_id() -> str:
    return f"XMAS{uuid.uuid4().hex[:8].upper()}"


class ChristmasPeriod(Base):
    """
    A Christmas season with restricted booking access.

    Covers every day from start_date to end_date inclusive. Until
    30 September of the start year, bookings touching the period need an
    access code; after that date bulk bookings of the period are closed.
    """
    __tablename__ = "christmas_periods"

    id = Column(String(20), primary_key=True, default=generate_period_id)
    name = Column(String(100), nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_christmas_period_dates", "start_date", "end_date"),
        CheckConstraint("end_date >= start_date", name="check_christmas_period_range"),
    )

    @property
    def year(self) -> int:
        return self.start_date.year

    def __repr__(self):
        return f"<ChristmasPeriod {self.id} {self.start_date}..{self.end_date}>"


class ChristmasAccessCode(Base):
    __tablename__ = "christmas_codes"

    code = Column(String(50), primary_key=True)
    created_at = Column(DateTime, default=utcnow)
