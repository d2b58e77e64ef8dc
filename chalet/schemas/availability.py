from datetime import date
from typing import Optional, List, Dict

from pydantic import BaseModel


class DayAvailabilityResponse(BaseModel):
    room_id: str
    date: date
    status: str
    night_before: str
    night_after: str
    mixed: bool = False
    occupied_side: Optional[str] = None
    booking_id: Optional[str] = None
    proposal_id: Optional[str] = None
    blockage_id: Optional[str] = None
    blockage_reason: Optional[str] = None


class AvailabilityCalendarResponse(BaseModel):
    start_date: date
    end_date: date
    rooms: Dict[str, List[DayAvailabilityResponse]]
