from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ..exceptions import BookingError, InvalidDateRangeError, RoomNotFoundError
from ..schemas.availability import AvailabilityCalendarResponse, DayAvailabilityResponse
from ..services.availability import AvailabilityResolver
from ..utils.dependencies import get_resolver
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/availability", tags=["Availability"])

MAX_CALENDAR_DAYS = 370


@router.get("", response_model=DayAvailabilityResponse)
@limiter.limit(get_rate_limit("availability"))
async def get_day_availability(
    request: Request,
    room_id: str = Query(..., description="Room id"),
    day: date = Query(..., description="Calendar day"),
    session_id: Optional[str] = Query(None, description="Hide this session's own holds"),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    if resolver.store.rooms.get(room_id) is None:
        raise RoomNotFoundError(room_id)
    return resolver.resolve(room_id, day, excluding_session_id=session_id).to_dict()


@router.get("/calendar", response_model=AvailabilityCalendarResponse)
@limiter.limit(get_rate_limit("availability"))
async def get_calendar(
    request: Request,
    start: date = Query(..., description="First day (inclusive)"),
    end: date = Query(..., description="Last day (inclusive)"),
    session_id: Optional[str] = Query(None),
    room_id: Optional[List[str]] = Query(None, description="Limit to these rooms"),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    if end < start:
        raise InvalidDateRangeError(start, end, "Calendar end must not be before its start")
    if (end - start).days >= MAX_CALENDAR_DAYS:
        raise BookingError(f"Calendar window is limited to {MAX_CALENDAR_DAYS} days", status_code=400)

    days = resolver.resolve_range(room_id, start, end, excluding_session_id=session_id)
    return {
        "start_date": start,
        "end_date": end,
        "rooms": {rid: [d.to_dict() for d in items] for rid, items in days.items()},
    }
