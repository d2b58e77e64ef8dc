import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status

from ..schemas.booking import (
    BookingCreate, BookingCreatedResponse, BookingResponse, BookingUpdate, PriceCheckResponse,
)
from ..services.booking_service import BookingService
from ..utils.dependencies import get_booking_service, get_is_admin, require_admin
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def _require_credentials(edit_token: Optional[str], is_admin: bool) -> None:
    if not is_admin and not edit_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Edit-Token or X-API-Key header required",
        )


@router.get("", response_model=List[BookingResponse], dependencies=[Depends(require_admin)])
async def list_bookings(bookings: BookingService = Depends(get_booking_service)):
    return bookings.list_bookings()


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("booking_create"))
async def create_booking(
    request: Request,
    data: BookingCreate,
    is_admin: bool = Depends(get_is_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    """
    Confirm a booking. The response carries the edit token, which is the
    guest's only credential for later changes.
    """
    return bookings.create_booking(data.to_domain(), session_id=data.session_id, is_admin=is_admin)


@router.get("/edit/{edit_token}", response_model=BookingResponse)
async def get_booking_by_edit_token(edit_token: str, bookings: BookingService = Depends(get_booking_service)):
    return bookings.get_by_edit_token(edit_token)


@router.get("/{booking_id}", response_model=BookingResponse, dependencies=[Depends(require_admin)])
async def get_booking(booking_id: str, bookings: BookingService = Depends(get_booking_service)):
    return bookings.get_booking(booking_id)


@router.put("/{booking_id}", response_model=BookingResponse)
@limiter.limit(get_rate_limit("booking_update"))
async def update_booking(
    request: Request,
    booking_id: str,
    data: BookingUpdate,
    x_edit_token: Optional[str] = Header(None),
    is_admin: bool = Depends(get_is_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    _require_credentials(x_edit_token, is_admin)
    return bookings.update_booking(booking_id, data.to_domain(), edit_token=x_edit_token, is_admin=is_admin)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(get_rate_limit("booking_delete"))
async def delete_booking(
    request: Request,
    booking_id: str,
    x_edit_token: Optional[str] = Header(None),
    is_admin: bool = Depends(get_is_admin),
    bookings: BookingService = Depends(get_booking_service),
):
    _require_credentials(x_edit_token, is_admin)
    bookings.delete_booking(booking_id, edit_token=x_edit_token, is_admin=is_admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{booking_id}/recalculate", response_model=PriceCheckResponse, dependencies=[Depends(require_admin)])
async def recalculate_price(booking_id: str, bookings: BookingService = Depends(get_booking_service)):
    """Compare the stored total with today's price tables; locked totals never change."""
    check = bookings.recalculate_price(booking_id)
    return {
        "booking_id": check.booking_id,
        "stored_total": check.stored_total,
        "computed_total": check.computed_total,
        "price_locked": check.price_locked,
        "updated": check.updated,
        "matches": check.matches,
    }
