"""
FastAPI dependencies: store/service wiring and the admin API-key guard.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..services.availability import AvailabilityResolver
from ..services.booking_service import BookingService
from ..services.hold_manager import HoldManager
from ..services.inventory_store import InventoryStore
from .clock import Clock, utcnow


def get_clock() -> Clock:
    """Overridden in tests to pin the current time"""
    return utcnow


def get_store(db: Session = Depends(get_db)) -> InventoryStore:
    return InventoryStore(db)


def get_resolver(
    store: InventoryStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> AvailabilityResolver:
    return AvailabilityResolver(store, clock=clock)


def get_hold_manager(
    store: InventoryStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> HoldManager:
    return HoldManager(store, clock=clock)


def get_booking_service(
    store: InventoryStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> BookingService:
    return BookingService(store, clock=clock)


def is_admin_key(api_key: Optional[str]) -> bool:
    if not api_key:
        return False
    return secrets.compare_digest(api_key, settings.admin_api_key)


def get_is_admin(x_api_key: Optional[str] = Header(None)) -> bool:
    """True when the request carries a valid X-API-Key; never raises"""
    return is_admin_key(x_api_key)


def require_admin(x_api_key: Optional[str] = Header(None)) -> None:
    if not is_admin_key(x_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Valid X-API-Key header required",
        )
