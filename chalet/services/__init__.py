# Services package
from .price_calculator import (
    PriceConfig, TierRates, BulkRates, GuestSpec, UniformGuests, PerGuestGuests,
    StayRoom, RoomPriceLine, PriceQuote, PricingMode, calculate_price,
)
from .inventory_store import InventoryStore
from .availability import AvailabilityResolver, AvailabilityStatus, DayAvailability, NightKind
from .conflict_guard import Conflict, ConflictGuard, ranges_overlap
from .hold_manager import HoldManager
from .christmas_rules import ChristmasRules, access_requirement
from .booking_service import (
    BookingService, BookingDraft, BookingChanges, ContactInfo, RoomRequest, PriceCheck,
)

__all__ = [
    "PriceConfig", "TierRates", "BulkRates", "GuestSpec", "UniformGuests", "PerGuestGuests",
    "StayRoom", "RoomPriceLine", "PriceQuote", "PricingMode", "calculate_price",
    "InventoryStore",
    "AvailabilityResolver", "AvailabilityStatus", "DayAvailability", "NightKind",
    "Conflict", "ConflictGuard", "ranges_overlap",
    "HoldManager",
    "ChristmasRules", "access_requirement",
    "BookingService", "BookingDraft", "BookingChanges", "ContactInfo", "RoomRequest", "PriceCheck",
]
