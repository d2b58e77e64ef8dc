# Models package
from .room import Room, RoomTier
from .booking import Booking, RoomAssignment, GuestRecord, GuestClass, PersonType, CompositionKind
from .blockage import BlockageInstance, BlockageRoom
from .proposed_booking import ProposedBooking, ProposedBookingRoom
from .pricing import PriceRate, BulkPriceConfig
from .christmas import ChristmasPeriod, ChristmasAccessCode

__all__ = [
    "Room", "RoomTier",
    "Booking", "RoomAssignment", "GuestRecord", "GuestClass", "PersonType", "CompositionKind",
    "BlockageInstance", "BlockageRoom",
    "ProposedBooking", "ProposedBookingRoom",
    "PriceRate", "BulkPriceConfig",
    "ChristmasPeriod", "ChristmasAccessCode",
]
