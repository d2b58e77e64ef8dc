"""
Price Calculator

Pure functions mapping a stay description to a cost. No I/O: the caller
loads the PriceConfig from the store (InventoryStore.price_config.get()).

Three modes:
1. Per-room: nightly = empty_room_rate + adults * adult_rate + children * child_rate,
   rates picked by the room's guest class and tier. Each room may have its own range.
2. Per-guest: the room's empty rate comes from the room class (subsidized if at
   least one adult/child in it is subsidized, else external); every adult/child
   surcharge uses that guest's own class.
3. Bulk: the whole property under one range.
   nightly = base_price + sum of per-adult and per-child bulk rates by guest class.

Toddlers are free in every mode.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..models.booking import GuestClass, PersonType, CompositionKind
from ..utils.date_ranges import nights_between, validate_range

CENT = Decimal("0.01")


class PricingMode:
    PER_ROOM = "per_room"
    PER_GUEST = "per_guest"
    BULK = "bulk"


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TierRates:
    """Nightly rates for one (guest_class, room_tier) cell"""
    empty_room_rate: Decimal
    adult_rate: Decimal
    child_rate: Decimal


@dataclass(frozen=True)
class BulkRates:
    base_price: Decimal
    subsidized_adult: Decimal
    subsidized_child: Decimal
    external_adult: Decimal
    external_child: Decimal

    def person_rate(self, guest_class: str, person_type: str) -> Decimal:
        if person_type == PersonType.TODDLER.value:
            return Decimal("0")
        subsidized = guest_class == GuestClass.SUBSIDIZED.value
        if person_type == PersonType.ADULT.value:
            return self.subsidized_adult if subsidized else self.external_adult
        return self.subsidized_child if subsidized else self.external_child


@dataclass(frozen=True)
class PriceConfig:
    rates: Dict[Tuple[str, str], TierRates]
    bulk: BulkRates

    def rates_for(self, guest_class: str, tier: str) -> TierRates:
        try:
            return self.rates[(guest_class, tier)]
        except KeyError:
            raise KeyError(f"No price rates for guest class {guest_class!r} and room tier {tier!r}") from None


@dataclass(frozen=True)
class GuestSpec:
    """One named guest with its own pricing class"""
    person_type: str
    guest_class: str
    first_name: str = ""
    last_name: str = ""


@dataclass(frozen=True)
class UniformGuests:
    """Counts for a room whose guests all share one class"""
    guest_class: str
    adults: int = 0
    children: int = 0
    toddlers: int = 0
    kind: str = CompositionKind.UNIFORM.value

    def sleepers(self) -> int:
        return self.adults + self.children


@dataclass(frozen=True)
class PerGuestGuests:
    """Individually classified guests of one room"""
    guests: Tuple[GuestSpec, ...] = ()
    kind: str = CompositionKind.PER_GUEST.value

    def _count(self, person_type: PersonType) -> int:
        return sum(1 for g in self.guests if g.person_type == person_type.value)

    @property
    def adults(self) -> int:
        return self._count(PersonType.ADULT)

    @property
    def children(self) -> int:
        return self._count(PersonType.CHILD)

    @property
    def toddlers(self) -> int:
        return self._count(PersonType.TODDLER)

    def sleepers(self) -> int:
        return self.adults + self.children

    @property
    def guest_class(self) -> str:
        """Room class: subsidized if any adult or child is subsidized"""
        for g in self.guests:
            if g.person_type != PersonType.TODDLER.value and g.guest_class == GuestClass.SUBSIDIZED.value:
                return GuestClass.SUBSIDIZED.value
        return GuestClass.EXTERNAL.value


GuestComposition = Union[UniformGuests, PerGuestGuests]


@dataclass(frozen=True)
class StayRoom:
    """One room of a stay with its effective range and guests"""
    room_id: str
    tier: str
    start_date: date
    end_date: date
    guests: GuestComposition

    @property
    def nights(self) -> int:
        return nights_between(self.start_date, self.end_date)


@dataclass
class RoomPriceLine:
    room_id: str
    guest_class: str
    nights: int
    nightly: Decimal
    total: Decimal


@dataclass
class PriceQuote:
    mode: str
    nights: int
    total: Decimal
    rooms: List[RoomPriceLine] = field(default_factory=list)
    bulk_nightly: Optional[Decimal] = None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "nights": self.nights,
            "total": str(self.total),
            "bulk_nightly": str(self.bulk_nightly) if self.bulk_nightly is not None else None,
            "rooms": [
                {
                    "room_id": line.room_id,
                    "guest_class": line.guest_class,
                    "nights": line.nights,
                    "nightly": str(line.nightly),
                    "total": str(line.total),
                }
                for line in self.rooms
            ],
        }


def room_nightly_rate(config: PriceConfig, tier: str, guests: GuestComposition) -> Decimal:
    """Nightly price of one room in per-room or per-guest mode."""
    room_rates = config.rates_for(guests.guest_class, tier)
    nightly = Decimal(room_rates.empty_room_rate)

    if isinstance(guests, PerGuestGuests):
        for guest in guests.guests:
            if guest.person_type == PersonType.TODDLER.value:
                continue
            own = config.rates_for(guest.guest_class, tier)
            if guest.person_type == PersonType.ADULT.value:
                nightly += Decimal(own.adult_rate)
            else:
                nightly += Decimal(own.child_rate)
        return _money(nightly)

    nightly += guests.adults * Decimal(room_rates.adult_rate)
    nightly += guests.children * Decimal(room_rates.child_rate)
    return _money(nightly)


def bulk_nightly_rate(config: PriceConfig, stays: Iterable[StayRoom]) -> Decimal:
    nightly = Decimal(config.bulk.base_price)
    for stay in stays:
        guests = stay.guests
        if isinstance(guests, PerGuestGuests):
            for guest in guests.guests:
                nightly += config.bulk.person_rate(guest.guest_class, guest.person_type)
        else:
            nightly += guests.adults * config.bulk.person_rate(guests.guest_class, PersonType.ADULT.value)
            nightly += guests.children * config.bulk.person_rate(guests.guest_class, PersonType.CHILD.value)
    return _money(nightly)


def is_bulk_stay(stays: List[StayRoom], inventory_room_ids: Iterable[str]) -> bool:
    """
    Bulk pricing applies only when the stay takes every room of the
    inventory and all rooms share one date range.
    """
    inventory = set(inventory_room_ids)
    if not stays or not inventory:
        return False
    if {s.room_id for s in stays} != inventory or len(stays) != len(inventory):
        return False
    first = stays[0]
    return all(s.start_date == first.start_date and s.end_date == first.end_date for s in stays)


def calculate_price(
    config: PriceConfig,
    stays: List[StayRoom],
    inventory_room_ids: Optional[Iterable[str]] = None,
) -> PriceQuote:
    """
    Price a stay. Deterministic: the same config and stays always give the
    same quote. Passing ``inventory_room_ids`` enables bulk-mode detection.
    """
    if not stays:
        return PriceQuote(mode=PricingMode.PER_ROOM, nights=0, total=_money(0))

    for stay in stays:
        validate_range(stay.start_date, stay.end_date)

    envelope_nights = nights_between(
        min(s.start_date for s in stays), max(s.end_date for s in stays)
    )

    if inventory_room_ids is not None and is_bulk_stay(stays, inventory_room_ids):
        nightly = bulk_nightly_rate(config, stays)
        nights = stays[0].nights
        return PriceQuote(
            mode=PricingMode.BULK,
            nights=nights,
            total=_money(nightly * nights),
            bulk_nightly=nightly,
        )

    lines = []
    for stay in stays:
        nightly = room_nightly_rate(config, stay.tier, stay.guests)
        lines.append(RoomPriceLine(
            room_id=stay.room_id,
            guest_class=stay.guests.guest_class,
            nights=stay.nights,
            nightly=nightly,
            total=_money(nightly * stay.nights),
        ))

    mode = PricingMode.PER_ROOM
    if any(isinstance(s.guests, PerGuestGuests) for s in stays):
        mode = PricingMode.PER_GUEST

    return PriceQuote(
        mode=mode,
        nights=envelope_nights,
        total=_money(sum((line.total for line in lines), Decimal("0"))),
        rooms=lines,
    )
