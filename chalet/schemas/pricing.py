"""
Pricing Schemas

Pydantic models for price quotes and the price tables.
"""

from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field

from ..models import GuestClass, RoomTier


class RoomPriceLineResponse(BaseModel):
    room_id: str
    guest_class: str
    nights: int
    nightly: Decimal
    total: Decimal


class PriceQuoteResponse(BaseModel):
    mode: str = Field(..., description="per_room, per_guest or bulk")
    nights: int
    total: Decimal
    currency: str
    bulk_nightly: Optional[Decimal] = None
    rooms: List[RoomPriceLineResponse] = []


class TierRatesSchema(BaseModel):
    guest_class: GuestClass
    room_tier: RoomTier
    empty_room_rate: Decimal = Field(..., ge=0)
    adult_rate: Decimal = Field(..., ge=0)
    child_rate: Decimal = Field(..., ge=0)


class BulkRatesSchema(BaseModel):
    base_price: Decimal = Field(..., ge=0)
    subsidized_adult_rate: Decimal = Field(..., ge=0)
    subsidized_child_rate: Decimal = Field(..., ge=0)
    external_adult_rate: Decimal = Field(..., ge=0)
    external_child_rate: Decimal = Field(..., ge=0)


class BulkRatesUpdate(BaseModel):
    base_price: Optional[Decimal] = Field(None, ge=0)
    subsidized_adult_rate: Optional[Decimal] = Field(None, ge=0)
    subsidized_child_rate: Optional[Decimal] = Field(None, ge=0)
    external_adult_rate: Optional[Decimal] = Field(None, ge=0)
    external_child_rate: Optional[Decimal] = Field(None, ge=0)


class PriceConfigResponse(BaseModel):
    currency: str
    rates: List[TierRatesSchema]
    bulk: BulkRatesSchema


class PriceConfigUpdate(BaseModel):
    """Partial update of the price tables; existing bookings keep their locked totals"""
    rates: List[TierRatesSchema] = []
    bulk: Optional[BulkRatesUpdate] = None
