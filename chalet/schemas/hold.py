from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator

from .booking import GuestCompositionIn, UniformGuestsIn


class HoldCreate(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    start_date: date
    end_date: date
    room_ids: List[str] = Field(..., min_length=1)
    guests: GuestCompositionIn = Field(default_factory=UniformGuestsIn)
    total_price: Optional[Decimal] = Field(None, ge=0, description="Informational quote shown to the guest")

    @field_validator('room_ids')
    @classmethod
    def validate_unique_rooms(cls, v):
        if len(v) != len(set(v)):
            raise ValueError("Each room may appear only once in a hold")
        return v

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError('Check-out date must be after check-in date')
        return self


class HoldResponse(BaseModel):
    proposal_id: str
    session_id: str
    start_date: date
    end_date: date
    room_ids: List[str]
    guest_class: str
    adults: int
    children: int
    toddlers: int
    total_price: Optional[Decimal] = None
    created_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True


class HoldCreatedResponse(BaseModel):
    proposal_id: str
    expires_at: datetime


class HoldsDeletedResponse(BaseModel):
    session_id: str
    deleted: int
