import re
from datetime import datetime, date
from decimal import Decimal
from typing import Annotated, Optional, List, Literal, Union

from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator, model_validator

from ..models import GuestClass, PersonType
from ..services.booking_service import BookingChanges, BookingDraft, ContactInfo, RoomRequest
from ..services.price_calculator import GuestSpec, PerGuestGuests, UniformGuests

PHONE_RE = re.compile(r"^\+42[01]\d{9}$")
ZIP_RE = re.compile(r"^\d{5}$")


def strip_scripts(v):
    """Remove script tags and inline event handlers from free text"""
    if v is None or not isinstance(v, str):
        return v
    v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
    v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
    return v.strip()


def normalize_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    phone = re.sub(r"\s+", "", v)
    if not PHONE_RE.match(phone):
        raise ValueError("Phone must be +420 or +421 followed by 9 digits")
    return phone


def normalize_zip(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    zip_code = re.sub(r"\s+", "", v)
    if not ZIP_RE.match(zip_code):
        raise ValueError("ZIP code must have 5 digits")
    return zip_code


# ----------------------------------------------------------------------
# Guest composition (tagged by "kind")
# ----------------------------------------------------------------------

class GuestIn(BaseModel):
    person_type: PersonType
    guest_class: GuestClass = GuestClass.EXTERNAL
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)

    @field_validator('first_name', 'last_name', mode='before')
    @classmethod
    def sanitize_names(cls, v):
        return strip_scripts(v)


class UniformGuestsIn(BaseModel):
    kind: Literal["uniform"] = "uniform"
    guest_class: GuestClass = GuestClass.EXTERNAL
    adults: int = Field(0, ge=0, le=20)
    children: int = Field(0, ge=0, le=20)
    toddlers: int = Field(0, ge=0, le=20)

    def to_domain(self) -> UniformGuests:
        return UniformGuests(
            guest_class=self.guest_class.value,
            adults=self.adults,
            children=self.children,
            toddlers=self.toddlers,
        )


class PerGuestGuestsIn(BaseModel):
    kind: Literal["per_guest"] = "per_guest"
    guests: List[GuestIn] = Field(..., min_length=1)

    def to_domain(self) -> PerGuestGuests:
        return PerGuestGuests(guests=tuple(
            GuestSpec(
                person_type=g.person_type.value,
                guest_class=g.guest_class.value,
                first_name=g.first_name,
                last_name=g.last_name,
            )
            for g in self.guests
        ))


GuestCompositionIn = Annotated[Union[UniformGuestsIn, PerGuestGuestsIn], Field(discriminator="kind")]


class RoomRequestIn(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=10)
    guests: GuestCompositionIn
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_domain(self) -> RoomRequest:
        return RoomRequest(
            room_id=self.room_id,
            guests=self.guests.to_domain(),
            start_date=self.start_date,
            end_date=self.end_date,
        )


def _unique_rooms(rooms: Optional[List[RoomRequestIn]]):
    if rooms is None:
        return rooms
    ids = [r.room_id for r in rooms]
    if len(ids) != len(set(ids)):
        raise ValueError("Each room may appear only once in a booking")
    return rooms


# ----------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------

class ContactIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., max_length=20)
    company: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=10)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator('name', 'company', 'address', 'city', 'notes', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        """Strip script tags to prevent XSS"""
        return strip_scripts(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator('zip_code', mode='before')
    @classmethod
    def validate_zip(cls, v):
        return normalize_zip(v)


class BookingQuoteRequest(BaseModel):
    start_date: date
    end_date: date
    rooms: List[RoomRequestIn] = Field(..., min_length=1)

    @field_validator('rooms')
    @classmethod
    def validate_unique_rooms(cls, v):
        return _unique_rooms(v)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError('Check-out date must be after check-in date')
        return self

    def to_draft(self, contact: Optional[ContactInfo] = None) -> BookingDraft:
        return BookingDraft(
            start_date=self.start_date,
            end_date=self.end_date,
            rooms=[r.to_domain() for r in self.rooms],
            contact=contact,
        )


class BookingCreate(BookingQuoteRequest):
    contact: ContactIn
    session_id: Optional[str] = Field(None, max_length=128, description="Session whose holds this booking confirms")
    christmas_code: Optional[str] = Field(None, max_length=50, description="Access code for Christmas periods")

    def to_domain(self) -> BookingDraft:
        draft = self.to_draft(ContactInfo(**self.contact.model_dump()))
        draft.christmas_code = self.christmas_code
        return draft


class BookingUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=10)
    notes: Optional[str] = Field(None, max_length=2000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    rooms: Optional[List[RoomRequestIn]] = Field(None, min_length=1)
    paid: Optional[bool] = Field(None, description="Payment status; administrator only")
    christmas_code: Optional[str] = Field(None, max_length=50)

    @field_validator('name', 'email', 'phone', mode='before')
    @classmethod
    def reject_cleared_required(cls, v, info: ValidationInfo):
        """Name, email and phone may be changed but never cleared"""
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator('name', 'company', 'address', 'city', 'notes', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        return strip_scripts(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator('zip_code', mode='before')
    @classmethod
    def validate_zip(cls, v):
        return normalize_zip(v)

    @field_validator('rooms')
    @classmethod
    def validate_unique_rooms(cls, v):
        return _unique_rooms(v)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError('Check-out date must be after check-in date')
        return self

    def to_domain(self) -> BookingChanges:
        contact_fields = ("name", "email", "phone", "company", "address", "city", "zip_code", "notes")
        return BookingChanges(
            start_date=self.start_date,
            end_date=self.end_date,
            rooms=[r.to_domain() for r in self.rooms] if self.rooms is not None else None,
            contact={k: getattr(self, k) for k in contact_fields if k in self.model_fields_set},
            paid=self.paid,
            christmas_code=self.christmas_code,
        )


# ----------------------------------------------------------------------
# Responses
# ----------------------------------------------------------------------

class GuestRecordResponse(BaseModel):
    person_type: str
    first_name: str
    last_name: str
    order_index: int
    room_id: Optional[str] = None
    guest_class: Optional[str] = None

    class Config:
        from_attributes = True


class RoomAssignmentResponse(BaseModel):
    room_id: str
    start_date: date
    end_date: date
    composition_kind: str
    guest_class: str
    adults: int
    children: int
    toddlers: int

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    company: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    notes: Optional[str] = None
    start_date: date
    end_date: date
    is_bulk: bool
    total_price: Decimal
    price_locked: bool
    paid: bool = False
    assignments: List[RoomAssignmentResponse] = []
    guests: List[GuestRecordResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingCreatedResponse(BookingResponse):
    """Returned once, on creation: the only time the edit token is shown"""
    edit_token: str


class PriceCheckResponse(BaseModel):
    booking_id: str
    stored_total: Decimal
    computed_total: Decimal
    price_locked: bool
    updated: bool
    matches: bool
