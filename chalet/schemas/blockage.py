from datetime import datetime, date
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator


class BlockageCreate(BaseModel):
    start_date: date
    end_date: date = Field(..., description="Last blocked day (inclusive)")
    room_ids: List[str] = Field(default_factory=list, description="Empty means every room")
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator('reason', mode='before')
    @classmethod
    def sanitize_reason(cls, v):
        if v is None:
            return v
        import re
        v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
        return v.strip()

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError('Blockage end date must not be before its start date')
        return self


class BlockageResponse(BaseModel):
    id: str
    start_date: date
    end_date: date
    room_ids: List[str]
    applies_to_all_rooms: bool
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
