from datetime import datetime, date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ChristmasPeriodCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    start_date: date
    end_date: date = Field(..., description="Last day of the period (inclusive)")

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError('Period end date must not be before its start date')
        return self


class ChristmasPeriodResponse(BaseModel):
    id: str
    name: Optional[str] = None
    start_date: date
    end_date: date
    year: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChristmasCodeCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=50)

    @field_validator('code')
    @classmethod
    def strip_code(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Access code cannot be blank")
        return v
