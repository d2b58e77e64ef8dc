from pydantic import BaseModel


class RoomResponse(BaseModel):
    id: str
    name: str
    tier: str
    bed_count: int

    class Config:
        from_attributes = True
