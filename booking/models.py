from datetime import datetime

from pydantic import BaseModel


class BookingCreate(BaseModel):
    email: str


class BookingResponse(BookingCreate):
    id: str
    event_id: str
    created_at: datetime
    updated_at: datetime


class BookingCount(BaseModel):
    event_id: str
    bookings: int
