from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query

from common.database import get_mongo_db
from common.helpers import db_connection_handler, with_string_id

from . import crud
from .models import BookingCount, BookingCreate, BookingResponse

booking = APIRouter()


@booking.post(
    "/events/{event_id}/bookings", response_model=BookingResponse, status_code=201
)
@db_connection_handler
async def create_booking(
    event_id: str, booking: BookingCreate, db=Depends(get_mongo_db)
):
    """Book a seat at an event for an email address."""
    created = await crud.create_booking(
        db, {"event_id": event_id, "email": booking.email}
    )
    return with_string_id(created)


@booking.get("/events/{event_id}/bookings", response_model=List[BookingResponse])
@db_connection_handler
async def get_bookings_by_event(
    event_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=0),
    db=Depends(get_mongo_db),
):
    """Get the bookings of an event, newest first."""
    if not ObjectId.is_valid(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    bookings = await crud.get_bookings_by_event(db, event_id, skip=skip, limit=limit)
    return [with_string_id(b) for b in bookings]


@booking.get("/events/{event_id}/bookings/count", response_model=BookingCount)
@db_connection_handler
async def count_bookings(event_id: str, db=Depends(get_mongo_db)):
    if not ObjectId.is_valid(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return BookingCount(event_id=event_id, bookings=await crud.count_bookings(db, event_id))


@booking.get("/bookings", response_model=List[BookingResponse])
@db_connection_handler
async def get_bookings_by_email(email: str, db=Depends(get_mongo_db)):
    """Get every booking made with an email address."""
    bookings = await crud.get_bookings_by_email(db, email)
    return [with_string_id(b) for b in bookings]
