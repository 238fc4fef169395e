from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query

from common.database import get_mongo_db
from common.helpers import db_connection_handler, with_string_id

from . import crud, models

event = APIRouter()


def _event_id_or_404(event_id: str) -> str:
    if not ObjectId.is_valid(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return event_id


@event.post("/", response_model=models.EventResponse, status_code=201)
@db_connection_handler
async def create_event(event: models.EventCreate, db=Depends(get_mongo_db)):
    """Create a new event."""
    created = await crud.create_event(db, event.model_dump())
    return with_string_id(created)


@event.get("/", response_model=List[models.EventResponse])
@db_connection_handler
async def read_events(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=0),
    mode: Optional[str] = None,
    db=Depends(get_mongo_db),
):
    """Get events ordered by date with pagination."""
    events = await crud.get_events(db, skip=skip, limit=limit, mode=mode)
    return [with_string_id(e) for e in events]


@event.get("/{slug}", response_model=models.EventResponse)
@db_connection_handler
async def read_event(slug: str, db=Depends(get_mongo_db)):
    """Get details of a specific event by its slug."""
    found = await crud.get_event_by_slug(db, slug)
    if not found:
        raise HTTPException(status_code=404, detail="Event not found")
    return with_string_id(found)


@event.put("/{event_id}", response_model=models.EventResponse)
@db_connection_handler
async def update_event(
    event_id: str, event: models.EventUpdate, db=Depends(get_mongo_db)
):
    """Update a specific event."""
    updated = await crud.update_event(
        db, _event_id_or_404(event_id), event.model_dump(exclude_unset=True)
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Event not found")
    return with_string_id(updated)
