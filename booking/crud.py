import logging
from datetime import datetime, timezone
from functools import partial
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from common.errors import ConstraintViolationError
from event.crud import event_exists

from .constants import BOOKINGS_COLLECTION, UNIQUE_EVENT_EMAIL_INDEX
from .validator import validate_booking

logger = logging.getLogger(__name__)


async def ensure_booking_indexes(db):
    bookings = db[BOOKINGS_COLLECTION]
    await bookings.create_index([("event_id", ASCENDING)], name="event_id")
    await bookings.create_index(
        [("event_id", ASCENDING), ("created_at", DESCENDING)], name="event_id_created_at"
    )
    await bookings.create_index([("email", ASCENDING)], name="email")
    await bookings.create_index(
        [("event_id", ASCENDING), ("email", ASCENDING)],
        unique=True,
        name=UNIQUE_EVENT_EMAIL_INDEX,
    )


async def create_booking(db, booking: dict) -> dict:
    record = await validate_booking(None, booking, partial(event_exists, db))
    record["event_id"] = ObjectId(record["event_id"])
    now = datetime.now(timezone.utc)
    record["created_at"] = now
    record["updated_at"] = now
    try:
        result = await db[BOOKINGS_COLLECTION].insert_one(record)
    except DuplicateKeyError as e:
        logger.info("Duplicate booking for %s on event %s", record["email"], record["event_id"])
        raise ConstraintViolationError.from_duplicate_key(e) from e
    record["_id"] = result.inserted_id
    logger.info("Created booking %s for event %s", record["_id"], record["event_id"])
    return record


async def update_booking(db, booking_id: str, changes: dict) -> Optional[dict]:
    """Apply ``changes`` to a stored booking. Returns ``None`` if it does not exist."""
    bookings = db[BOOKINGS_COLLECTION]
    previous = await bookings.find_one({"_id": ObjectId(booking_id)})
    if previous is None:
        return None

    candidate = {**previous, **changes}
    candidate.pop("_id")
    record = await validate_booking(previous, candidate, partial(event_exists, db))
    record["event_id"] = ObjectId(record["event_id"])
    record["updated_at"] = datetime.now(timezone.utc)
    try:
        await bookings.replace_one({"_id": previous["_id"]}, record)
    except DuplicateKeyError as e:
        raise ConstraintViolationError.from_duplicate_key(e) from e
    record["_id"] = previous["_id"]
    return record


async def get_bookings_by_event(db, event_id: str, skip: int = 0, limit: int = 50):
    cursor = (
        db[BOOKINGS_COLLECTION]
        .find({"event_id": ObjectId(event_id)})
        .sort([("created_at", DESCENDING)])
        .skip(skip)
        .limit(limit)
    )
    return await cursor.to_list(length=None)


async def get_bookings_by_email(db, email: str):
    cursor = db[BOOKINGS_COLLECTION].find({"email": email.strip().lower()})
    return await cursor.to_list(length=None)


async def count_bookings(db, event_id: str) -> int:
    return await db[BOOKINGS_COLLECTION].count_documents({"event_id": ObjectId(event_id)})
