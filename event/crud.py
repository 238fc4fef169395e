import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from common.errors import ConstraintViolationError

from .constants import EVENTS_COLLECTION
from .validator import validate_and_normalize_event

logger = logging.getLogger(__name__)


async def ensure_event_indexes(db):
    events = db[EVENTS_COLLECTION]
    await events.create_index([("slug", ASCENDING)], unique=True, name="uniq_slug")
    await events.create_index([("date", ASCENDING), ("mode", ASCENDING)], name="date_mode")


async def _write(db, record: dict, replace_id: Optional[ObjectId] = None) -> dict:
    events = db[EVENTS_COLLECTION]
    try:
        if replace_id is None:
            result = await events.insert_one(record)
            record["_id"] = result.inserted_id
        else:
            await events.replace_one({"_id": replace_id}, record)
            record["_id"] = replace_id
    except DuplicateKeyError as e:
        logger.info("Event slug %r already taken", record.get("slug"))
        raise ConstraintViolationError.from_duplicate_key(e) from e
    return record


async def create_event(db, event: dict) -> dict:
    record = validate_and_normalize_event(None, event)
    now = datetime.now(timezone.utc)
    record["created_at"] = now
    record["updated_at"] = now
    record = await _write(db, record)
    logger.info("Created event %s (%s)", record["_id"], record["slug"])
    return record


async def update_event(db, event_id: str, changes: dict) -> Optional[dict]:
    """Apply ``changes`` to a stored event through the full validator.

    Returns ``None`` when the event does not exist.
    """
    previous = await get_event_by_id(db, event_id)
    if previous is None:
        return None

    candidate = {**previous, **changes}
    candidate.pop("_id")
    record = validate_and_normalize_event(previous, candidate)
    record["created_at"] = previous.get("created_at")
    record["updated_at"] = datetime.now(timezone.utc)
    record = await _write(db, record, replace_id=previous["_id"])
    logger.info("Updated event %s", record["_id"])
    return record


async def get_event_by_id(db, event_id: str) -> Optional[dict]:
    return await db[EVENTS_COLLECTION].find_one({"_id": ObjectId(event_id)})


async def get_event_by_slug(db, slug: str) -> Optional[dict]:
    return await db[EVENTS_COLLECTION].find_one({"slug": slug.lower()})


async def get_events(db, skip: int = 0, limit: int = 10, mode: Optional[str] = None):
    query = {"mode": mode} if mode else {}
    cursor = (
        db[EVENTS_COLLECTION]
        .find(query)
        .sort([("date", ASCENDING), ("time", ASCENDING)])
        .skip(skip)
        .limit(limit)
    )
    return await cursor.to_list(length=None)


async def event_exists(db, event_id) -> bool:
    """Raises ``bson.errors.InvalidId`` for a malformed identifier."""
    if not isinstance(event_id, ObjectId):
        event_id = ObjectId(event_id)
    found = await db[EVENTS_COLLECTION].find_one({"_id": event_id}, {"_id": 1})
    return found is not None
