"""
Tests for event storage: timestamps, slug uniqueness and validated updates
"""

import pytest
import pytest_asyncio
from bson import ObjectId

from common.errors import ConstraintViolationError, ValidationError
from event.constants import EVENTS_COLLECTION
from event.crud import (
    create_event,
    ensure_event_indexes,
    event_exists,
    get_event_by_id,
    get_event_by_slug,
    get_events,
    update_event,
)


@pytest_asyncio.fixture
async def indexed_db(db):
    await ensure_event_indexes(db)
    return db


@pytest.mark.asyncio
async def test_indexes_declared(indexed_db):
    indexes = indexed_db[EVENTS_COLLECTION].indexes
    assert indexes["uniq_slug"] == (["slug"], True)
    assert indexes["date_mode"] == (["date", "mode"], False)


@pytest.mark.asyncio
async def test_create_event_stores_normalized_record(indexed_db, event_data):
    created = await create_event(indexed_db, event_data(date="October 15, 2023"))

    stored = await get_event_by_id(indexed_db, str(created["_id"]))
    assert stored["slug"] == "react-conf-2023"
    assert stored["date"] == "2023-10-15"
    assert stored["time"] == "09:00"
    assert stored["created_at"] == stored["updated_at"]


@pytest.mark.asyncio
async def test_invalid_event_is_not_written(indexed_db, event_data):
    with pytest.raises(ValidationError):
        await create_event(indexed_db, event_data(tags=[]))
    assert indexed_db[EVENTS_COLLECTION].documents == []


@pytest.mark.asyncio
async def test_slug_collision_is_a_constraint_violation(indexed_db, event_data):
    await create_event(indexed_db, event_data(title="React Conf 2023"))

    with pytest.raises(ConstraintViolationError) as exc_info:
        await create_event(indexed_db, event_data(title="React Conf: 2023!"))

    assert exc_info.value.index == "uniq_slug"
    assert exc_info.value.key == {"slug": "react-conf-2023"}
    assert len(indexed_db[EVENTS_COLLECTION].documents) == 1


@pytest.mark.asyncio
async def test_get_event_by_slug(indexed_db, event_data):
    await create_event(indexed_db, event_data())
    assert (await get_event_by_slug(indexed_db, "React-Conf-2023"))["title"] == "React Conf 2023"
    assert await get_event_by_slug(indexed_db, "missing") is None


@pytest.mark.asyncio
async def test_update_event_rederives_slug(indexed_db, event_data):
    created = await create_event(indexed_db, event_data())

    updated = await update_event(
        indexed_db, str(created["_id"]), {"title": "React Conf 2024", "time": "1:15 PM"}
    )

    assert updated["_id"] == created["_id"]
    assert updated["slug"] == "react-conf-2024"
    assert updated["time"] == "13:15"
    assert updated["created_at"] == created["created_at"]
    assert updated["updated_at"] >= created["updated_at"]
    assert await get_event_by_slug(indexed_db, "react-conf-2023") is None


@pytest.mark.asyncio
async def test_update_event_rejects_invalid_change(indexed_db, event_data):
    created = await create_event(indexed_db, event_data())

    with pytest.raises(ValidationError):
        await update_event(indexed_db, str(created["_id"]), {"mode": "remote"})

    stored = await get_event_by_id(indexed_db, str(created["_id"]))
    assert stored["mode"] == "offline"


@pytest.mark.asyncio
async def test_update_into_existing_slug_is_rejected(indexed_db, event_data):
    await create_event(indexed_db, event_data(title="TypeScript Summit"))
    created = await create_event(indexed_db, event_data())

    with pytest.raises(ConstraintViolationError):
        await update_event(indexed_db, str(created["_id"]), {"title": "TypeScript  Summit"})


@pytest.mark.asyncio
async def test_update_missing_event_returns_none(indexed_db):
    assert await update_event(indexed_db, str(ObjectId()), {"title": "x"}) is None


@pytest.mark.asyncio
async def test_get_events_ordered_and_filtered(indexed_db, event_data):
    await create_event(indexed_db, event_data(title="Late", date="2024-01-15", mode="online"))
    await create_event(indexed_db, event_data(title="Early", date="2023-10-15"))
    await create_event(indexed_db, event_data(title="Middle", date="2023-11-20", mode="online"))

    events = await get_events(indexed_db)
    assert [e["title"] for e in events] == ["Early", "Middle", "Late"]

    online = await get_events(indexed_db, mode="online")
    assert [e["title"] for e in online] == ["Middle", "Late"]

    page = await get_events(indexed_db, skip=1, limit=1)
    assert [e["title"] for e in page] == ["Middle"]


@pytest.mark.asyncio
async def test_event_exists(indexed_db, event_data):
    created = await create_event(indexed_db, event_data())
    assert await event_exists(indexed_db, str(created["_id"])) is True
    assert await event_exists(indexed_db, ObjectId()) is False
