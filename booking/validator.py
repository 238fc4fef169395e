import logging
from typing import Any, Awaitable, Callable, Optional

from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from common.errors import ValidationError
from common.validation import Rule, is_string, required, run_rules

from .constants import EMAIL_PATTERN

logger = logging.getLogger(__name__)

EventLookup = Callable[[Any], Awaitable[bool]]


def _valid_email(value) -> bool:
    return EMAIL_PATTERN.match(value) is not None


BOOKING_RULES = [
    Rule("event_id", required, "Event ID is required"),
    Rule("email", required, "Email is required"),
    Rule("email", is_string, "Email must be a string"),
    Rule("email", _valid_email, "invalid email"),
]


async def validate_booking(
    previous: Optional[dict], candidate: dict, event_exists: EventLookup
) -> dict:
    """Validate a booking write and return the record to persist.

    The referenced event is looked up only when ``event_id`` is new or
    changed. The referenced event is never modified.
    """
    record = dict(candidate)
    if isinstance(record.get("email"), str):
        record["email"] = record["email"].strip().lower()

    violations = run_rules(record, BOOKING_RULES)
    if violations:
        raise ValidationError(violations)

    event_id = record["event_id"]
    if previous is None or str(previous.get("event_id")) != str(event_id):
        try:
            exists = await event_exists(event_id)
        except (InvalidId, TypeError, PyMongoError) as e:
            logger.info("Event lookup for %r failed: %s", event_id, e)
            raise ValidationError.single(
                "event_id", "Invalid event ID format or database error"
            ) from e
        if not exists:
            raise ValidationError.single(
                "event_id", f"Event with ID {event_id} does not exist"
            )

    return record
