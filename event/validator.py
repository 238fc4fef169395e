from typing import Optional

from common.errors import ValidationError, Violation
from common.validation import (
    Rule,
    is_string,
    max_length,
    non_empty_list,
    one_of,
    required,
    run_rules,
    string_items,
)

from .constants import (
    DESCRIPTION_MAX_LENGTH,
    OVERVIEW_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    TRIMMED_FIELDS,
    EventMode,
)
from .normalize import generate_slug, normalize_date, normalize_time

EVENT_FIELDS = TRIMMED_FIELDS + ("date", "time", "mode", "agenda", "tags")


def _string_rules(field, label):
    return [
        Rule(field, required, f"{label} is required"),
        Rule(field, is_string, f"{label} must be a string"),
    ]


EVENT_RULES = [
    *_string_rules("title", "Title"),
    Rule("title", max_length(TITLE_MAX_LENGTH),
         f"Title cannot exceed {TITLE_MAX_LENGTH} characters"),
    *_string_rules("description", "Description"),
    Rule("description", max_length(DESCRIPTION_MAX_LENGTH),
         f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"),
    *_string_rules("overview", "Overview"),
    Rule("overview", max_length(OVERVIEW_MAX_LENGTH),
         f"Overview cannot exceed {OVERVIEW_MAX_LENGTH} characters"),
    *_string_rules("image", "Image URL"),
    *_string_rules("venue", "Venue"),
    *_string_rules("location", "Location"),
    *_string_rules("date", "Date"),
    *_string_rules("time", "Time"),
    Rule("mode", required, "Mode is required"),
    Rule("mode", one_of(EventMode.values()),
         f"Mode must be one of: {', '.join(EventMode.values())}"),
    *_string_rules("audience", "Audience"),
    Rule("agenda", required, "Agenda is required"),
    Rule("agenda", non_empty_list, "At least one agenda item is required"),
    Rule("agenda", string_items, "Agenda items must be strings"),
    *_string_rules("organizer", "Organizer"),
    Rule("tags", required, "Tags are required"),
    Rule("tags", non_empty_list, "At least one tag is required"),
    Rule("tags", string_items, "Tags must be strings"),
]


def _changed(previous: Optional[dict], candidate: dict, field: str) -> bool:
    return previous is None or previous.get(field) != candidate.get(field)


def validate_and_normalize_event(previous: Optional[dict], candidate: dict) -> dict:
    """Validate an event write and return the record to persist.

    ``previous`` is the stored event (``None`` on create). The slug is
    derived from the title when the title changed; date and time are
    canonicalized when they changed. Raises ``ValidationError`` listing
    every violation; nothing is returned for a rejected record.
    """
    record = dict(candidate)
    for field in TRIMMED_FIELDS:
        if isinstance(record.get(field), str):
            record[field] = record[field].strip()
    for field in ("agenda", "tags"):
        if isinstance(record.get(field), tuple):
            record[field] = list(record[field])

    violations = run_rules(record, EVENT_RULES)
    failed = {v.field for v in violations}

    if "title" not in failed:
        if _changed(previous, record, "title"):
            slug = generate_slug(record["title"])
            if not slug:
                violations.append(
                    Violation("title", "Title must contain at least one letter or digit")
                )
            record["slug"] = slug
        else:
            record["slug"] = previous.get("slug")

    for field, normalize in (("date", normalize_date), ("time", normalize_time)):
        if field in failed or not _changed(previous, record, field):
            continue
        try:
            record[field] = normalize(record[field])
        except ValidationError as e:
            violations.extend(e.violations)

    if violations:
        raise ValidationError(violations)
    return record
