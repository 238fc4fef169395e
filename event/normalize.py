"""Derived and canonical forms of event fields.

All functions here are pure and raise ``ValidationError`` on input they
cannot normalize.
"""

import re
from datetime import date, datetime, timezone

from common.errors import ValidationError

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")

_MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

# "October 15, 2023", "Sun, Oct 15 2023", "Oct. 15th, 2023"
_MONTH_FIRST_RE = re.compile(
    r"^(?:[a-z]+,?\s+)?(?P<mon>[a-z]{3,9})\.?\s+(?P<day>\d{1,2})(?:st|nd|rd|th)?,?\s+(?P<year>\d{4})$",
    re.IGNORECASE | re.ASCII,
)
# "15 October 2023", "Sunday, 15 Oct 2023"
_DAY_FIRST_RE = re.compile(
    r"^(?:[a-z]+,?\s+)?(?P<day>\d{1,2})(?:st|nd|rd|th)?\s+(?P<mon>[a-z]{3,9})\.?,?\s+(?P<year>\d{4})$",
    re.IGNORECASE | re.ASCII,
)
# "2023/10/15"
_SLASH_YMD_RE = re.compile(r"^(?P<year>\d{4})/(?P<mon>\d{1,2})/(?P<day>\d{1,2})$", re.ASCII)
# "10/15/2023" (US order)
_SLASH_MDY_RE = re.compile(r"^(?P<mon>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{4})$", re.ASCII)

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(\s*(AM|PM))?$", re.IGNORECASE | re.ASCII)


def generate_slug(title: str) -> str:
    """Lowercase, hyphen-separated, URL-safe identifier for a title."""
    slug = _SLUG_STRIP_RE.sub("", title.lower().strip())
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    return slug.strip("-")


def _month_number(name: str):
    return _MONTHS.get(name.lower())


def _parse_calendar_date(value: str):
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = None
    if parsed is not None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()

    for pattern in (_MONTH_FIRST_RE, _DAY_FIRST_RE):
        m = pattern.match(value)
        if m:
            month = _month_number(m.group("mon"))
            if month is None:
                return None
            return date(int(m.group("year")), month, int(m.group("day")))

    for pattern in (_SLASH_YMD_RE, _SLASH_MDY_RE):
        m = pattern.match(value)
        if m:
            return date(int(m.group("year")), int(m.group("mon")), int(m.group("day")))

    return None


def normalize_date(value: str) -> str:
    """Return the calendar day in ``value`` as ``YYYY-MM-DD``.

    Accepted inputs are ISO-8601 dates and datetimes (offsets are converted
    to UTC first), English month-name dates such as ``October 15, 2023`` or
    ``15 Oct 2023``, ``YYYY/MM/DD`` and US-ordered ``MM/DD/YYYY``. Month
    names are matched against a fixed table, independent of the locale.
    """
    try:
        parsed = _parse_calendar_date(value.strip())
    except ValueError:
        # date() rejected an impossible day such as February 30
        parsed = None
    if parsed is None:
        raise ValidationError.single("date", "invalid date format")
    return parsed.isoformat()


def normalize_time(value: str) -> str:
    """Convert ``H[H]:MM`` with an optional AM/PM suffix to 24-hour ``HH:MM``."""
    m = _TIME_RE.match(value.strip())
    if not m:
        raise ValidationError.single(
            "time", "invalid time format, use HH:MM or HH:MM AM/PM"
        )

    hours = int(m.group(1))
    minutes = int(m.group(2))
    period = m.group(4)

    if period:
        period = period.upper()
        if period == "PM" and hours != 12:
            hours += 12
        if period == "AM" and hours == 12:
            hours = 0

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError.single("time", "invalid time value")

    return f"{hours:02d}:{minutes:02d}"
