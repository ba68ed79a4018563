"""Date-key normalization and local-calendar arithmetic.

A date key is a ``YYYY-MM-DD`` string for a day in the *local* calendar.
Every date entering the system (completion entries, habit creation
timestamps, the "now" anchor of a statistic) goes through this module, so
that instants are always converted to the local zone before the calendar
day is read off. Reading the day of a UTC instant directly shifts
completions made late in the evening onto the next day.

``tz`` arguments are ``tzinfo`` objects; ``None`` means the system-local
zone.
"""

from __future__ import annotations

import calendar
import math
import re
from datetime import date, datetime, timedelta, tzinfo
from email.utils import parsedate_to_datetime
from typing import Any

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Numbers below this are epoch seconds, anything else epoch milliseconds.
EPOCH_MS_THRESHOLD = 1e12

_JS_TZ_NAME_RE = re.compile(r"\s*\([^)]*\)\s*$")

_FALLBACK_FORMATS = (
    "%a %b %d %Y %H:%M:%S GMT%z",  # JavaScript Date.prototype.toString
    "%a %b %d %Y",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
)


def is_date_key(value: Any) -> bool:
    return isinstance(value, str) and bool(DATE_KEY_RE.match(value))


def _day_of(dt: datetime, tz: tzinfo | None) -> date:
    """Local calendar day of a datetime. Naive values are already local."""
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.date()
    return dt.astimezone(tz).date()


def _day_of_epoch(value: int | float, tz: tzinfo | None) -> date | None:
    try:
        number = float(value)
    except OverflowError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    seconds = number if number < EPOCH_MS_THRESHOLD else number / 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz).date()
    except (OverflowError, OSError, ValueError):
        return None


def _parse_datetime_string(text: str) -> datetime | None:
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        pass

    cleaned = _JS_TZ_NAME_RE.sub("", text)
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    return None


def _day_of_string(text: str, tz: tzinfo | None) -> date | None:
    text = text.strip()
    if not text:
        return None
    if DATE_KEY_RE.match(text):
        return parse_date_key(text)
    dt = _parse_datetime_string(text)
    if dt is None:
        return None
    return _day_of(dt, tz)


def to_date_key(value: Any, tz: tzinfo | None = None) -> str | None:
    """Normalize a date-like value into a local ``YYYY-MM-DD`` key.

    Accepts date-key strings (returned unchanged), other date/time strings,
    epoch numbers in seconds or milliseconds, ``datetime`` and ``date``
    objects. Returns None for anything that cannot be read as a date;
    callers drop such entries rather than substituting today.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        if DATE_KEY_RE.match(value):
            return value
        day = _day_of_string(value, tz)
    elif isinstance(value, (int, float)):
        day = _day_of_epoch(value, tz)
    elif isinstance(value, datetime):
        day = _day_of(value, tz)
    elif isinstance(value, date):
        day = value
    else:
        return None

    if day is None:
        return None
    return day.isoformat()


def parse_date_key(key: str) -> date | None:
    """Parse a date key into a ``date``; None if it is not a real calendar day."""
    if not is_date_key(key):
        return None
    try:
        return date.fromisoformat(key)
    except ValueError:
        return None


def local_date(now: datetime | date | str, tz: tzinfo | None = None) -> date:
    """Calendar day of the ``now`` anchor in the local zone."""
    if isinstance(now, datetime):
        return _day_of(now, tz)
    if isinstance(now, date):
        return now
    key = to_date_key(now, tz)
    day = parse_date_key(key) if key else None
    if day is None:
        raise ValueError(f"Invalid anchor date: {now!r}")
    return day


def shift_days(key: str, days: int) -> str:
    """Move a date key by ``days`` calendar days (negative goes back)."""
    day = parse_date_key(key)
    if day is None:
        raise ValueError(f"Invalid date key: {key!r}")
    return (day + timedelta(days=days)).isoformat()


def date_keys_back(end: date, count: int) -> list[str]:
    """The ``count`` days ending at ``end`` (inclusive), oldest first."""
    return [(end - timedelta(days=i)).isoformat() for i in range(count - 1, -1, -1)]


def month_date_keys(year: int, month: int) -> list[str]:
    """Every day key of a calendar month, day 1 first."""
    _, last = calendar.monthrange(year, month)
    return [date(year, month, d).isoformat() for d in range(1, last + 1)]


def days_between(start: date, end: date) -> int:
    """Inclusive number of calendar days from ``start`` to ``end``."""
    return (end - start).days + 1
