"""Integer date keys (``yyyymmdd``) and the raw date text used by the exports."""

from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import List, NamedTuple, Optional

logger = logging.getLogger("wlheat.dates")

# Upper bound on the span of a range that is expanded into literal dates.
MAX_ENUMERATED_DAYS = 370

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_US_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


class CalendarDate(NamedTuple):
    """Year/month/day triple. Not checked against the real calendar."""

    year: int
    month: int
    day: int

    def iso(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def text(self) -> str:
        return f"{self.month}/{self.day}/{self.year}"

    def to_date(self) -> Optional[date]:
        """Return a :class:`datetime.date`, or ``None`` for days like Feb 31."""
        try:
            return date(self.year, self.month, self.day)
        except ValueError:
            return None


def _valid_parts(year: int, month: int, day: int) -> bool:
    return 1 <= year <= 9999 and 1 <= month <= 12 and 1 <= day <= 31


def encode(text) -> Optional[int]:
    """Convert ``YYYY-MM-DD`` or ``M/D/YYYY`` text to a date key.

    Returns ``None`` for anything that is not a string in one of those forms,
    or whose month or day is out of range. Never raises.
    """
    if not isinstance(text, str):
        return None
    value = text.strip()
    m = _ISO_RE.match(value)
    if m:
        year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    else:
        m = _US_RE.match(value)
        if not m:
            return None
        month, day, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if not _valid_parts(year, month, day):
        return None
    return year * 10000 + month * 100 + day


def is_valid_key(key) -> bool:
    if isinstance(key, bool) or not isinstance(key, int):
        return False
    year, rest = divmod(key, 10000)
    month, day = divmod(rest, 100)
    return _valid_parts(year, month, day)


def decode(key: int) -> CalendarDate:
    if not is_valid_key(key):
        raise ValueError(f"not a date key: {key!r}")
    year, rest = divmod(key, 10000)
    month, day = divmod(rest, 100)
    return CalendarDate(year, month, day)


def key_from_date(value: date) -> int:
    return value.year * 10000 + value.month * 100 + value.day


def format_date_text(value: date) -> str:
    """Raw export form: month/day/year without zero padding."""
    return f"{value.month}/{value.day}/{value.year}"


def span_days(start_key: int, end_key: int) -> Optional[int]:
    """Absolute number of days between two keys, ``None`` if either is not a real day."""
    if not (is_valid_key(start_key) and is_valid_key(end_key)):
        return None
    start = decode(start_key).to_date()
    end = decode(end_key).to_date()
    if start is None or end is None:
        return None
    return abs((end - start).days)


def enumerate_range(
    start_key: int,
    end_key: int,
    max_days: int = MAX_ENUMERATED_DAYS,
) -> List[str]:
    """List every day from ``start_key`` to ``end_key`` inclusive as raw date text.

    Reversed bounds are swapped. An empty list is returned, with a warning,
    when a bound is not a real calendar day or the span exceeds ``max_days``.
    """
    span = span_days(start_key, end_key)
    if span is None:
        logger.warning("Cannot enumerate dates between %s and %s: invalid bound", start_key, end_key)
        return []
    if span > max_days:
        logger.warning(
            "Date range %s..%s spans %d days (limit %d); too large for literal enumeration",
            start_key,
            end_key,
            span,
            max_days,
        )
        return []

    first = decode(min(start_key, end_key)).to_date()
    return [format_date_text(first + timedelta(days=offset)) for offset in range(span + 1)]


__all__ = [
    "MAX_ENUMERATED_DAYS",
    "CalendarDate",
    "decode",
    "encode",
    "enumerate_range",
    "format_date_text",
    "is_valid_key",
    "key_from_date",
    "span_days",
]
