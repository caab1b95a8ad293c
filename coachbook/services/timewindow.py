"""HH:mm and YYYY-MM-DD helpers.

Times are zero-padded 24-hour strings treated as minute offsets from midnight.
Windows are half-open: [start, end). A window whose end is not after its start
runs past midnight, so 23:30-00:30 spans minutes 1410-1470 of its date.
"""

import re
from datetime import date, datetime
from typing import Tuple

from coachbook.core.exceptions import InvalidFormat

MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_minutes(hhmm: str) -> int:
    """Convert HH:mm string to minutes since midnight."""
    match = TIME_PATTERN.match(hhmm) if isinstance(hhmm, str) else None
    if not match:
        raise InvalidFormat(hhmm, "HH:mm")
    return int(match.group(1)) * 60 + int(match.group(2))


def from_minutes(minutes: int) -> str:
    """Convert minutes since midnight to HH:mm string."""
    if isinstance(minutes, bool) or not isinstance(minutes, int) or not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidFormat(minutes, f"minutes in [0, {MINUTES_PER_DAY - 1}]")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(hhmm: str, duration: int) -> str:
    """Shift a time by ``duration`` minutes. Wraps past midnight: 23:30 + 60 -> 00:30."""
    return from_minutes((to_minutes(hhmm) + duration) % MINUTES_PER_DAY)


def wraps_midnight(hhmm: str, duration: int) -> bool:
    return to_minutes(hhmm) + duration >= MINUTES_PER_DAY


def span(start: str, end: str) -> Tuple[int, int]:
    """Absolute minute range of a window on its start date."""
    first = to_minutes(start)
    last = to_minutes(end)
    if last <= first:
        last += MINUTES_PER_DAY
    return first, last


def absolute_span(on_date: str, start: str, end: str, origin: date) -> Tuple[int, int]:
    """Minute range of a window dated ``on_date``, counted from midnight of ``origin``."""
    first, last = span(start, end)
    offset = (parse_date(on_date) - origin).days * MINUTES_PER_DAY
    return first + offset, last + offset


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Touching endpoints do not overlap."""
    a_first, a_last = span(a_start, a_end)
    b_first, b_last = span(b_start, b_end)
    return a_first < b_last and b_first < a_last


def contains(window_start: str, window_end: str, start: str, end: str) -> bool:
    window_first, window_last = span(window_start, window_end)
    first, last = span(start, end)
    return first >= window_first and last <= window_last


def parse_date(value: str) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidFormat(value, "YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidFormat(value, "YYYY-MM-DD")


def format_date(value: date) -> str:
    return value.isoformat()


def day_of_week(value: date) -> int:
    """Weekday with Sunday = 0 ... Saturday = 6."""
    return (value.weekday() + 1) % 7


def today() -> str:
    return date.today().isoformat()
