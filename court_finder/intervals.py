import re
from datetime import date, datetime, time
from typing import Iterable, List, Tuple
from zoneinfo import ZoneInfo

from court_finder.errors import InvalidRangeError, ParseError

Interval = Tuple[datetime, datetime]

CLOCK_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")
RANGE_SEPARATOR = " to "


def parse_clock_time(text: str, reference_date: date, tz: ZoneInfo) -> datetime:
    """Parses a 12-hour clock string like "9:30 PM" into an aware datetime on reference_date."""
    match = CLOCK_TIME_PATTERN.match(text or "")
    if not match:
        raise ParseError(f"Invalid time format: {text!r}")

    hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hours <= 12 or not 0 <= minutes <= 59:
        raise ParseError(f"Time out of range: {text!r}")

    if period == "PM" and hours != 12:
        hours += 12
    if period == "AM" and hours == 12:
        hours = 0
    return datetime.combine(reference_date, time(hours, minutes), tzinfo=tz)


def format_clock_time(dt: datetime, tz: ZoneInfo) -> str:
    """Formats a timestamp as "H:MM AM|PM" in the facility timezone."""
    local = dt.astimezone(tz)
    hour = local.hour % 12 or 12
    period = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {period}"


def format_time_range(start: datetime, end: datetime, tz: ZoneInfo) -> str:
    return f"{format_clock_time(start, tz)}{RANGE_SEPARATOR}{format_clock_time(end, tz)}"


def parse_time_range(text: str, reference_date: date, tz: ZoneInfo) -> Interval:
    """Splits "<start> to <end>" and parses both ends. The result is not checked for order."""
    parts = text.split(RANGE_SEPARATOR)
    if len(parts) != 2:
        raise ParseError(f"Invalid time range: {text!r}")
    return parse_clock_time(parts[0], reference_date, tz), parse_clock_time(parts[1], reference_date, tz)


def duration_minutes(start: datetime, end: datetime) -> float:
    if end <= start:
        raise InvalidRangeError(f"Interval end {end.isoformat()} is not after start {start.isoformat()}")
    return (end - start).total_seconds() / 60


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Sorts intervals by start and merges any that overlap or touch."""
    merged: List[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged
