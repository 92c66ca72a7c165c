import re
from datetime import date, timedelta
from typing import Dict, List
from zoneinfo import ZoneInfo

from court_finder import config
from court_finder.intervals import format_time_range, parse_time_range
from court_finder.models import AvailableWindow, CourtAvailability, CourtId, DaySnapshot, MultiDaySnapshot

# Durations are measured on the wall clock of an arbitrary fixed day.
_REFERENCE_DATE = date(2000, 1, 3)
_WALL_CLOCK = ZoneInfo("UTC")


def court_label(court_id: CourtId) -> str:
    """Maps a court identifier to its display name."""
    if isinstance(court_id, int) or str(court_id).isdigit():
        cid = int(court_id)
        return config.COURT_MAPPING.get(cid, f"Court #{cid}")
    return str(court_id)


def court_number(label: str) -> int | None:
    """Extracts the numeric court id from a label such as "Court #3"."""
    digits = re.sub(r"\D", "", label)
    return int(digits) if digits else None


def _court_sort_key(court: CourtAvailability):
    number = court_number(court.court)
    return (number is None, number or 0, court.court)


def to_court_availability(windows_by_court: Dict[CourtId, List[AvailableWindow]], tz: ZoneInfo) -> DaySnapshot:
    """Formats free windows per court, ordered by numeric court id."""
    courts = [
        CourtAvailability(
            court=court_label(court_id),
            available=[format_time_range(w.start, w.end, tz) for w in windows],
        )
        for court_id, windows in windows_by_court.items()
    ]
    return sorted(courts, key=_court_sort_key)


def window_minutes(time_range: str) -> float:
    """Length of a formatted "<start> to <end>" range; an end before the start wraps past midnight."""
    start, end = parse_time_range(time_range, _REFERENCE_DATE, _WALL_CLOCK)
    if end <= start:
        end += timedelta(days=1)
    return (end - start).total_seconds() / 60


def filter_short_windows(day: DaySnapshot, min_duration_minutes: int = config.MIN_DURATION_MINUTES) -> DaySnapshot:
    """Drops windows that are not strictly longer than min_duration_minutes. Order is preserved."""
    return [
        CourtAvailability(
            court=court.court,
            available=[slot for slot in court.available if window_minutes(slot) > min_duration_minutes],
        )
        for court in day
    ]


def filter_snapshot(
    snapshot: MultiDaySnapshot, min_duration_minutes: int = config.MIN_DURATION_MINUTES
) -> MultiDaySnapshot:
    return {offset: filter_short_windows(day, min_duration_minutes) for offset, day in snapshot.items()}


def has_availability(snapshot: MultiDaySnapshot) -> bool:
    """True if any court on any day has at least one window."""
    return any(court.available for day in snapshot.values() for court in day)
