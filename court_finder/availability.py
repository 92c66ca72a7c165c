import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Tuple
from zoneinfo import ZoneInfo

from court_finder import config
from court_finder.errors import InvalidRangeError
from court_finder.intervals import duration_minutes, merge_intervals, parse_clock_time
from court_finder.models import AvailableWindow, BusyInterval, CourtId, OperatingHours, normalize_court_id

logger = logging.getLogger(__name__)


def round_up_to_boundary(dt: datetime, minutes: int = config.NOW_ROUNDING_MINUTES) -> datetime:
    """Rounds dt up to the next multiple of `minutes` past the hour. Boundaries map to themselves."""
    floored = dt.replace(minute=dt.minute - dt.minute % minutes, second=0, microsecond=0)
    if floored < dt:
        floored += timedelta(minutes=minutes)
    return floored


def get_hours_for(day: date) -> Tuple[str, str]:
    """Returns the configured (open, close) clock strings; weekends have their own schedule."""
    return config.WEEKEND_HOURS if day.weekday() >= 5 else config.WEEKDAY_HOURS


def operating_hours(day: date, tz: ZoneInfo, now: datetime | None = None) -> OperatingHours:
    """Builds the bookable window for a date. Same-day queries get a clamp at the next half hour."""
    open_str, close_str = get_hours_for(day)
    open_dt = parse_clock_time(open_str, day, tz)
    close_dt = parse_clock_time(close_str, day, tz)
    if close_dt <= open_dt:
        # "12:00 AM" closing means midnight at the end of the day
        close_dt += timedelta(days=1)

    now_local = (now or datetime.now(tz)).astimezone(tz)
    now_clamp = round_up_to_boundary(now_local) if now_local.date() == day else None

    return OperatingHours(day=day, open=open_dt, close=close_dt, now_clamp=now_clamp)


def _valid_intervals(busy: Iterable[BusyInterval]) -> List[Tuple[datetime, datetime]]:
    intervals = []
    for interval in busy:
        try:
            duration_minutes(interval.start, interval.end)
        except InvalidRangeError as e:
            logger.warning(f"Dropping busy interval for court {interval.court_id}: {e}")
            continue
        intervals.append((interval.start, interval.end))
    return intervals


def compute_court_windows(
    court_id: CourtId, busy: Iterable[BusyInterval], hours: OperatingHours
) -> List[AvailableWindow]:
    """Computes the free windows of one court as the complement of its busy intervals.

    Busy intervals may be unsorted, overlapping or touching. The result is ordered by start,
    non-overlapping, and lies within [max(open, now_clamp), close].
    """
    merged = merge_intervals(_valid_intervals(busy))

    effective_start = max(hours.open, hours.now_clamp) if hours.now_clamp else hours.open
    close = hours.close
    if effective_start >= close:
        return []

    windows: List[AvailableWindow] = []
    cursor = effective_start
    for busy_start, busy_end in merged:
        if cursor >= close:
            break
        if busy_end <= cursor or busy_start >= close:
            continue
        if cursor < busy_start:
            windows.append(AvailableWindow(court_id=court_id, start=cursor, end=min(busy_start, close)))
        cursor = max(cursor, busy_end)

    if cursor < close:
        windows.append(AvailableWindow(court_id=court_id, start=cursor, end=close))

    return windows


def compute_day_windows(
    busy: Iterable[BusyInterval],
    hours: OperatingHours,
    court_ids: Iterable[CourtId] = (),
) -> Dict[CourtId, List[AvailableWindow]]:
    """Computes free windows for every court seen in `busy` plus every court in `court_ids`."""
    busy_by_court: Dict[CourtId, List[BusyInterval]] = {normalize_court_id(cid): [] for cid in court_ids}
    for interval in busy:
        busy_by_court.setdefault(interval.court_id, []).append(interval)

    windows_by_court = {
        court_id: compute_court_windows(court_id, intervals, hours)
        for court_id, intervals in busy_by_court.items()
    }
    logger.debug(
        f"Computed windows for {hours.day.isoformat()}: "
        f"{sum(len(w) for w in windows_by_court.values())} across {len(windows_by_court)} courts"
    )
    return windows_by_court
