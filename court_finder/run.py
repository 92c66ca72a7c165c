import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List
from zoneinfo import ZoneInfo

from court_finder import config
from court_finder.availability import compute_day_windows, operating_hours
from court_finder.differ import has_new_availability, new_windows
from court_finder.errors import CourtFinderError
from court_finder.models import CourtId, DaySnapshot, MultiDaySnapshot
from court_finder.notifier import Notifier
from court_finder.persist import JsonSnapshotStore
from court_finder.slots import filter_short_windows, filter_snapshot, has_availability, to_court_availability
from court_finder.sources import ReservationSource

logger = logging.getLogger(__name__)


class CheckStatus(str, Enum):
    SENT = "sent"
    NO_AVAILABLE_SLOTS = "no_available_slots"
    NO_NEW_AVAILABILITY = "no_new_availability"
    DELIVERY_FAILED = "delivery_failed"
    FAILED = "failed"


@dataclass
class CheckOutcome:
    status: CheckStatus
    message: str
    snapshot: MultiDaySnapshot | None = None
    new_windows: Dict[int, Dict[str, List[str]]] = field(default_factory=dict)


class AvailabilityChecker:
    """Computes court availability for the coming days and notifies subscribers about new windows.

    The reservation source, snapshot store and notifier are supplied by the caller, which owns
    their lifecycle.
    """

    def __init__(
        self,
        source: ReservationSource,
        store: JsonSnapshotStore,
        notifier: Notifier,
        tz: ZoneInfo,
        days: int = config.DAYS_AHEAD,
        min_duration_minutes: int = config.MIN_DURATION_MINUTES,
        court_ids: Iterable[CourtId] = config.COURT_IDS,
    ):
        self.source = source
        self.store = store
        self.notifier = notifier
        self.tz = tz
        self.days = days
        self.min_duration_minutes = min_duration_minutes
        self.court_ids = list(court_ids)

    def target_dates(self) -> List[date]:
        today = datetime.now(self.tz).date()
        return [today + timedelta(days=offset) for offset in range(self.days)]

    def compute_day(self, day: date) -> DaySnapshot:
        """Fetches reservations for one date and returns the unfiltered availability per court."""
        busy = self.source.fetch_busy_intervals(day)
        hours = operating_hours(day, self.tz)
        return to_court_availability(compute_day_windows(busy, hours, self.court_ids), self.tz)

    def day_snapshot(self, days_later: int = 0, include_short: bool = False) -> DaySnapshot:
        day = datetime.now(self.tz).date() + timedelta(days=days_later)
        courts = self.compute_day(day)
        if include_short:
            return courts
        return filter_short_windows(courts, self.min_duration_minutes)

    def collect_snapshot(self, dates: List[date]) -> MultiDaySnapshot:
        """Computes every date concurrently; any failed date fails the whole snapshot."""
        with ThreadPoolExecutor(max_workers=max(len(dates), 1)) as executor:
            futures = [executor.submit(self.compute_day, day) for day in dates]
            snapshot = {offset: future.result() for offset, future in enumerate(futures)}
        return filter_snapshot(snapshot, self.min_duration_minutes)

    def check(self) -> CheckOutcome:
        dates = self.target_dates()
        logger.info(f"Checking availability for {len(dates)} days: {', '.join(d.isoformat() for d in dates)}")

        try:
            snapshot = self.collect_snapshot(dates)
        except CourtFinderError as e:
            logger.error(f"Error checking courts: {e}")
            return CheckOutcome(status=CheckStatus.FAILED, message=f"Failed to check courts: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error checking courts: {e}")
            return CheckOutcome(status=CheckStatus.FAILED, message=f"Failed to check courts: {e}")

        if not has_availability(snapshot):
            self.store.save(snapshot, dates, flagged_for_notification=False)
            return CheckOutcome(status=CheckStatus.NO_AVAILABLE_SLOTS, message="No available slots.", snapshot=snapshot)

        last = self.store.load(dates)
        if not has_new_availability(snapshot, last):
            self.store.save(snapshot, dates, flagged_for_notification=False)
            return CheckOutcome(
                status=CheckStatus.NO_NEW_AVAILABILITY, message="No new availability.", snapshot=snapshot
            )

        fresh = new_windows(snapshot, last)
        total_new = sum(len(slots) for courts in fresh.values() for slots in courts.values())
        logger.info(f"Found {total_new} new windows across {len(fresh)} days")

        report = self.notifier.send(snapshot, dates, fresh)
        if not report.sent:
            self.store.save(snapshot, dates, flagged_for_notification=False)
            return CheckOutcome(
                status=CheckStatus.DELIVERY_FAILED, message=report.message, snapshot=snapshot, new_windows=fresh
            )

        self.store.save(snapshot, dates, flagged_for_notification=True)
        return CheckOutcome(status=CheckStatus.SENT, message=report.message, snapshot=snapshot, new_windows=fresh)
