import json
import logging
import os
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Sequence

from pydantic import ValidationError

from court_finder import config
from court_finder.models import MultiDaySnapshot, SnapshotEntry

logger = logging.getLogger(__name__)


class JsonSnapshotStore:
    """Keeps computed snapshots in a JSON file, one entry per calendar date and check.

    Entries that were sent to subscribers carry `for_email = True`; the most recent of those per
    date is what the next check compares against.
    """

    def __init__(self, path: str = config.HISTORY_FILE, max_age_hours: int = config.SNAPSHOT_MAX_AGE_HOURS):
        self.path = path
        self.max_age = timedelta(hours=max_age_hours)

    def ensure_data_dir(self):
        """Ensures the data directory exists."""
        data_dir = os.path.dirname(self.path)
        if data_dir and not os.path.exists(data_dir):
            os.makedirs(data_dir)

    def read_entries(self) -> List[SnapshotEntry]:
        """Loads all stored entries. A missing or unreadable file yields an empty history."""
        if not os.path.exists(self.path):
            logger.info("No history file found. Starting fresh.")
            return []
        try:
            with open(self.path, "r") as f:
                data: Dict = json.load(f)
            if "last_updated" not in data or "entries" not in data:
                logger.warning("History file has unexpected format. Starting fresh.")
                return []
            logger.debug(f"Loaded history from cache, last updated: {data['last_updated']}")
            return [SnapshotEntry.model_validate(entry) for entry in data["entries"]]
        except (json.JSONDecodeError, IOError, ValidationError):
            logger.warning("Failed to load history file. Starting fresh.")
            return []

    def write_entries(self, entries: List[SnapshotEntry]):
        self.ensure_data_dir()
        try:
            data = {
                "last_updated": datetime.now(timezone.utc).isoformat(),
                "entries": [entry.model_dump(mode="json") for entry in entries],
            }
            with open(self.path, "w") as f:
                json.dump(data, f, indent=2)
            logger.info(f"Saved history to {self.path} on {data['last_updated']}")
        except IOError as e:
            logger.error(f"Failed to save history: {e}")

    def last_notified(self, dates: Sequence[date]) -> List[SnapshotEntry]:
        """Returns the most recent notified entry per date, within the freshness window, in date order."""
        cutoff = datetime.now(timezone.utc) - self.max_age
        latest: Dict[str, SnapshotEntry] = {}
        for entry in self.read_entries():
            if not entry.for_email or entry.created_at < cutoff:
                continue
            current = latest.get(entry.date_for)
            if current is None or entry.created_at > current.created_at:
                latest[entry.date_for] = entry
        return [latest[d.isoformat()] for d in dates if d.isoformat() in latest]

    def load(self, dates: Sequence[date]) -> MultiDaySnapshot | None:
        """Loads the last notified snapshot for `dates`, keyed by position in `dates`."""
        entries = {entry.date_for: entry for entry in self.last_notified(dates)}
        snapshot = {
            offset: entries[d.isoformat()].court_list for offset, d in enumerate(dates) if d.isoformat() in entries
        }
        return snapshot or None

    def save(self, snapshot: MultiDaySnapshot, dates: Sequence[date], flagged_for_notification: bool):
        """Appends one entry per day of the snapshot and prunes entries for dates already past."""
        entries = self.read_entries()
        oldest = min(dates).isoformat() if dates else None
        if oldest:
            entries = [entry for entry in entries if entry.date_for >= oldest]

        next_id = max((entry.id for entry in entries), default=0) + 1
        created_at = datetime.now(timezone.utc)
        for offset, court_list in sorted(snapshot.items()):
            entries.append(
                SnapshotEntry(
                    id=next_id,
                    date_for=dates[offset].isoformat(),
                    created_at=created_at,
                    for_email=flagged_for_notification,
                    court_list=court_list,
                )
            )
            next_id += 1
        self.write_entries(entries)

    def mark_for_notification(self, entry_id: int) -> SnapshotEntry | None:
        """Flags an existing entry as sent. Returns the updated entry, or None if it does not exist."""
        entries = self.read_entries()
        for index, entry in enumerate(entries):
            if entry.id == entry_id:
                entries[index] = entry.model_copy(update={"for_email": True})
                self.write_entries(entries)
                return entries[index]
        logger.warning(f"No history entry with id {entry_id}")
        return None
