import argparse
import json
import logging
import sys
from zoneinfo import ZoneInfo

from court_finder import config
from court_finder.errors import CourtFinderError
from court_finder.notifier import create_notifier
from court_finder.persist import JsonSnapshotStore
from court_finder.run import AvailabilityChecker, CheckStatus
from court_finder.sources import create_source

# --- Logging Setup ---

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Configures logging to stderr with local time."""
    import time

    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    # Use local time instead of UTC for logging
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def parse_arguments(argv=None):
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="Find open tennis court times and notify subscribers.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    courts = subparsers.add_parser("courts", help="Print available times per court for one day as JSON.")
    courts.add_argument("--days-later", type=int, default=0, help="Day offset from today. Defaults to 0.")
    courts.add_argument(
        "--include-half-hour-slots",
        action="store_true",
        help=f"Keep windows of {config.MIN_DURATION_MINUTES} minutes or less.",
    )

    check = subparsers.add_parser("check", help="Check upcoming days and notify about new availability.")
    check.add_argument(
        "--days", type=int, default=config.DAYS_AHEAD, help=f"Number of days to check. Defaults to {config.DAYS_AHEAD}."
    )

    last = subparsers.add_parser("last-notified", help="Print the last notified snapshot per upcoming day.")
    last.add_argument(
        "--days", type=int, default=config.DAYS_AHEAD, help=f"Number of days to show. Defaults to {config.DAYS_AHEAD}."
    )

    mark = subparsers.add_parser("mark-notified", help="Flag a stored snapshot entry as sent.")
    mark.add_argument("entry_id", type=int, help="Id of the entry in the history file.")
    return parser.parse_args(argv)


def build_checker(days: int = config.DAYS_AHEAD) -> AvailabilityChecker:
    tz = ZoneInfo(config.FACILITY_TIMEZONE)
    return AvailabilityChecker(
        source=create_source(config.DATA_SOURCE, tz),
        store=JsonSnapshotStore(),
        notifier=create_notifier(config.NOTIFIER),
        tz=tz,
        days=days,
    )


def print_courts(checker: AvailabilityChecker, days_later: int, include_short: bool) -> int:
    try:
        courts = checker.day_snapshot(days_later, include_short=include_short)
    except CourtFinderError as e:
        logger.error(f"Error computing availability: {e}")
        print(json.dumps({"error": "Failed to fetch court reservations"}))
        return 1
    print(json.dumps([court.model_dump() for court in courts], indent=2))
    return 0


def print_last_notified(checker: AvailabilityChecker) -> int:
    entries = checker.store.last_notified(checker.target_dates())
    print(json.dumps([entry.model_dump(mode="json") for entry in entries], indent=2))
    return 0


def mark_notified(checker: AvailabilityChecker, entry_id: int) -> int:
    entry = checker.store.mark_for_notification(entry_id)
    if entry is None:
        print(json.dumps({"error": f"No history entry with id {entry_id}"}))
        return 1
    print(json.dumps(entry.model_dump(mode="json"), indent=2))
    return 0


def run_check(checker: AvailabilityChecker) -> int:
    outcome = checker.check()
    print(outcome.message)
    return 1 if outcome.status in (CheckStatus.FAILED, CheckStatus.DELIVERY_FAILED) else 0


def main(argv=None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    if args.command == "courts":
        return print_courts(build_checker(), args.days_later, args.include_half_hour_slots)
    if args.command == "last-notified":
        return print_last_notified(build_checker(args.days))
    if args.command == "mark-notified":
        return mark_notified(build_checker(), args.entry_id)
    return run_check(build_checker(args.days))


if __name__ == "__main__":
    sys.exit(main())
