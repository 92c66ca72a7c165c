"""Change detection between availability snapshots.

Windows are compared as formatted strings per matched court: a window is new when the exact
"<start> to <end>" text was not reported for that court on that day in the previous snapshot.
A narrower window inside a previously reported one therefore still counts as new.
"""
from typing import Dict, List, Set

from court_finder.models import DaySnapshot, MultiDaySnapshot
from court_finder.slots import court_number

CourtKey = int | str


def _court_key(label: str) -> CourtKey:
    number = court_number(label)
    return number if number is not None else label


def _index_day(day: DaySnapshot) -> Dict[CourtKey, Set[str]]:
    index: Dict[CourtKey, Set[str]] = {}
    for court in day:
        index.setdefault(_court_key(court.court), set()).update(court.available)
    return index


def has_new_availability(current: MultiDaySnapshot, last: MultiDaySnapshot | None) -> bool:
    """Returns True if `current` reports any window that `last` did not."""
    if not last:
        return True

    for offset, day in current.items():
        if offset not in last:
            if any(court.available for court in day):
                return True
            continue

        previous = _index_day(last[offset])
        for court in day:
            if not court.available:
                continue
            seen = previous.get(_court_key(court.court))
            if seen is None:
                return True
            if any(slot not in seen for slot in court.available):
                return True

    return False


def new_windows(current: MultiDaySnapshot, last: MultiDaySnapshot | None) -> Dict[int, Dict[str, List[str]]]:
    """Lists the windows of `current` missing from `last`, by day offset and court label."""
    result: Dict[int, Dict[str, List[str]]] = {}
    for offset, day in current.items():
        previous = _index_day(last.get(offset, [])) if last else {}
        for court in day:
            seen = previous.get(_court_key(court.court), set())
            novel = [slot for slot in court.available if slot not in seen]
            if novel:
                result.setdefault(offset, {})[court.court] = novel
    return result
