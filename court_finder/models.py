import re
from datetime import date, datetime
from typing import Dict, List

from pydantic import BaseModel, field_validator

CourtId = int | str


def normalize_court_id(raw) -> CourtId:
    """Court ids carrying digits ("1", "Court 1", 1) become ints; anything else stays a stripped label."""
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    digits = re.sub(r"\D", "", text)
    return int(digits) if digits else text


class BusyInterval(BaseModel):
    court_id: CourtId
    start: datetime
    end: datetime

    @field_validator("court_id", mode="before")
    @classmethod
    def coerce_court_id(cls, value):
        return normalize_court_id(value)


class OperatingHours(BaseModel):
    day: date
    open: datetime
    close: datetime
    now_clamp: datetime | None = None  # only set when querying the current date


class AvailableWindow(BaseModel):
    court_id: CourtId
    start: datetime
    end: datetime

    @field_validator("court_id", mode="before")
    @classmethod
    def coerce_court_id(cls, value):
        return normalize_court_id(value)


class CourtAvailability(BaseModel):
    court: str
    available: List[str]


DaySnapshot = List[CourtAvailability]
# Keyed by day offset from today (0 = today).
MultiDaySnapshot = Dict[int, DaySnapshot]


class SnapshotEntry(BaseModel):
    id: int
    date_for: str  # ISO format YYYY-MM-DD
    created_at: datetime
    for_email: bool
    court_list: List[CourtAvailability]
