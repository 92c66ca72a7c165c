"""Reservation sources: adapters that turn a facility's booking data into busy intervals per court."""
import json
import logging
import re
from datetime import date, datetime, time, timezone
from typing import Dict, Iterable, List, Protocol
from zoneinfo import ZoneInfo

import cloudscraper
import requests
from bs4 import BeautifulSoup

from court_finder import config
from court_finder.availability import operating_hours
from court_finder.errors import ParseError, SourceUnavailableError
from court_finder.intervals import Interval, merge_intervals, parse_time_range
from court_finder.models import BusyInterval, CourtId, normalize_court_id

logger = logging.getLogger(__name__)

MS_DATE_PATTERN = re.compile(r"Date\((-?\d+)")


class ReservationSource(Protocol):
    def fetch_busy_intervals(self, day: date) -> List[BusyInterval]:
        ...


def parse_microsoft_date(value: str | None, tz: ZoneInfo) -> datetime | None:
    """Parses "/Date(1748948400000)/" into an aware datetime in tz."""
    if not value:
        return None
    match = MS_DATE_PATTERN.search(str(value))
    if not match:
        logger.warning(f"Failed to parse date: {value}")
        return None
    return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc).astimezone(tz)


class CourtReserveSource:
    """Reads the consolidated reservation grid from the CourtReserve booking API.

    The API reports, per time slot, which courts are still free. A court is busy for every part
    of the operating day not covered by one of its free slots.
    """

    def __init__(
        self,
        tz: ZoneInfo,
        court_ids: Iterable[int] = (),
        session: requests.Session | None = None,
        timeout: int = config.REQUEST_TIMEOUT,
    ):
        self.tz = tz
        self.court_ids = [normalize_court_id(court_id) for court_id in court_ids]
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(config.COMMON_HEADERS)

    def build_payload(self, day: date) -> Dict[str, str]:
        start_utc = datetime.combine(day, time(), tzinfo=self.tz).astimezone(timezone.utc)
        json_data = {
            "startDate": start_utc.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            "orgId": config.ORG_ID,
            "TimeZone": config.FACILITY_TIMEZONE,
            "Date": start_utc.strftime("%a, %d %b %Y %H:%M:%S GMT"),
            "KendoDate": {"Year": day.year, "Month": day.month, "Day": day.day},
            "UiCulture": "en-US",
            "CostTypeId": config.COST_TYPE_ID,
            "CustomSchedulerId": config.SCHEDULER_ID,
            "ReservationMinInterval": config.RESERVATION_MIN_INTERVAL,
        }
        return {"jsonData": json.dumps(json_data)}

    def fetch_slots(self, day: date) -> List[Dict]:
        logger.info(f"Fetching consolidated reservations for {day.isoformat()}")
        try:
            response = self.session.post(
                config.API_URL,
                data=self.build_payload(day),
                headers={"Content-Type": "application/x-www-form-urlencoded; charset=UTF-8"},
                timeout=self.timeout,
            )
            logger.debug(f"Response status: {response.status_code}")
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SourceUnavailableError(f"Failed to fetch reservations for {day.isoformat()}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(f"Reservation response for {day.isoformat()} is not JSON") from e

        if not isinstance(data, dict) or not isinstance(data.get("Data"), list):
            logger.debug(f"Response data: {data}")
            raise ParseError("Unexpected JSON format. 'Data' list missing.")
        return data["Data"]

    def parse_free_intervals(self, slots: List[Dict]) -> Dict[CourtId, List[Interval]]:
        free: Dict[CourtId, List[Interval]] = {}
        for slot in slots:
            if not isinstance(slot, dict):
                raise ParseError(f"Unexpected slot format: {slot!r}")
            court_ids = slot.get("AvailableCourtIds") or []
            if not isinstance(court_ids, list):
                raise ParseError(f"Unexpected AvailableCourtIds in slot {slot.get('Id')}: {court_ids!r}")
            start = parse_microsoft_date(slot.get("Start"), self.tz)
            end = parse_microsoft_date(slot.get("End"), self.tz)
            if start is None or end is None:
                logger.warning(f"Skipping slot {slot.get('Id')} without valid start/end")
                continue
            for court_id in court_ids:
                free.setdefault(normalize_court_id(court_id), []).append((start, end))
        return free

    def fetch_busy_intervals(self, day: date) -> List[BusyInterval]:
        hours = operating_hours(day, self.tz)
        free = self.parse_free_intervals(self.fetch_slots(day))

        busy: List[BusyInterval] = []
        for court_id in list(dict.fromkeys([*self.court_ids, *free])):
            cursor = hours.open
            for start, end in merge_intervals(free.get(court_id, [])):
                if cursor >= hours.close:
                    break
                if start > cursor:
                    busy.append(BusyInterval(court_id=court_id, start=cursor, end=min(start, hours.close)))
                cursor = max(cursor, end)
            if cursor < hours.close:
                busy.append(BusyInterval(court_id=court_id, start=cursor, end=hours.close))

        logger.debug(f"Derived {len(busy)} busy intervals for {day.isoformat()}")
        return busy


class ScrapedReservationSource:
    """Scrapes booked blocks from the facility's public reservation page.

    Each booking is rendered as an element with class "reservation" carrying the court in a
    data-court attribute and a "H:MM AM to H:MM PM" range as its text.
    """

    def __init__(self, tz: ZoneInfo, url: str = config.RESERVATIONS_PAGE_URL, timeout: int = config.REQUEST_TIMEOUT):
        self.tz = tz
        self.url = url
        self.timeout = timeout

    def fetch_page(self, day: date) -> str:
        logger.info(f"Fetching reservation page for {day.isoformat()} from {self.url}")
        try:
            scraper = cloudscraper.create_scraper()
            response = scraper.get(
                self.url, params={"date": day.isoformat()}, headers=config.COMMON_HEADERS, timeout=self.timeout
            )
            logger.debug(f"Response status: {response.status_code}")
            response.raise_for_status()
        except Exception as e:
            if "response" in locals() and response.status_code == 403:
                logger.error("Cloudflare blocked the request even with cloudscraper.")
            raise SourceUnavailableError(f"Failed to fetch reservation page for {day.isoformat()}: {e}") from e
        return response.text

    def parse_reservations(self, html: str, day: date) -> List[BusyInterval]:
        soup = BeautifulSoup(html, "html.parser")
        busy: List[BusyInterval] = []
        for block in soup.select(".reservation[data-court]"):
            start, end = parse_time_range(block.get_text(" ", strip=True), day, self.tz)
            busy.append(BusyInterval(court_id=normalize_court_id(block["data-court"]), start=start, end=end))
        return busy

    def fetch_busy_intervals(self, day: date) -> List[BusyInterval]:
        busy = self.parse_reservations(self.fetch_page(day), day)
        logger.debug(f"Scraped {len(busy)} reservations for {day.isoformat()}")
        return busy


def create_source(kind: str, tz: ZoneInfo) -> ReservationSource:
    if kind == "api":
        return CourtReserveSource(tz=tz, court_ids=config.COURT_IDS)
    if kind == "scrape":
        return ScrapedReservationSource(tz=tz)
    raise ValueError(f"Unknown data source: {kind}")
