import logging
import os
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

# --- Facility ---
FACILITY_TIMEZONE = os.environ.get("FACILITY_TIMEZONE", "America/New_York")

# Opening and closing times as 12-hour clock strings, local time.
WEEKDAY_HOURS: Tuple[str, str] = (
    os.environ.get("WEEKDAY_OPEN", "8:00 AM"),
    os.environ.get("WEEKDAY_CLOSE", "10:00 PM"),
)
WEEKEND_HOURS: Tuple[str, str] = (
    os.environ.get("WEEKEND_OPEN", "8:00 AM"),
    os.environ.get("WEEKEND_CLOSE", "9:00 PM"),
)

COURT_IDS: List[int] = [
    int(cid) for cid in os.environ.get("COURT_IDS", "1,2,3,4,5,6,7").split(",") if cid.strip()
]
# Display names for courts; anything missing falls back to "Court #<id>".
COURT_MAPPING: Dict[int, str] = {}

# --- Availability ---
DAYS_AHEAD = int(os.environ.get("DAYS_AHEAD", "5"))
MIN_DURATION_MINUTES = int(os.environ.get("MIN_DURATION_MINUTES", "30"))
NOW_ROUNDING_MINUTES = 30

# --- File Paths ---
DATA_DIR = os.environ.get("DATA_DIR", "public/data")
HISTORY_FILE = os.path.join(DATA_DIR, "court_lists.json")
SNAPSHOT_MAX_AGE_HOURS = int(os.environ.get("SNAPSHOT_MAX_AGE_HOURS", "120"))

# --- Reservation source ---
# "api" talks to the CourtReserve JSON endpoint, "scrape" parses the public reservation page.
DATA_SOURCE = os.environ.get("DATA_SOURCE", "api")
REQUEST_TIMEOUT = int(os.environ.get("REQUEST_TIMEOUT", "10"))

ORG_ID = os.environ.get("ORG_ID", "5881")
COST_TYPE_ID = os.environ.get("COST_TYPE_ID", "78549")
SCHEDULER_ID = os.environ.get("SCHEDULER_ID", "294")
RESERVATION_MIN_INTERVAL = os.environ.get("RESERVATION_MIN_INTERVAL", "30")
API_URL = f"https://usta.courtreserve.com/Online/Reservations/ReadConsolidated/{ORG_ID}"
RESERVATIONS_PAGE_URL = os.environ.get(
    "RESERVATIONS_PAGE_URL", f"https://usta.courtreserve.com/Online/Reservations/Bookings/{ORG_ID}"
)
BOOKING_URL = os.environ.get("BOOKING_URL", RESERVATIONS_PAGE_URL)

# Headers to mimic a browser
COMMON_HEADERS: Dict[str, str] = {
    "User-Agent": os.environ.get(
        "SCRAPER_USER_AGENT",
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/129.0.0.0 Safari/537.36"
        ),
    ),
    "Accept": "*/*",
    "Accept-Language": os.environ.get("SCRAPER_ACCEPT_LANGUAGE", "en-US,en;q=0.9"),
    "X-Requested-With": "XMLHttpRequest",
}

# --- Notifications ---
NOTIFIER = os.environ.get("NOTIFIER", "email")

SMTP_HOST = os.environ.get("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.environ.get("SMTP_PORT", "465"))
EMAIL_USER = os.environ.get("EMAIL_USER")
EMAIL_PASSWORD = os.environ.get("EMAIL_PASSWORD")
EMAIL_RECIPIENTS: List[str] = [
    addr.strip() for addr in os.environ.get("EMAIL_RECIPIENTS", "").split(",") if addr.strip()
]
EMAIL_SUBJECT = os.environ.get("EMAIL_SUBJECT", "McCarren Tennis Courts Availability Update")

TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")

if NOTIFIER == "email" and not (EMAIL_USER and EMAIL_PASSWORD and EMAIL_RECIPIENTS):
    logger.warning("Email configuration incomplete. Skipping notifications.")
elif NOTIFIER == "telegram" and not (TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID):
    logger.warning("Telegram configuration incomplete. Skipping notifications.")
