import html
import logging
import smtplib
from dataclasses import dataclass
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, List, Protocol, Sequence

import requests

from court_finder import config
from court_finder.models import MultiDaySnapshot

logger = logging.getLogger(__name__)

NewWindows = Dict[int, Dict[str, List[str]]]

EMAIL_STYLE = """
      body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
      h1 { color: #2c5282; margin-bottom: 20px; }
      .day-section { margin-bottom: 30px; }
      .day-header { color: #2d3748; font-size: 20px; margin-bottom: 10px; }
      .court-slot { margin-left: 20px; margin-bottom: 5px; }
      .court-number { font-weight: bold; color: #4a5568; }
      .time-slots { color: #718096; }
"""


@dataclass
class DeliveryReport:
    sent: bool
    message: str


class Notifier(Protocol):
    def send(self, snapshot: MultiDaySnapshot, dates: Sequence[date], new: NewWindows | None = None) -> DeliveryReport:
        ...


def day_label(day: date) -> str:
    """E.g. "Monday, Oct 19"."""
    return f"{day:%A}, {day:%b} {day.day}"


def render_text(snapshot: MultiDaySnapshot, dates: Sequence[date]) -> str:
    lines = ["Available Court Times:", ""]
    for offset, courts in sorted(snapshot.items()):
        available = [court for court in courts if court.available]
        if not available:
            continue
        lines.append(f"{day_label(dates[offset])}:")
        for court in available:
            lines.append(f"  {court.court}: {', '.join(court.available)}")
        lines.append("")
    return "\n".join(lines)


def render_html(snapshot: MultiDaySnapshot, dates: Sequence[date]) -> str:
    sections = []
    for offset, courts in sorted(snapshot.items()):
        available = [court for court in courts if court.available]
        if not available:
            continue
        rows = "".join(
            f'<div class="court-slot"><span class="court-number">{html.escape(court.court)}:</span> '
            f'<span class="time-slots">{html.escape(", ".join(court.available))}</span></div>'
            for court in available
        )
        sections.append(
            f'<div class="day-section"><h2 class="day-header">{day_label(dates[offset])}</h2>{rows}</div>'
        )
    return (
        f"<html><head><style>{EMAIL_STYLE}</style></head>"
        f"<body><h1>Available Court Times</h1>{''.join(sections)}</body></html>"
    )


class EmailNotifier:
    """Sends the availability snapshot as a plain-text and HTML email over SMTP with SSL."""

    def __init__(
        self,
        host: str = config.SMTP_HOST,
        port: int = config.SMTP_PORT,
        user: str | None = config.EMAIL_USER,
        password: str | None = config.EMAIL_PASSWORD,
        recipients: Sequence[str] = config.EMAIL_RECIPIENTS,
        subject: str = config.EMAIL_SUBJECT,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.recipients = list(recipients)
        self.subject = subject

    def build_message(self, snapshot: MultiDaySnapshot, dates: Sequence[date]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.user or ""
        msg["To"] = ", ".join(self.recipients)
        msg["Subject"] = self.subject
        msg.attach(MIMEText(render_text(snapshot, dates), "plain"))
        msg.attach(MIMEText(render_html(snapshot, dates), "html"))
        return msg

    def send(self, snapshot: MultiDaySnapshot, dates: Sequence[date], new: NewWindows | None = None) -> DeliveryReport:
        if not self.user or not self.password or not self.recipients:
            logger.warning("Email configuration missing. Skipping notification.")
            return DeliveryReport(sent=False, message="Email configuration missing.")

        msg = self.build_message(snapshot, dates)
        try:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=config.REQUEST_TIMEOUT) as server:
                server.login(self.user, self.password)
                server.sendmail(self.user, self.recipients, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return DeliveryReport(sent=False, message=f"Error sending email: {e}")

        logger.info("Email notification sent successfully.")
        return DeliveryReport(sent=True, message=f"Email sent to {len(self.recipients)} recipients.")


class TelegramNotifier:
    """Posts the availability snapshot to a Telegram chat, marking windows that are new."""

    def __init__(self, token: str | None = config.TELEGRAM_BOT_TOKEN, chat_id: str | None = config.TELEGRAM_CHAT_ID):
        self.token = token
        self.chat_id = chat_id

    def format_message(self, snapshot: MultiDaySnapshot, dates: Sequence[date], new: NewWindows | None = None) -> str:
        msg_lines = []
        for offset, courts in sorted(snapshot.items()):
            available = [court for court in courts if court.available]
            if not available:
                continue
            fresh = (new or {}).get(offset, {})
            msg_lines.append(f"*{day_label(dates[offset])}*:")
            for court in available:
                slots = [f"{s} [NEW]" if s in fresh.get(court.court, []) else s for s in court.available]
                msg_lines.append(f"  - {court.court}: {', '.join(slots)}")

        message = "🎾 *Tennis Court Times Available!*\n\n" + "\n".join(msg_lines)
        message += f"\n\n[Book Now]({config.BOOKING_URL})"
        return message

    def send(self, snapshot: MultiDaySnapshot, dates: Sequence[date], new: NewWindows | None = None) -> DeliveryReport:
        if not self.token or not self.chat_id:
            logger.warning("Telegram configuration missing. Skipping notification.")
            return DeliveryReport(sent=False, message="Telegram configuration missing.")

        url = f"https://api.telegram.org/bot{self.token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": self.format_message(snapshot, dates, new),
            "parse_mode": "Markdown",
        }

        try:
            response = requests.post(url, json=payload, timeout=config.REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Telegram message: {e}")
            return DeliveryReport(sent=False, message=f"Error sending Telegram message: {e}")

        logger.info("Telegram notification sent successfully.")
        return DeliveryReport(sent=True, message="Telegram message sent.")


def create_notifier(kind: str) -> Notifier:
    if kind == "email":
        return EmailNotifier()
    if kind == "telegram":
        return TelegramNotifier()
    raise ValueError(f"Unknown notifier: {kind}")
