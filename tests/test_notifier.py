import smtplib
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from court_finder.models import CourtAvailability
from court_finder.notifier import (
    EmailNotifier,
    TelegramNotifier,
    create_notifier,
    day_label,
    render_html,
    render_text,
)

DATES = [date(2025, 6, 4), date(2025, 6, 5), date(2025, 6, 6)]
SNAPSHOT = {
    0: [
        CourtAvailability(court="Court #1", available=["8:00 AM to 9:00 AM", "6:00 PM to 10:00 PM"]),
        CourtAvailability(court="Court #2", available=[]),
    ],
    1: [CourtAvailability(court="Court #2", available=[])],
    2: [CourtAvailability(court="Court #4", available=["1:00 PM to 2:00 PM"])],
}


def make_email_notifier(**overrides):
    params = dict(
        host="smtp.example.com",
        port=465,
        user="courts@example.com",
        password="secret",
        recipients=["a@example.com", "b@example.com"],
        subject="Courts",
    )
    params.update(overrides)
    return EmailNotifier(**params)


def test_day_label():
    assert day_label(date(2025, 6, 4)) == "Wednesday, Jun 4"


def test_render_text_skips_days_without_availability():
    text = render_text(SNAPSHOT, DATES)

    assert text.startswith("Available Court Times:")
    assert "Wednesday, Jun 4:\n  Court #1: 8:00 AM to 9:00 AM, 6:00 PM to 10:00 PM" in text
    assert "Court #2" not in text
    assert "Thursday" not in text
    assert "Friday, Jun 6:\n  Court #4: 1:00 PM to 2:00 PM" in text


def test_render_html():
    body = render_html(SNAPSHOT, DATES)

    assert "<h1>Available Court Times</h1>" in body
    assert body.count('class="day-section"') == 2
    assert '<span class="court-number">Court #4:</span>' in body


@patch("court_finder.notifier.smtplib.SMTP_SSL")
def test_send_email_success(mock_smtp):
    server = MagicMock()
    mock_smtp.return_value.__enter__.return_value = server

    report = make_email_notifier().send(SNAPSHOT, DATES)

    assert report.sent is True
    mock_smtp.assert_called_once()
    assert mock_smtp.call_args[0] == ("smtp.example.com", 465)
    server.login.assert_called_once_with("courts@example.com", "secret")
    from_addr, to_addrs, message = server.sendmail.call_args[0]
    assert from_addr == "courts@example.com"
    assert to_addrs == ["a@example.com", "b@example.com"]
    assert "Subject: Courts" in message


@patch("court_finder.notifier.smtplib.SMTP_SSL")
def test_send_email_missing_config(mock_smtp):
    report = make_email_notifier(password=None).send(SNAPSHOT, DATES)

    assert report.sent is False
    mock_smtp.assert_not_called()


@patch("court_finder.notifier.smtplib.SMTP_SSL")
def test_send_email_failure(mock_smtp):
    server = MagicMock()
    server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"Bad credentials")
    mock_smtp.return_value.__enter__.return_value = server

    # Should not raise exception, just report the error
    report = make_email_notifier().send(SNAPSHOT, DATES)

    assert report.sent is False
    assert report.message.startswith("Error sending email")


def test_build_message_is_multipart():
    msg = make_email_notifier().build_message(SNAPSHOT, DATES)
    assert msg.get_content_subtype() == "alternative"
    assert [part.get_content_type() for part in msg.get_payload()] == ["text/plain", "text/html"]


def test_telegram_format_marks_new_windows():
    notifier = TelegramNotifier(token="fake_token", chat_id="fake_chat_id")
    message = notifier.format_message(SNAPSHOT, DATES, {0: {"Court #1": ["6:00 PM to 10:00 PM"]}})

    assert "*Wednesday, Jun 4*:" in message
    assert "  - Court #1: 8:00 AM to 9:00 AM, 6:00 PM to 10:00 PM [NEW]" in message
    assert "[Book Now](" in message


@patch("court_finder.notifier.requests.post")
def test_send_telegram_message_success(mock_post):
    mock_post.return_value.raise_for_status.return_value = None

    report = TelegramNotifier(token="fake_token", chat_id="fake_chat_id").send(SNAPSHOT, DATES)

    assert report.sent is True
    mock_post.assert_called_once()
    args, kwargs = mock_post.call_args
    assert kwargs["json"]["chat_id"] == "fake_chat_id"
    assert "fake_token" in args[0]


@patch("court_finder.notifier.requests.post")
def test_send_telegram_message_missing_config(mock_post):
    report = TelegramNotifier(token=None, chat_id=None).send(SNAPSHOT, DATES)

    assert report.sent is False
    mock_post.assert_not_called()


@patch("court_finder.notifier.requests.post")
def test_send_telegram_message_failure(mock_post):
    mock_post.side_effect = requests.exceptions.RequestException("Network error")

    report = TelegramNotifier(token="fake_token", chat_id="fake_chat_id").send(SNAPSHOT, DATES)

    assert report.sent is False
    mock_post.assert_called_once()


def test_create_notifier():
    assert isinstance(create_notifier("email"), EmailNotifier)
    assert isinstance(create_notifier("telegram"), TelegramNotifier)
    with pytest.raises(ValueError):
        create_notifier("fax")
