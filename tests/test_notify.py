"""
Email relay tests - the SMTP connection is mocked.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from src.core.config import validate_notification_config
from src.core.errors import UpstreamError
from src.core.notify import _split_recipients, build_message, send_email


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("EMAIL_USER", "station@example.com")
    monkeypatch.setenv("EMAIL_PASS", "app-password")


@pytest.fixture
def smtp():
    """Patch smtplib.SMTP and hand back the server object used in the with-block."""
    with patch("src.core.notify.smtplib.SMTP") as smtp_class:
        server = MagicMock()
        smtp_class.return_value.__enter__.return_value = server
        yield smtp_class, server


@pytest.mark.parametrize("to,expected", [
    ("a@example.com", ["a@example.com"]),
    ("a@example.com; b@example.com", ["a@example.com", "b@example.com"]),
    ("a@example.com,b@example.com,", ["a@example.com", "b@example.com"]),
    (["a@example.com", " "], ["a@example.com"]),
])
def test_split_recipients(to, expected):
    assert _split_recipients(to) == expected


def test_build_message_has_text_and_html_parts():
    msg = build_message("station@example.com", ["ops@example.com"], "METAR", "wind <10KT>")

    assert msg["Subject"] == "METAR"
    assert msg["To"] == "ops@example.com"
    assert "station@example.com" in msg["From"]

    parts = msg.get_payload()
    assert [p.get_content_type() for p in parts] == ["text/plain", "text/html"]
    assert "wind &lt;10KT&gt;" in parts[1].get_payload()


def test_send_email_delivers_through_relay(credentials, smtp):
    smtp_class, server = smtp

    send_email("ops@example.com; chief@example.com", "METAR HKJK", "METAR HKJK 121200Z")

    server.starttls.assert_called_once()
    server.login.assert_called_once_with("station@example.com", "app-password")
    sender, recipients, raw = server.sendmail.call_args[0]
    assert sender == "station@example.com"
    assert recipients == ["ops@example.com", "chief@example.com"]
    assert "METAR HKJK" in raw


def test_missing_credentials_fail_without_connecting(monkeypatch, smtp):
    smtp_class, _ = smtp
    monkeypatch.delenv("EMAIL_USER", raising=False)
    monkeypatch.delenv("EMAIL_PASS", raising=False)

    with pytest.raises(UpstreamError) as exc_info:
        send_email("ops@example.com", "s", "b")

    assert "not configured" in str(exc_info.value)
    smtp_class.assert_not_called()


def test_empty_recipient_list_rejected(credentials, smtp):
    with pytest.raises(UpstreamError):
        send_email(" ; ", "s", "b")


def test_relay_error_carries_message(credentials, smtp):
    _, server = smtp
    server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"Username and Password not accepted")

    with pytest.raises(UpstreamError) as exc_info:
        send_email("ops@example.com", "s", "b")

    assert str(exc_info.value).startswith("Error sending email:")
    assert "535" in str(exc_info.value)


def test_connection_refused_is_upstream_error(credentials, smtp):
    smtp_class, _ = smtp
    smtp_class.side_effect = ConnectionRefusedError("connection refused")

    with pytest.raises(UpstreamError):
        send_email("ops@example.com", "s", "b")


def test_notification_config_issues(monkeypatch):
    monkeypatch.delenv("EMAIL_USER", raising=False)
    monkeypatch.setenv("EMAIL_PASS", "app-password")
    monkeypatch.delenv("RECIPIENT_EMAIL", raising=False)

    issues = validate_notification_config()

    assert any("EMAIL_USER" in issue for issue in issues)
    assert any("RECIPIENT_EMAIL" in issue for issue in issues)
    assert not any("EMAIL_PASS" in issue for issue in issues)
