"""
Email relay over SMTP. One attempt per call, no queue and no retry.
"""

import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import List, Union

from util.logging import logger

from .config import EMAIL_SENDER_NAME, SMTP_HOST, SMTP_PORT, SMTP_TIMEOUT_SEC, get_email_credentials
from .errors import UpstreamError


def _split_recipients(to: Union[str, List[str]]) -> List[str]:
    if isinstance(to, str):
        # checking whether to split by ';' or ','
        separator = ';' if ';' in to else ','
        to = to.split(separator)
    return [address.strip() for address in to if address and address.strip()]


def build_message(sender: str, recipients: List[str], subject: str, body: str) -> MIMEMultipart:
    """Plain-text body plus an HTML part wrapping it in <pre>."""
    msg = MIMEMultipart('alternative')
    msg['From'] = formataddr((EMAIL_SENDER_NAME, sender))
    msg['To'] = ', '.join(recipients)
    msg['Subject'] = subject or ''
    msg.attach(MIMEText(body, 'plain'))
    msg.attach(MIMEText(f"<pre>{html.escape(body)}</pre>", 'html'))
    return msg


def send_email(to: Union[str, List[str]], subject: str, body: str) -> None:
    """Deliver an email through the configured relay.

    Raises UpstreamError carrying the relay's message on any failure.
    """
    user, password = get_email_credentials()
    if not user or not password:
        logger.log_notification(0, subject, "failed", "email relay not configured")
        raise UpstreamError("Email relay is not configured (EMAIL_USER / EMAIL_PASS)")

    recipients = _split_recipients(to)
    if not recipients:
        raise UpstreamError("No recipient address given")

    msg = build_message(user, recipients, subject, body or '')

    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT_SEC) as server:
            server.starttls()
            server.login(user, password)
            server.sendmail(user, recipients, msg.as_string())
    except (smtplib.SMTPException, OSError) as err:
        logger.log_notification(len(recipients), subject, "failed", str(err))
        raise UpstreamError(f"Error sending email: {err}") from err

    logger.log_notification(len(recipients), subject)
