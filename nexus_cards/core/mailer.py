"""
Outgoing e-mail over SMTP.

Port 465 uses implicit TLS; any other port upgrades with STARTTLS when the
server offers it. Login is skipped for relays configured without credentials.
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib
import ssl

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 15


def smtp_configured(settings: Settings) -> bool:
    return bool(settings.smtp_host and settings.smtp_port and settings.smtp_from)


def build_message(sender: str, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to_email
    msg.attach(MIMEText(text_body or html_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


def _open_connection(settings: Settings) -> smtplib.SMTP:
    context = ssl.create_default_context()
    if settings.smtp_port == 465:
        return smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=SMTP_TIMEOUT_SECONDS)
    server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS)
    server.ehlo()
    if server.has_extn("starttls"):
        server.starttls(context=context)
        server.ehlo()
    return server


def send_email(subject: str, to_email: str, html_body: str, text_body: str | None = None) -> bool:
    """Deliver one message; False when SMTP is not configured or delivery fails."""
    settings = get_settings()
    if not smtp_configured(settings):
        logger.info("SMTP not configured; skipping e-mail to %s", to_email)
        return False
    msg = build_message(settings.smtp_from, to_email, subject, html_body, text_body)
    try:
        with _open_connection(settings) as server:
            if settings.smtp_user and settings.smtp_password:
                server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Failed to send e-mail to %s: %s", to_email, exc)
        return False
    logger.info("Sent '%s' to %s", subject, to_email)
    return True
