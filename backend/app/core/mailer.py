"""Best-effort notification mail.

Delivery failures are logged and swallowed: callers never depend on a
notification arriving. Services build a ``Notice`` and routes hand it to
``BackgroundTasks`` so SMTP runs after the response is sent.
"""

import logging
import smtplib
from email.mime.text import MIMEText
from typing import List, NamedTuple, Optional

from fastapi import BackgroundTasks

from backend.app.core.settings import get_settings

logger = logging.getLogger(__name__)


class Notice(NamedTuple):
    to_addr: Optional[str]
    subject: str
    body: str


def send_mail(to_addrs: List[str], subject: str, body: str) -> None:
    settings = get_settings()
    msg = MIMEText(body, "plain", "utf-8")
    msg["From"] = settings.smtp_from
    msg["To"] = ", ".join(to_addrs)
    msg["Subject"] = subject

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
        if settings.smtp_tls:
            server.starttls()
        if settings.smtp_user and settings.smtp_password:
            server.login(settings.smtp_user, settings.smtp_password)
        server.sendmail(settings.smtp_from, to_addrs, msg.as_string())


def notify(to_addr: str | None, subject: str, body: str) -> bool:
    """Send a notification if SMTP is configured; return whether it was handed off."""
    settings = get_settings()
    if not to_addr:
        return False
    if not settings.smtp_host:
        logger.info("Mail disabled, skipping %r to %s", subject, to_addr)
        return False
    try:
        send_mail([to_addr], subject, body)
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to deliver %r to %s", subject, to_addr)
        return False
    return True


def queue_notice(background_tasks: BackgroundTasks, notice: Notice | None) -> None:
    if notice is None or not notice.to_addr:
        return
    background_tasks.add_task(notify, notice.to_addr, notice.subject, notice.body)
