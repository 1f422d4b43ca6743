# bakery/emailer.py
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from .config import Settings

logger = logging.getLogger(__name__)


def send_order_email(settings: Settings, to_email: str, subject: str, body: str) -> bool:
    """Send via SMTP when configured; otherwise only note it in the log (the body carries the edit link)."""
    if not settings.smtp_host:
        logger.info("EMAIL (dev, not sent) to=%s subject=%s", to_email, subject)
        return False

    msg = EmailMessage()
    msg["From"] = settings.mail_from
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError):
        # the order is already stored; a lost email must not fail the request
        logger.exception("Order email to %s failed", to_email)
        return False
    return True
