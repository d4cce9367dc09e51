from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from ..core.config import (
    EMAIL_HOST,
    EMAIL_PASSWORD,
    EMAIL_PORT,
    EMAIL_TIMEOUT_SECONDS,
    EMAIL_USER,
    NOTIFICATION_EMAIL,
    SITE_DOMAIN,
)
from ..core.errors import MailDeliveryError

logger = logging.getLogger(__name__)


def send_mail(to: str, subject: str, text: str, html: Optional[str] = None) -> None:
    if not EMAIL_HOST:
        raise MailDeliveryError("Email delivery is not configured.")
    message = EmailMessage()
    message["From"] = EMAIL_USER
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text)
    if html:
        message.add_alternative(html, subtype="html")

    smtp_class = smtplib.SMTP_SSL if EMAIL_PORT == 465 else smtplib.SMTP
    try:
        with smtp_class(EMAIL_HOST, EMAIL_PORT, timeout=EMAIL_TIMEOUT_SECONDS) as client:
            if smtp_class is smtplib.SMTP and EMAIL_PORT == 587:
                client.starttls()
            if EMAIL_USER:
                client.login(EMAIL_USER, EMAIL_PASSWORD)
            client.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        raise MailDeliveryError() from exc
    logger.info("Sent '%s' email to %s", subject, to)


def send_password_reset(email: str, token: str) -> str:
    reset_url = f"{SITE_DOMAIN}/login?token={token}"
    send_mail(
        email,
        "Password Reset",
        f"Please click this link to reset your password: {reset_url}",
    )
    return reset_url


def send_contact_notification(email: str, website: str, message: str) -> None:
    text = (
        "Contact Form Submission:\n\n"
        f"From: {email}\n"
        f"Website: {website}\n\n"
        f"Message:\n{message}\n"
    )
    html = (
        "<h2>Contact details</h2>"
        f"<p><strong>From:</strong> {email}</p>"
        f"<p><strong>Website:</strong> {website}</p>"
        "<h3>Message:</h3>"
        f"<p>{message.replace(chr(10), '<br>')}</p>"
    )
    # Header values must stay on one line.
    subject_site = " ".join(website.split())
    send_mail(NOTIFICATION_EMAIL, f"Playlight Form Submission ({subject_site})", text, html)
