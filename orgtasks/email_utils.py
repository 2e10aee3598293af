"""Email sending utilities (Resend HTTP API or SMTP)."""
import os
import logging
import smtplib
from email.message import EmailMessage

import requests

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def _send_via_resend(api_key: str, email_from: str, to_email: str, subject: str,
                     body: str, html: str = None) -> bool:
    payload = {
        "from": email_from,
        "to": [to_email],
        "subject": subject,
        "text": body,
    }
    if html:
        payload["html"] = html
    response = requests.post(
        RESEND_API_URL,
        json=payload,
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=10,
    )
    if not response.ok:
        logger.error("Resend rejected email to %s: %s %s", to_email, response.status_code, response.text)
        return False
    return True


def _send_via_smtp(email_from: str, to_email: str, subject: str, body: str, html: str = None) -> bool:
    smtp_host = os.getenv("SMTP_HOST")
    smtp_port = int(os.getenv("SMTP_PORT", "587"))
    smtp_user = os.getenv("SMTP_USER")
    smtp_password = os.getenv("SMTP_PASSWORD")

    if not smtp_host or not smtp_user or not smtp_password:
        logger.info("SMTP not configured - skipping email to %s", to_email)
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = email_from or smtp_user
    msg["To"] = to_email
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    with smtplib.SMTP(smtp_host, smtp_port, timeout=10) as server:
        server.starttls()
        server.login(smtp_user, smtp_password)
        server.send_message(msg)
    logger.info("Email sent to %s via %s:%s", to_email, smtp_host, smtp_port)
    return True


def send_email(to_email: str, subject: str, body: str, html: str = None) -> bool:
    """Send an email, preferring the Resend API when RESEND_API_KEY is set.

    Returns True on success, False otherwise. Never raises.
    """
    email_from = os.getenv("EMAIL_FROM") or os.getenv("SMTP_USER")
    try:
        api_key = os.getenv("RESEND_API_KEY")
        if api_key:
            return _send_via_resend(api_key, email_from or "onboarding@resend.dev",
                                    to_email, subject, body, html)
        return _send_via_smtp(email_from, to_email, subject, body, html)
    except (requests.RequestException, smtplib.SMTPException, OSError) as e:
        logger.error("Error sending email to %s: %s", to_email, e)
        return False
