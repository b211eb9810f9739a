# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Email sending service. Logs to console when SMTP not configured."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from minijournal_server.config import settings
from minijournal_server.errors import EmailDeliveryFailed

logger = logging.getLogger(__name__)


def wrap_body_html(plain_body: str, heading: str | None = None) -> str:
    """Wrap plain text body in minimal HTML."""
    body_escaped = plain_body.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace("\n", "<br>\n")
    title = f"<h2>{heading}</h2>\n" if heading else ""
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: system-ui, sans-serif; color: #333; max-width: 560px;">
{title}<div style="white-space: pre-wrap;">{body_escaped}</div>
</body>
</html>"""


def _build_message(to: str, subject: str, body: str, heading: str | None) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to
    msg.attach(MIMEText(body, "plain"))
    msg.attach(MIMEText(wrap_body_html(body, heading), "html"))
    return msg


def _deliver(to: str, msg: MIMEMultipart) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password or "")
        server.sendmail(settings.smtp_from, [to], msg.as_string())


async def send_email(to: str, subject: str, body: str, heading: str | None = None) -> None:
    """Send an email (plain and HTML). Raises EmailDeliveryFailed when SMTP rejects or times out."""
    if not (settings.smtp_host and settings.smtp_user):
        logger.info("Email (SMTP not configured): To=%s Subject=%s Body=%s", to, subject, body[:200])
        return
    msg = _build_message(to, subject, body, heading)
    try:
        await asyncio.to_thread(_deliver, to, msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Failed to send email to %s", to)
        raise EmailDeliveryFailed() from e


async def send_otp_email(to: str, code: str, expire_minutes: int) -> None:
    """Send a registration code."""
    await send_email(
        to,
        "Your OTP for Mini Couple Journal",
        f"Your OTP code is: {code}\n\n"
        f"This code will expire in {expire_minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email.",
        heading="Welcome to Mini Couple Journal!",
    )
