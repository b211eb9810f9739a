# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""One-time codes proving control of an email address."""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from minijournal_server.config import settings
from minijournal_server.errors import EmailAlreadyVerified, InvalidOrExpiredOtp
from minijournal_server.models import OtpCode
from minijournal_server.services import email as email_service
from minijournal_server.services.credentials import find_user_by_email

logger = logging.getLogger(__name__)

OTP_LENGTH = 6


def generate_otp() -> str:
    """Uniformly random numeric code."""
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


async def request_code(db: AsyncSession, email: str) -> None:
    """Issue a fresh code for ``email`` and mail it.

    Any earlier code for the same address stops working. The code is committed
    before delivery is attempted; a delivery failure still raises.
    """
    user = await find_user_by_email(db, email)
    if user is not None and user.is_email_verified:
        raise EmailAlreadyVerified()

    now = datetime.now(timezone.utc)
    await db.execute(
        delete(OtpCode)
        .where(or_(OtpCode.email == email, OtpCode.expires_at < now))
        .execution_options(synchronize_session="fetch")
    )
    code = generate_otp()
    db.add(
        OtpCode(
            email=email,
            code=code,
            expires_at=now + timedelta(minutes=settings.otp_expire_minutes),
        )
    )
    await db.commit()
    logger.info("Issued OTP for %s", email)

    await email_service.send_otp_email(email, code, settings.otp_expire_minutes)


async def verify_and_consume(db: AsyncSession, email: str, code: str) -> None:
    """Mark a matching live code as used, or raise InvalidOrExpiredOtp.

    The check and the write are one conditional UPDATE, so two concurrent
    attempts with the same code cannot both succeed.
    """
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(OtpCode)
        .where(
            OtpCode.email == email,
            OtpCode.code == code,
            OtpCode.is_used == False,  # noqa: E712
            OtpCode.expires_at > now,
        )
        .values(is_used=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info("Rejected OTP for %s", email)
        raise InvalidOrExpiredOtp()
