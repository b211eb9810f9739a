# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Resolve a login credential to a user.

Three paths end in the same place, a known user ready for a session token:
email + OTP registration, email + password login, and Google sign-in.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from minijournal_server.auth import dummy_verify_password, hash_password, verify_password
from minijournal_server.errors import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidExternalAssertion,
)
from minijournal_server.models import User
from minijournal_server.services import credentials, otp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity already verified by Google."""

    email: str
    external_id: str


async def register_with_otp(db: AsyncSession, email: str, code: str, password: str) -> User:
    """Consume the code and create a verified password user.

    Runs inside the caller's transaction: if creating the user fails the code
    is not spent.
    """
    await otp.verify_and_consume(db, email, code)
    if await credentials.find_user_by_email(db, email) is not None:
        raise EmailAlreadyRegistered()
    return await credentials.create_user(
        db,
        email=email,
        password_hash=hash_password(password),
        verified=True,
    )


async def login_with_password(db: AsyncSession, email: str, password: str) -> User:
    """Return the user for a correct email/password pair.

    Unknown email, unverified email, Google-only account and wrong password
    all raise the same InvalidCredentials.
    """
    user = await credentials.find_user_by_email(db, email)
    if user is None or not user.can_login_with_password:
        dummy_verify_password()
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    return user


async def login_with_external(db: AsyncSession, identity: ExternalIdentity) -> User:
    """Find or create the user behind a Google identity."""
    if not identity.email or not identity.external_id:
        raise InvalidExternalAssertion()
    user = await credentials.find_user_by_external_id(db, identity.external_id)
    if user is None:
        user = await credentials.find_user_by_email(db, identity.email)
    if user is None:
        return await credentials.create_user(
            db,
            email=identity.email,
            google_id=identity.external_id,
            verified=True,
        )
    if user.google_id is not None and user.google_id != identity.external_id:
        logger.warning("User %s already linked to a different Google account", user.id)
    return await credentials.attach_external_id(db, user, identity.external_id)
