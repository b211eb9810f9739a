# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""User lookups and writes shared by every login path."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from minijournal_server.models import User

logger = logging.getLogger(__name__)


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def find_user_by_external_id(db: AsyncSession, google_id: str) -> User | None:
    result = await db.execute(select(User).where(User.google_id == google_id))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    password_hash: str | None = None,
    google_id: str | None = None,
    verified: bool = False,
) -> User:
    """Insert a user and flush so the id is known before a token is minted."""
    user = User(
        email=email,
        password_hash=password_hash,
        google_id=google_id,
        is_email_verified=verified,
    )
    db.add(user)
    await db.flush()
    logger.info("Created user %s (google=%s)", user.id, google_id is not None)
    return user


async def attach_external_id(db: AsyncSession, user: User, google_id: str) -> User:
    """Link a Google account to an existing user. A Google login also proves the email."""
    if user.google_id is None:
        user.google_id = google_id
        logger.info("Linked Google account to user %s", user.id)
    user.is_email_verified = True
    await db.flush()
    return user
