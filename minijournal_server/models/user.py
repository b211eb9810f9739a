# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""User model."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from minijournal_server.models.base import Base
from minijournal_server.models.entry import Entry
from minijournal_server.models.timestamp import TimestampMixin


class User(Base, TimestampMixin):
    """Account that owns journal entries.

    Users created through Google sign-in have no password hash and can only
    log in through Google until they register a password.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    entries: Mapped[list["Entry"]] = relationship(
        "Entry", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def can_login_with_password(self) -> bool:
        return self.password_hash is not None and self.is_email_verified
