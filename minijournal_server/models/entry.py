# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Journal entry models."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from minijournal_server.models.base import Base
from minijournal_server.models.timestamp import TimestampMixin

DEFAULT_FONT_FAMILY = "sans-serif"
DEFAULT_FONT_SIZE = "16px"
DEFAULT_FONT_STYLE = "normal"
DEFAULT_FONT_WEIGHT = "normal"
DEFAULT_COLOR = "#000000"


class Entry(Base, TimestampMixin):
    """Journal entry owned by a single user."""

    __tablename__ = "entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    font_family: Mapped[str] = mapped_column(String(64), default=DEFAULT_FONT_FAMILY, nullable=False)
    font_size: Mapped[str] = mapped_column(String(16), default=DEFAULT_FONT_SIZE, nullable=False)
    font_style: Mapped[str] = mapped_column(String(16), default=DEFAULT_FONT_STYLE, nullable=False)
    font_weight: Mapped[str] = mapped_column(String(16), default=DEFAULT_FONT_WEIGHT, nullable=False)
    color: Mapped[str] = mapped_column(String(32), default=DEFAULT_COLOR, nullable=False)
    date: Mapped[str] = mapped_column(String(32), nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="entries")
    images: Mapped[list["EntryImage"]] = relationship(
        "EntryImage",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="EntryImage.id",
        lazy="selectin",
    )


class EntryImage(Base):
    """Uploaded image placed on an entry page."""

    __tablename__ = "entry_images"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    x: Mapped[int] = mapped_column(Integer, nullable=False)
    y: Mapped[int] = mapped_column(Integer, nullable=False)
    width: Mapped[int] = mapped_column(Integer, nullable=False)
    height: Mapped[int] = mapped_column(Integer, nullable=False)

    entry: Mapped["Entry"] = relationship("Entry", back_populates="images")
