# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Journal entries scoped to their owner.

Every query here filters on ``user_id``; an entry is never visible to, or
removable by, anyone but the user who created it.
"""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from minijournal_server.errors import EntryNotFound
from minijournal_server.models import Entry, EntryImage
from minijournal_server.models.entry import (
    DEFAULT_COLOR,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_FONT_STYLE,
    DEFAULT_FONT_WEIGHT,
)
from minijournal_server.services.uploads import StoredImage

logger = logging.getLogger(__name__)


@dataclass
class EntryFields:
    title: str | None = None
    name: str | None = None
    text: str | None = None
    font_family: str | None = None
    font_size: str | None = None
    font_style: str | None = None
    font_weight: str | None = None
    color: str | None = None


@dataclass(frozen=True)
class DeletedEntry:
    id: int
    image_urls: list[str]


def display_date(day: date | None = None) -> str:
    """Date shown on the entry, e.g. ``3/7/2025``."""
    d = day or date.today()
    return f"{d.month}/{d.day}/{d.year}"


async def list_entries(db: AsyncSession, user_id: int) -> list[Entry]:
    """Owner's entries, newest first, with images in upload order."""
    result = await db.execute(
        select(Entry).where(Entry.user_id == user_id).order_by(Entry.id.desc())
    )
    return list(result.scalars().all())


async def get_entry(db: AsyncSession, user_id: int, entry_id: int) -> Entry:
    result = await db.execute(
        select(Entry).where(Entry.id == entry_id, Entry.user_id == user_id)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise EntryNotFound()
    return entry


async def create_entry(
    db: AsyncSession,
    user_id: int,
    fields: EntryFields,
    images: list[StoredImage],
) -> Entry:
    """Write the entry and one image row per stored file in a single flush."""
    entry = Entry(
        user_id=user_id,
        title=fields.title,
        name=fields.name,
        text=fields.text,
        font_family=fields.font_family or DEFAULT_FONT_FAMILY,
        font_size=fields.font_size or DEFAULT_FONT_SIZE,
        font_style=fields.font_style or DEFAULT_FONT_STYLE,
        font_weight=fields.font_weight or DEFAULT_FONT_WEIGHT,
        color=fields.color or DEFAULT_COLOR,
        date=display_date(),
        images=[
            EntryImage(
                image_url=img.url,
                x=img.placement.x,
                y=img.placement.y,
                width=img.placement.width,
                height=img.placement.height,
            )
            for img in images
        ],
    )
    db.add(entry)
    await db.flush()
    logger.info("User %s created entry %s with %d image(s)", user_id, entry.id, len(images))
    return entry


async def delete_entry(db: AsyncSession, user_id: int, entry_id: int) -> DeletedEntry:
    """Delete an owned entry and its images. Raises EntryNotFound for missing or foreign ids."""
    entry = await get_entry(db, user_id, entry_id)
    image_urls = [img.image_url for img in entry.images]
    # images are already loaded, so the ORM cascade deletes their rows too
    await db.delete(entry)
    await db.flush()
    logger.info("User %s deleted entry %s", user_id, entry_id)
    return DeletedEntry(id=entry_id, image_urls=image_urls)
