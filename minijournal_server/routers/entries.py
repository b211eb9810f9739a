# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Journal entry API routes. All routes act on the caller's own entries only."""

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from minijournal_server.api.schemas import DeleteEntryResponse, EntryResponse
from minijournal_server.auth import TokenIdentity, get_current_user
from minijournal_server.database import get_db
from minijournal_server.services import entries, uploads

router = APIRouter(prefix="/entries", tags=["entries"])


@router.get("", response_model=list[EntryResponse])
async def list_entries(
    current: TokenIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[EntryResponse]:
    """List current user's entries, newest first."""
    rows = await entries.list_entries(db, current.user_id)
    return [EntryResponse.model_validate(e) for e in rows]


@router.post("", response_model=EntryResponse)
async def create_entry(
    request: Request,
    title: str | None = Form(None),
    name: str | None = Form(None),
    text: str | None = Form(None),
    font_family: str | None = Form(None, alias="fontFamily"),
    font_size: str | None = Form(None, alias="fontSize"),
    font_style: str | None = Form(None, alias="fontStyle"),
    font_weight: str | None = Form(None, alias="fontWeight"),
    color: str | None = Form(None),
    images: list[UploadFile] | None = File(None),
    current: TokenIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> EntryResponse:
    """Create an entry with optional images.

    Image ``i`` may carry its placement in an ``imageData<i>`` form field
    holding JSON ``{"x", "y", "width", "height"}``.
    """
    files = images or []
    form = await request.form()
    placements = [uploads.parse_placement(form.get(f"imageData{i}")) for i in range(len(files))]
    stored = await uploads.save_images(files, placements)
    try:
        entry = await entries.create_entry(
            db,
            current.user_id,
            entries.EntryFields(
                title=title,
                name=name,
                text=text,
                font_family=font_family,
                font_size=font_size,
                font_style=font_style,
                font_weight=font_weight,
                color=color,
            ),
            stored,
        )
        await db.commit()
    except Exception:
        uploads.remove_images(stored)
        raise
    return EntryResponse.model_validate(entry)


@router.delete("/{entry_id}", response_model=DeleteEntryResponse)
async def delete_entry(
    entry_id: int,
    current: TokenIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DeleteEntryResponse:
    """Delete one of the current user's entries. 404 if it does not exist or belongs to someone else."""
    deleted = await entries.delete_entry(db, current.user_id, entry_id)
    await db.commit()
    uploads.remove_image_urls(deleted.image_urls)
    return DeleteEntryResponse(deleted_id=deleted.id)
