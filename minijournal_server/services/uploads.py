# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Storage for images uploaded with journal entries."""

import json
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from minijournal_server.config import settings
from minijournal_server.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"


@dataclass(frozen=True)
class Placement:
    """Where an image sits on the entry page."""

    x: int = 50
    y: int = 50
    width: int = 200
    height: int = 150


@dataclass(frozen=True)
class StoredImage:
    url: str
    path: Path
    placement: Placement


def parse_placement(raw: str | None) -> Placement:
    """Parse an ``imageData<i>`` form field like ``{"x": 10, "y": 20, "width": 300, "height": 200}``."""
    if raw is None or raw == "":
        return Placement()
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("placement must be a JSON object")
        default = Placement()
        return Placement(
            x=int(data.get("x", default.x)),
            y=int(data.get("y", default.y)),
            width=int(data.get("width", default.width)),
            height=int(data.get("height", default.height)),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid image placement: {e}") from e


def _stored_name(original: str | None) -> str:
    ext = Path(original or "").suffix.lower()
    return f"images-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


async def save_images(
    files: list[UploadFile],
    placements: list[Placement] | None = None,
    upload_dir: Path | None = None,
) -> list[StoredImage]:
    """Validate then write uploaded images, keeping upload order.

    Nothing is written unless every file passes the count, type and size
    checks. If a write fails, files already written are removed.
    """
    if len(files) > settings.max_images_per_entry:
        raise ValidationError(f"At most {settings.max_images_per_entry} images per entry")
    contents: list[bytes] = []
    for f in files:
        if not (f.content_type or "").startswith("image/"):
            raise ValidationError("Only image files are allowed")
        data = await f.read(settings.max_image_bytes + 1)
        if len(data) > settings.max_image_bytes:
            raise ValidationError(
                f"Image exceeds maximum size of {settings.max_image_bytes // (1024 * 1024)}MB"
            )
        contents.append(data)

    target = Path(upload_dir or settings.upload_dir)
    target.mkdir(parents=True, exist_ok=True)
    placements = placements or []
    stored: list[StoredImage] = []
    try:
        for i, (f, data) in enumerate(zip(files, contents)):
            name = _stored_name(f.filename)
            path = target / name
            path.write_bytes(data)
            stored.append(
                StoredImage(
                    url=f"{UPLOAD_URL_PREFIX}/{name}",
                    path=path,
                    placement=placements[i] if i < len(placements) else Placement(),
                )
            )
    except OSError as e:
        logger.exception("Writing upload to %s failed", target)
        remove_images(stored)
        raise StorageError("Could not store image") from e
    return stored


def remove_images(stored: list[StoredImage]) -> None:
    """Delete written files, e.g. after the entry transaction rolled back."""
    for image in stored:
        try:
            image.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove upload %s: %s", image.path, e)


def remove_image_urls(urls: list[str], upload_dir: Path | None = None) -> None:
    """Delete the files behind ``/uploads/<name>`` URLs of a deleted entry."""
    target = Path(upload_dir or settings.upload_dir)
    for url in urls:
        name = Path(url).name
        if not url.startswith(f"{UPLOAD_URL_PREFIX}/") or not name:
            logger.warning("Not an upload URL, skipping: %s", url)
            continue
        try:
            (target / name).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove upload %s: %s", name, e)
