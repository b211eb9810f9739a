# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from minijournal_server.models.base import Base
from minijournal_server.models.entry import Entry, EntryImage
from minijournal_server.models.otp_code import OtpCode
from minijournal_server.models.user import User

__all__ = [
    "Base",
    "User",
    "OtpCode",
    "Entry",
    "EntryImage",
]
