# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic schemas for API request/response."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


# Auth
class RequestOtpRequest(BaseModel):
    email: EmailStr


class VerifyRegisterRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class GoogleCallbackRequest(BaseModel):
    code: str = Field(min_length=1)


class GoogleSigninRequest(BaseModel):
    token_id: str = Field(alias="tokenId", min_length=1)


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    token: str


class RegisterResponse(BaseModel):
    id: int
    email: str
    token: str


# Entries. Field names go over the wire in camelCase.
class _CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class EntryImageResponse(_CamelModel):
    id: int
    entry_id: int
    image_url: str
    x: int
    y: int
    width: int
    height: int


class EntryResponse(_CamelModel):
    id: int
    user_id: int
    title: str | None = None
    name: str | None = None
    text: str | None = None
    font_family: str
    font_size: str
    font_style: str
    font_weight: str
    color: str
    date: str
    images: list[EntryImageResponse] = []


class DeleteEntryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    deleted_id: int = Field(alias="deletedID")
