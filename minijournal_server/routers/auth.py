# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication API routes."""

from datetime import timedelta

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from minijournal_server.api.schemas import (
    GoogleCallbackRequest,
    GoogleSigninRequest,
    LoginRequest,
    MessageResponse,
    RegisterResponse,
    RequestOtpRequest,
    TokenResponse,
    VerifyRegisterRequest,
)
from minijournal_server.auth import issue_token
from minijournal_server.config import settings
from minijournal_server.database import get_db
from minijournal_server.models import User
from minijournal_server.rate_limit import rate_limit_auth_dep
from minijournal_server.services import identity, otp
from minijournal_server.services.google import GoogleOAuthClient, get_google_client

router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(rate_limit_auth_dep)])


def _password_token(user: User) -> str:
    return issue_token(user.id, user.email, timedelta(minutes=settings.jwt_expire_minutes))


def _oauth_token(user: User) -> str:
    return issue_token(user.id, user.email, timedelta(minutes=settings.oauth_jwt_expire_minutes))


@router.post("/request-otp", response_model=MessageResponse)
async def request_otp(
    data: RequestOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Email a registration code. Replaces any code sent earlier to the same address."""
    await otp.request_code(db, data.email)
    return MessageResponse(message="OTP sent to your email")


@router.post("/verify-register", response_model=RegisterResponse)
async def verify_register(
    data: VerifyRegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
    """Create a verified account from an emailed code and return a session token."""
    user = await identity.register_with_otp(db, data.email, data.otp, data.password)
    await db.commit()
    return RegisterResponse(id=user.id, email=user.email, token=_password_token(user))


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Authenticate with email and password and return JWT."""
    user = await identity.login_with_password(db, data.email, data.password)
    return TokenResponse(token=_password_token(user))


@router.get("/google")
async def google_redirect(
    google: GoogleOAuthClient = Depends(get_google_client),
) -> RedirectResponse:
    """Send the browser to Google's consent screen."""
    return RedirectResponse(google.authorization_url())


@router.post("/google-callback", response_model=TokenResponse)
async def google_callback(
    data: GoogleCallbackRequest,
    db: AsyncSession = Depends(get_db),
    google: GoogleOAuthClient = Depends(get_google_client),
) -> TokenResponse:
    """Finish the redirect flow with the authorization code the frontend received."""
    external = await google.exchange_code(data.code)
    user = await identity.login_with_external(db, external)
    await db.commit()
    return TokenResponse(token=_oauth_token(user))


@router.post("/google-signin", response_model=TokenResponse)
async def google_signin(
    data: GoogleSigninRequest,
    db: AsyncSession = Depends(get_db),
    google: GoogleOAuthClient = Depends(get_google_client),
) -> TokenResponse:
    """Sign in with a Google ID token obtained by the frontend."""
    external = await google.verify_id_token(data.token_id)
    user = await identity.login_with_external(db, external)
    await db.commit()
    return TokenResponse(token=_oauth_token(user))
