# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication: password hashing and JWT session tokens.

Tokens are stateless. There is no revocation list, so a token stays usable
until its ``exp`` claim passes.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwk, jws, jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_decode
from passlib.context import CryptContext

from minijournal_server.config import settings
from minijournal_server.errors import TokenError, TokenErrorReason

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TokenIdentity:
    """Identity carried by a verified session token."""

    user_id: int
    email: str
    issued_at: datetime
    expires_at: datetime


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain, hashed)


def dummy_verify_password() -> None:
    """Spend the same time as a real verification when there is no hash to check."""
    pwd_context.dummy_verify()


def issue_token(
    user_id: int,
    email: str,
    ttl: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    """Create a signed session token for a user."""
    issued = now or datetime.now(timezone.utc)
    expire = issued + (ttl if ttl is not None else timedelta(minutes=settings.jwt_expire_minutes))
    claims = {
        "sub": str(user_id),
        "email": email,
        "iat": int(issued.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _unverified_claims(token: str) -> dict[str, Any]:
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise TokenError(TokenErrorReason.MALFORMED) from e
    if not isinstance(claims, dict):
        raise TokenError(TokenErrorReason.MALFORMED)
    return claims


def _check_signature(token: str) -> None:
    # jws.verify folds signature mismatches into a generic JWSError,
    # so the HMAC is checked here to tell them apart from malformed input.
    try:
        header = jws.get_unverified_header(token)
        signing_input, encoded_signature = token.rsplit(".", 1)
        signature = base64url_decode(encoded_signature.encode("utf-8"))
    except (JOSEError, ValueError) as e:
        raise TokenError(TokenErrorReason.MALFORMED) from e
    if header.get("alg") != settings.jwt_algorithm:
        raise TokenError(TokenErrorReason.MALFORMED)
    key = jwk.construct(settings.jwt_secret, settings.jwt_algorithm)
    if not key.verify(signing_input.encode("utf-8"), signature):
        raise TokenError(TokenErrorReason.BAD_SIGNATURE)


def verify_token(token: str | None, now: datetime | None = None) -> TokenIdentity:
    """Validate a session token and return the identity it carries.

    Raises TokenError with a reason telling missing, malformed, expired and
    badly signed tokens apart.
    """
    if not token:
        raise TokenError(TokenErrorReason.MISSING)
    payload = _unverified_claims(token)
    _check_signature(token)

    # Expiry is checked here rather than by jose so callers can pin the clock.
    try:
        user_id = int(payload["sub"])
        email = str(payload["email"])
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError) as e:
        raise TokenError(TokenErrorReason.MALFORMED) from e

    current = now or datetime.now(timezone.utc)
    if current >= expires_at:
        raise TokenError(TokenErrorReason.EXPIRED)
    return TokenIdentity(user_id=user_id, email=email, issued_at=issued_at, expires_at=expires_at)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenIdentity:
    """Identity from the ``Authorization: Bearer`` header. Raises 401 if absent or invalid."""
    token = credentials.credentials if credentials else None
    return verify_token(token)
