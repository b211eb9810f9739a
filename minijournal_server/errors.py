# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Domain errors and their translation to JSON responses."""

import enum
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class JournalError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(JournalError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class AuthError(JournalError):
    """Bad credentials. Messages stay generic so accounts cannot be enumerated."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Authentication failed"


class InvalidCredentials(AuthError):
    message = "Invalid credentials"


class InvalidOrExpiredOtp(AuthError):
    message = "Invalid or expired OTP"


class InvalidExternalAssertion(AuthError):
    message = "Invalid Google token"


class TokenErrorReason(str, enum.Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"


class TokenError(JournalError):
    """Bearer token rejected. The reason is kept for logs, never sent to the client."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"

    def __init__(self, reason: TokenErrorReason):
        self.reason = reason
        super().__init__()


class ConflictError(JournalError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Conflict"


class EmailAlreadyVerified(ConflictError):
    message = "Email already registered"


class EmailAlreadyRegistered(ConflictError):
    message = "Email already registered"


class DependencyError(JournalError):
    """An outside service (SMTP, Google) failed or did not answer in time."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Upstream service failure"


class EmailDeliveryFailed(DependencyError):
    message = "Failed to send OTP"


class OAuthProviderError(DependencyError):
    message = "Google authentication failed"


class NotFoundOrForbidden(JournalError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class EntryNotFound(NotFoundOrForbidden):
    message = "Entry not found"


class StorageError(JournalError):
    message = "Storage failure"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def journal_error_handler(request: Request, exc: JournalError) -> JSONResponse:
    if isinstance(exc, TokenError):
        logger.info("Rejected token on %s %s: %s", request.method, request.url.path, exc.reason.value)
    elif exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message,
            exc_info=exc.__cause__,
        )
    else:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    response = error_response(exc.status_code, exc.message)
    if isinstance(exc, TokenError):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report FastAPI body/form validation failures as 400 with a readable message."""
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        problems.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    message = "; ".join(problems) or ValidationError.message
    logger.warning("Validation failed on %s %s: %s", request.method, request.url.path, message)
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised HTTP errors (404 route, 429 rate limit) in the same body shape."""
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(StorageError.status_code, StorageError.message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(JournalError, journal_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
