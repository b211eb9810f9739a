# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Google OAuth integration: authorization-code exchange and ID token checks."""

import logging
from urllib.parse import urlencode

import httpx

from minijournal_server.config import settings
from minijournal_server.errors import InvalidExternalAssertion, OAuthProviderError
from minijournal_server.services.identity import ExternalIdentity

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleOAuthClient:
    """Talks to Google's OAuth endpoints with a bounded timeout.

    Provider refusals raise InvalidExternalAssertion; network failures and
    timeouts raise OAuthProviderError.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _require_configured(self) -> None:
        if not self.client_id:
            raise OAuthProviderError("Google sign-in is not configured")

    def authorization_url(self) -> str:
        self._require_configured()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "email profile",
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ExternalIdentity:
        """Trade an authorization code for the signed-in user's email and Google id."""
        self._require_configured()
        try:
            async with self._client() as client:
                r = await client.post(
                    TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "grant_type": "authorization_code",
                        "redirect_uri": self.redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
                token_data = r.json()
                if r.status_code >= 400 or "error" in token_data:
                    logger.info("Google rejected authorization code: %s", token_data.get("error"))
                    raise InvalidExternalAssertion(
                        token_data.get("error_description") or "Invalid authorization code"
                    )
                access_token = token_data.get("access_token")
                if not access_token:
                    raise InvalidExternalAssertion("Invalid authorization code")

                r = await client.get(
                    USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                r.raise_for_status()
                user_data = r.json()
        except httpx.HTTPError as e:
            logger.warning("Google OAuth code exchange failed: %s", e)
            raise OAuthProviderError() from e
        except ValueError as e:
            logger.warning("Google OAuth returned invalid JSON: %s", e)
            raise OAuthProviderError() from e
        return _identity_from(user_data.get("email"), user_data.get("id"), user_data.get("verified_email"))

    async def verify_id_token(self, token_id: str) -> ExternalIdentity:
        """Check a Google ID token issued for this app and return its identity."""
        self._require_configured()
        try:
            async with self._client() as client:
                r = await client.get(TOKENINFO_URL, params={"id_token": token_id})
                if r.status_code != 200:
                    logger.info("Google rejected ID token (HTTP %s)", r.status_code)
                    raise InvalidExternalAssertion()
                payload = r.json()
        except httpx.HTTPError as e:
            logger.warning("Google tokeninfo request failed: %s", e)
            raise OAuthProviderError() from e
        except ValueError as e:
            logger.warning("Google tokeninfo returned invalid JSON: %s", e)
            raise OAuthProviderError() from e
        if payload.get("aud") != self.client_id:
            logger.warning("Google ID token issued for another audience")
            raise InvalidExternalAssertion()
        if payload.get("iss") not in ISSUERS:
            logger.warning("Google ID token from unexpected issuer %r", payload.get("iss"))
            raise InvalidExternalAssertion()
        return _identity_from(payload.get("email"), payload.get("sub"), payload.get("email_verified"))


def _identity_from(email: str | None, external_id: str | None, email_verified: bool | str | None) -> ExternalIdentity:
    if not email or not external_id:
        raise InvalidExternalAssertion()
    # userinfo sends a boolean, tokeninfo the string "true"
    if email_verified not in (True, "true"):
        logger.warning("Google account %s has an unverified email", external_id)
        raise InvalidExternalAssertion("Google account email is not verified")
    return ExternalIdentity(email=email, external_id=str(external_id))


def get_google_client() -> GoogleOAuthClient:
    """FastAPI dependency building the client from settings."""
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.oauth_redirect_uri,
        timeout=settings.oauth_timeout_seconds,
    )
