# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Auth endpoint tests: OTP registration, password login, rate limiting."""

import smtplib
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, update

from minijournal_server import rate_limit
from minijournal_server.auth import verify_token
from minijournal_server.config import settings
from minijournal_server.models import OtpCode, User
from minijournal_server.services import otp

pytestmark = pytest.mark.anyio


async def test_request_otp_requires_email(client: AsyncClient):
    """Missing email is a 400 with an error message."""
    r = await client.post("/auth/request-otp", json={})
    assert r.status_code == 400
    assert "email" in r.json()["error"]


async def test_register_and_login(client: AsyncClient, register):
    """A registered user gets a token at registration and at login."""
    data = await register("alice@example.com", "s3cret-pass")
    assert data["email"] == "alice@example.com"
    assert verify_token(data["token"]).user_id == data["id"]

    r = await client.post(
        "/auth/login",
        json={"email": "alice@example.com", "password": "s3cret-pass"},
    )
    assert r.status_code == 200
    identity = verify_token(r.json()["token"])
    assert identity.user_id == data["id"]
    assert identity.email == "alice@example.com"
    # password tokens live for a week
    assert identity.expires_at - identity.issued_at == timedelta(minutes=settings.jwt_expire_minutes)


async def test_wrong_password_and_unknown_email_look_the_same(client: AsyncClient, register):
    """Login failures never reveal whether the account exists."""
    await register("bob@example.com", "right-password")

    wrong = await client.post(
        "/auth/login", json={"email": "bob@example.com", "password": "wrong-password"}
    )
    unknown = await client.post(
        "/auth/login", json={"email": "nobody@example.com", "password": "wrong-password"}
    )
    assert wrong.status_code == unknown.status_code == 400
    assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}


async def test_second_request_invalidates_first_code(client: AsyncClient, sent_codes, monkeypatch):
    """Only the most recently issued code registers the account."""
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(otp, "generate_otp", lambda: next(codes))

    for _ in range(2):
        r = await client.post("/auth/request-otp", json={"email": "carol@example.com"})
        assert r.status_code == 200
        assert r.json() == {"message": "OTP sent to your email"}
    assert sent_codes["carol@example.com"] == ["111111", "222222"]

    r = await client.post(
        "/auth/verify-register",
        json={"email": "carol@example.com", "otp": "111111", "password": "pw"},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid or expired OTP"}

    r = await client.post(
        "/auth/verify-register",
        json={"email": "carol@example.com", "otp": "222222", "password": "pw"},
    )
    assert r.status_code == 200


async def test_code_cannot_register_twice(client: AsyncClient, sent_codes, db):
    """A consumed code is rejected and no second user is created."""
    await client.post("/auth/request-otp", json={"email": "dave@example.com"})
    code = sent_codes["dave@example.com"][0]
    body = {"email": "dave@example.com", "otp": code, "password": "pw"}

    first = await client.post("/auth/verify-register", json=body)
    second = await client.post("/auth/verify-register", json=body)
    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json() == {"error": "Invalid or expired OTP"}

    count = await db.scalar(select(func.count()).select_from(User))
    assert count == 1


async def test_expired_code_rejected(client: AsyncClient, sent_codes, db):
    """A code past its expiry does not verify."""
    await client.post("/auth/request-otp", json={"email": "erin@example.com"})
    await db.execute(
        update(OtpCode)
        .where(OtpCode.email == "erin@example.com")
        .values(expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
    )
    await db.commit()

    r = await client.post(
        "/auth/verify-register",
        json={"email": "erin@example.com", "otp": sent_codes["erin@example.com"][0], "password": "pw"},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid or expired OTP"}


async def test_request_otp_for_registered_email_rejected(client: AsyncClient, register):
    await register("frank@example.com")
    r = await client.post("/auth/request-otp", json={"email": "frank@example.com"})
    assert r.status_code == 400
    assert r.json() == {"error": "Email already registered"}


async def test_verify_register_requires_all_fields(client: AsyncClient):
    r = await client.post("/auth/verify-register", json={"email": "gina@example.com", "otp": "123456"})
    assert r.status_code == 400
    assert "password" in r.json()["error"]


async def test_email_delivery_failure_reported(client: AsyncClient, monkeypatch):
    """SMTP failure after the code is stored is still a 500 for the caller."""

    def broken_smtp(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, "service not available")

    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
    monkeypatch.setattr(settings, "smtp_user", "mailer")
    monkeypatch.setattr(smtplib, "SMTP", broken_smtp)

    r = await client.post("/auth/request-otp", json={"email": "hank@example.com"})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to send OTP"}


async def test_entries_require_token(client: AsyncClient):
    """No header, garbage and a badly signed token all give the same 401."""
    no_header = await client.get("/entries")
    garbage = await client.get("/entries", headers={"Authorization": "Bearer not-a-jwt"})
    assert no_header.status_code == garbage.status_code == 401
    assert no_header.json() == garbage.json() == {"error": "Unauthorized"}


async def test_login_rate_limited(client: AsyncClient, rate_limited):
    """Repeated login attempts from one client are cut off with 429."""
    body = {"email": "ivy@example.com", "password": "guess"}
    statuses = [
        (await client.post("/auth/login", json=body)).status_code
        for _ in range(rate_limit.LIMITS["/auth/login"] + 1)
    ]
    assert statuses[:-1] == [400] * rate_limit.LIMITS["/auth/login"]
    assert statuses[-1] == 429
    r = await client.post("/auth/login", json=body)
    assert r.json() == {"error": "Too many requests. Please try again later."}


async def test_forwarded_for_from_untrusted_peer_is_ignored(client: AsyncClient, rate_limited):
    """A fresh X-Forwarded-For per request does not buy fresh attempts."""
    body = {"email": "ivy@example.com", "password": "guess"}
    statuses = [
        (
            await client.post("/auth/login", json=body, headers={"X-Forwarded-For": f"10.0.{i}.1"})
        ).status_code
        for i in range(rate_limit.LIMITS["/auth/login"] + 5)
    ]
    assert statuses.count(429) == 5
    assert len(rate_limited) == 1


async def test_forwarded_for_from_trusted_proxy(client: AsyncClient, rate_limited, monkeypatch):
    """Behind a trusted proxy each forwarded client has its own budget."""
    monkeypatch.setattr(settings, "trusted_proxies", "127.0.0.1")
    body = {"email": "ivy@example.com", "password": "guess"}
    limit = rate_limit.LIMITS["/auth/login"]

    for i in range(limit):
        r = await client.post("/auth/login", json=body, headers={"X-Forwarded-For": f"203.0.113.{i}, 127.0.0.1"})
        assert r.status_code == 400

    one_client = [
        (await client.post("/auth/login", json=body, headers={"X-Forwarded-For": "198.51.100.7"})).status_code
        for _ in range(limit + 1)
    ]
    assert one_client[-1] == 429
    assert one_client[:-1] == [400] * limit
