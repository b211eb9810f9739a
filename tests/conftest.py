# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. Tests run against a throwaway SQLite database configured below."""

import os
import tempfile
from pathlib import Path

_tmp = Path(tempfile.mkdtemp(prefix="minijournal-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_tmp / "uploads")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["SMTP_HOST"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from minijournal_server import rate_limit  # noqa: E402
from minijournal_server.config import settings  # noqa: E402
from minijournal_server.database import async_session_maker, engine, init_db  # noqa: E402
from minijournal_server.main import app  # noqa: E402
from minijournal_server.models import Base  # noqa: E402
from minijournal_server.services import email as email_service  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def tables():
    """Fresh, empty tables for one test."""
    await init_db()
    yield
    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())
    # pooled connections belong to this test's event loop
    await engine.dispose()


@pytest.fixture
async def db(tables):
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def client(tables):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def sent_codes(monkeypatch) -> dict[str, list[str]]:
    """Capture OTP emails instead of sending them: email -> codes in send order."""
    outbox: dict[str, list[str]] = {}

    async def fake_send_otp_email(to: str, code: str, expire_minutes: int) -> None:
        outbox.setdefault(to, []).append(code)

    monkeypatch.setattr(email_service, "send_otp_email", fake_send_otp_email)
    return outbox


@pytest.fixture
def register(client: AsyncClient, sent_codes):
    """Register a user through the OTP flow and return the verify-register JSON."""

    async def _register(email: str, password: str = "testpass123") -> dict:
        r = await client.post("/auth/request-otp", json={"email": email})
        assert r.status_code == 200, r.text
        code = sent_codes[email][-1]
        r = await client.post(
            "/auth/verify-register",
            json={"email": email, "otp": code, "password": password},
        )
        assert r.status_code == 200, r.text
        return r.json()

    return _register


@pytest.fixture
def upload_dir() -> Path:
    return Path(settings.upload_dir)


@pytest.fixture
def rate_limited(monkeypatch) -> rate_limit.RateLimiter:
    """Turn rate limiting on with empty counters for one test."""
    fresh = rate_limit.RateLimiter(rate_limit.LIMITS)
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    monkeypatch.setattr(rate_limit, "limiter", fresh)
    return fresh
