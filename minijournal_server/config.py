# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Configuration for Mini Couple Journal Server."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./journal.db"

    # JWT
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 10080  # 7 days, password and registration logins
    oauth_jwt_expire_minutes: int = 60  # Google logins

    # Password hashing (bcrypt log2 rounds)
    bcrypt_rounds: int = Field(default=10, ge=10, le=16)

    # One-time codes
    otp_expire_minutes: int = 10

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    frontend_url: str = "http://localhost:3000"
    oauth_timeout_seconds: float = 10.0

    # Email (OTP delivery). Logs to console when SMTP is not configured.
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str = "noreply@minijournal.local"
    smtp_timeout_seconds: float = 10.0

    # Uploaded entry images, served under /uploads
    upload_dir: Path = Path("uploads")
    max_images_per_entry: int = 10
    max_image_bytes: int = 5 * 1024 * 1024

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    # CORS: comma-separated origins, or "*" for allow all
    cors_origins: str = "*"
    rate_limit_enabled: bool = True
    # Comma-separated proxy IPs whose X-Forwarded-For is believed
    trusted_proxies: str = ""

    @property
    def trusted_proxy_set(self) -> frozenset[str]:
        return frozenset(p.strip() for p in self.trusted_proxies.split(",") if p.strip())

    @property
    def oauth_redirect_uri(self) -> str:
        return f"{self.frontend_url.rstrip('/')}/auth/callback"


settings = Settings()
