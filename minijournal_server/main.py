# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Mini Couple Journal Server - Main FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from minijournal_server.config import settings
from minijournal_server.database import init_db
from minijournal_server.errors import register_error_handlers
from minijournal_server.routers import auth, entries
from minijournal_server.services.uploads import UPLOAD_URL_PREFIX

logger = logging.getLogger(__name__)


def _get_cors_origins() -> list[str]:
    raw = (settings.cors_origins or "*").strip()
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await init_db()
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    if not settings.google_client_id:
        logger.info("GOOGLE_CLIENT_ID not set - Google sign-in endpoints will answer 500")
    if not settings.smtp_host:
        logger.info("SMTP_HOST not set - OTP emails are written to the log instead of sent")
    yield


app = FastAPI(
    title="Mini Couple Journal Server",
    description="Journal entries with images, behind email/OTP, password and Google login",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status, and duration for each request (no body or auth headers)."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, duration_ms)
    return response


app.include_router(auth.router)
app.include_router(entries.router)
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/")
async def root():
    """Health check / API info."""
    return {
        "name": "Mini Couple Journal API",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health():
    """Health check for load balancers."""
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
