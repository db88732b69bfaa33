# src/throttlelife/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and registers routers.
Business logic lives in `throttlelife.incidents`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from throttlelife.core.logging import configure_logging

from .routes import router

_LOCALHOST_ORIGINS = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _cors_options() -> dict | None:
    """
    CORS options for the rider web client, read from env.

    THROTTLELIFE_CORS_ORIGINS is a comma-separated allow list. When it is empty,
    localhost origins are allowed unless THROTTLELIFE_CORS_ALLOW_LOCAL=0.
    """
    origins = [s.strip() for s in os.getenv("THROTTLELIFE_CORS_ORIGINS", "").split(",") if s.strip()]
    allow_local = os.getenv("THROTTLELIFE_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
    regex = os.getenv("THROTTLELIFE_CORS_ALLOW_ORIGIN_REGEX", "").strip()
    if not regex and allow_local and not origins:
        regex = _LOCALHOST_ORIGINS
    if not origins and not regex:
        return None
    return {
        "allow_origins": origins,
        "allow_origin_regex": regex or None,
        "allow_credentials": False,
        "allow_methods": ["GET", "POST"],
        "allow_headers": ["*"],
    }


configure_logging()

app = FastAPI(title="ThrottleLife Route Incidents API", version="0.1.0")

cors = _cors_options()
if cors is not None:
    app.add_middleware(CORSMiddleware, **cors)

app.include_router(router)


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}
