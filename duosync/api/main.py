"""DuoSync HTTP API.

Run locally with:
    uvicorn duosync.api.main:app --reload --port 8000

Environment: DATABASE_URL / DB_* for storage, TIMELINE_* and MAX_INTERVAL_SPAN_HOURS
for the timeline engine, LOG_* for logging, CORS_ORIGINS and ADMIN_API_KEY for access.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from duosync.api.errors import register_exception_handlers
from duosync.api.limiter import limiter
from duosync.api.routers import intervals, timeline, users
from duosync.config import load_postgres_config, load_timeline_config
from duosync.core.logger import configure as configure_logging
from duosync.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
_DEFAULT_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def _cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", _DEFAULT_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _admin_api_key() -> Optional[str]:
    return os.environ.get("ADMIN_API_KEY", "").strip() or None


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    db_config = load_postgres_config()
    await ensure_database_exists(db_config)
    app.state.session_factory = build_session_factory(build_engine(db_config))
    await init_db(db_config)

    timeline_config = load_timeline_config()
    app.state.timeline_config = timeline_config
    logger.info(
        "API started",
        extra={
            "timeout_seconds": timeline_config.timeout_seconds,
            "default_timezone": timeline_config.default_timezone,
        },
    )

    try:
        yield
    finally:
        await close_engine()
        logger.info("API stopped")


app = FastAPI(
    title="DuoSync API",
    version="1.0.0",
    description="Daily availability timelines for one user or a pair of users.",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_API_KEY = _admin_api_key()


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    # Open mode when ADMIN_API_KEY is unset
    guarded = _API_KEY is not None and request.url.path.startswith(API_PREFIX)
    if guarded and request.headers.get("X-Api-Key") != _API_KEY:
        return JSONResponse(
            status_code=401,
            content={"error": {"code": "UNAUTHORIZED", "message": "Missing or wrong X-Api-Key header"}},
        )
    return await call_next(request)


for _module in (timeline, users, intervals):
    app.include_router(_module.router, prefix=API_PREFIX)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
