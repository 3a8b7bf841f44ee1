"""
guildcoins.api.main — FastAPI application entry point
========================================================

Run with::

    uvicorn guildcoins.api.main:app --reload --port 8000

Every response is either the procedure's payload (queries), a
``{"status": "success", "data": …}`` envelope (mutations), or a
``{"status": "error", "error": {code, message, retryable}}`` envelope.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from guildcoins.api.deps import get_engine  # noqa: E402
from guildcoins.api.routes.auth import router as auth_router  # noqa: E402
from guildcoins.api.routes.users import router as users_router  # noqa: E402
from guildcoins.constants import STATUS_ERROR  # noqa: E402
from guildcoins.services.errors import (  # noqa: E402
    Internal,
    LedgerError,
    classify_validation_errors,
)

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("guildcoins API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("guildcoins API shutting down")


app = FastAPI(
    title="guildcoins API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------
def _error_response(error: LedgerError) -> JSONResponse:
    return JSONResponse(
        status_code=error.http_status,
        content={"status": STATUS_ERROR, "error": error.to_dict()},
    )


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = classify_validation_errors(exc.errors())
    logger.info("Rejected %s %s: %s", request.method, request.url.path, error.detail)
    return _error_response(error)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(Internal(str(exc)))


# Mount routers
app.include_router(users_router, prefix="/api")
app.include_router(auth_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
