"""
api/main.py -- FastAPI application entry point for the Barnacle API.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for the configured browser origins
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter

Lifespan handles startup (credential store, auth service) and shutdown
(dispose the DB engine) symmetrically.

Every response, success or failure, uses the {success, message?, data?}
envelope. Failure handlers are registered at the bottom of this module.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ApiResponse, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.dependencies import try_get_current_user
from auth.errors import AuthError
from auth.models import Identity
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("barnacle.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the credential store and auth service; dispose them on shutdown."""
    logger.info("Barnacle API starting up (debug=%s)", _settings.debug)
    app.state.user_store = UserStore(_settings.database_url)
    app.state.auth_service = AuthService(app.state.user_store)
    if not app.state.user_store.has_users():
        logger.warning("No user accounts yet -- run `python main.py seed` to create the demo accounts")
    logger.info("Auth initialized")

    yield

    app.state.user_store.close()
    logger.info("Barnacle API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Barnacle API",
    description="Maritime fleet management demo -- authentication and session API.",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])


# ---------------------------------------------------------------------------
# Service banner and health
# ---------------------------------------------------------------------------


@app.get("/", tags=["Health"])
def root(identity: Identity | None = Depends(try_get_current_user)) -> JSONResponse:
    """Service banner. Uses optional auth: an invalid or missing token is
    simply anonymous here, never a 401."""
    data: dict = {"authenticated": identity is not None}
    if identity is not None:
        data["user"] = identity.to_dict()
    return JSONResponse(content=ApiResponse(success=True, message="Barnacle API", data=data).model_dump())


@app.get("/api/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version. Not rate limited."""
    return HealthResponse(version=API_VERSION)


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same envelope so clients can rely on `success` and
# `message` without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, **extra).model_dump(exclude_none=True),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    response = _error(exc.status_code, exc.message)
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrong field types. Same 400 as a field-rule failure."""
    return _error(400, "Request validation failed")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429. Retry-After tells clients how many seconds to wait."""
    limit_item = getattr(exc.limit, "limit", None)
    retry_after = limit_item.get_expiry() if limit_item is not None else 60
    response = _error(429, "Too many requests. Please try again later.")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The exception is always logged with its traceback. The client gets a
    generic message; the exception text and stack are added only in DEBUG
    mode.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    if _settings.debug:
        return _error(
            500,
            "Internal server error",
            error=str(exc),
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
    return _error(500, "Internal server error")
