"""
api/main.py -- FastAPI application entry point for Lot Market.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan reads Settings once and wires the explicit object graph:
  UserStore + TokenIssuer + ResetPasswordMailer -> AuthService
  LotStore -> LotService
Everything hangs off app.state; route handlers and dependencies read it
from request.app.state, so tests can swap any piece.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.lots import router as lots_router
from auth.mailer import ResetPasswordMailer
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings
from core.errors import MarketplaceError
from lots.service import LotService
from lots.store import LotStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("lotmarket.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build stores and services on startup; dispose engines on shutdown.

    Startup order matters: services take their stores and the token issuer
    as constructor arguments, so those exist first.
    """
    settings = get_settings()
    logger.info("Lot Market API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.lot_store = LotStore(settings.database_url)
    app.state.token_issuer = TokenIssuer(settings.secret_key, settings.token_expire_seconds)
    app.state.mailer = ResetPasswordMailer(
        api_key=settings.brevo_api_key,
        sender_email=settings.mail_sender_email,
        sender_name=settings.mail_sender_name,
        reset_url=settings.reset_password_url,
    )
    if not settings.brevo_api_key:
        logger.warning("BREVO_API_KEY is not set -- forgot-password emails will fail")
    app.state.auth_service = AuthService(app.state.user_store, app.state.token_issuer, app.state.mailer)
    app.state.lot_service = LotService(app.state.lot_store, owner_only_writes=settings.lot_owner_only_writes)
    logger.info("Stores initialized (lot_owner_only_writes=%s)", settings.lot_owner_only_writes)

    yield

    app.state.lot_store.close()
    app.state.user_store.close()
    logger.info("Lot Market API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Lot Market API",
    description="Auction marketplace backend: authentication and lot management.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(lots_router, prefix="/api", tags=["Lots"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope
# ({"statusCode", "message", "error"}) so clients parse errors uniformly.
# ---------------------------------------------------------------------------


def _error(status_code: int, message, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(status_code=status_code, message=message, error=code).model_dump(by_alias=True),
    )


def _field_name(loc: tuple) -> str:
    # loc is ("body", "title") / ("query", "own"); drop the source prefix.
    parts = [str(p) for p in loc[1:]]
    return ".".join(parts) if parts else "request body"


def validation_messages(errors: list[dict]) -> list[str]:
    """Translate Pydantic error dicts into one human-readable string per field error."""
    messages: list[str] = []
    for err in errors:
        field = _field_name(tuple(err.get("loc", ())))
        kind = err.get("type", "")
        ctx = err.get("ctx") or {}
        if kind in ("missing", "string_too_short") or err.get("input") == "":
            msg = f"{field} should not be empty"
        elif kind == "string_too_long":
            msg = f"{field} must be shorter than or equal to {ctx.get('max_length')} characters"
        elif kind == "greater_than_equal":
            msg = f"{field} must not be less than {ctx.get('ge')}"
        elif kind == "enum":
            msg = f"{field} must be one of the following values: {ctx.get('expected')}"
        elif kind in ("float_parsing", "float_type", "finite_number"):
            msg = f"{field} must be a number"
        elif kind.startswith("datetime"):
            msg = f"{field} must be a valid date"
        elif kind == "string_pattern_mismatch" and field == "email":
            msg = "email must be an email"
        elif kind == "json_invalid":
            msg = "request body must be valid JSON"
        else:
            msg = f"{field}: {err.get('msg', 'invalid value')}"
        messages.append(msg)
    return messages


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Render domain errors raised by AuthService / LotService."""
    return _error(exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one message per invalid field."""
    return _error(400, validation_messages(exc.errors()), "validation_error")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured error for HTTP exceptions (401 from the bearer dependency, unknown routes).

    When detail is already a structured dict ({"code", "message"}), use it
    directly rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        response = _error(exc.status_code, exc.detail.get("message", ""), exc.detail.get("code", "error"))
    else:
        response = _error(exc.status_code, str(exc.detail), f"http_{exc.status_code}")
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a Retry-After header when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "Too many requests.", "rate_limited")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors (store down, mail delivery failure).

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "An unexpected error occurred.", "internal_error")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No auth, no rate limit.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
