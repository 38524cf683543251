"""
api/main.py -- FastAPI application entry point for passgate.

Exposes the credential and token lifecycle over HTTP: registration, login,
the authenticated profile route, and a health probe.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces the global per-address rate limit
  4. security_headers      -- nosniff / frame / referrer / HSTS headers
  5. log_requests          -- one access-log line per request

Lifespan builds the UserStore and TokenIssuer from one Settings instance and
parks them on app.state. A database that cannot be reached or a users table
that cannot be created aborts startup; so does a missing JWT_SECRET, which
fails when this module loads Settings.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, FieldError, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.errors import AuthError, ValidationError
from auth.store import UserStore
from auth.tokens import TokenIssuer
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
logger = logging.getLogger("passgate.api")

# Settings are loaded once, here, so a missing JWT_SECRET fails the import
# before any socket is bound. The lifespan reuses the same cached instance.
_settings = get_settings()
logging.getLogger("passgate").setLevel(_settings.log_level)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Connection check first -- an unreachable database aborts startup.
      2. create_table second -- idempotent DDL, must succeed before any request.
      3. TokenIssuer last -- pure configuration, cannot fail once Settings loaded.
    """
    settings = get_settings()
    app.state.started_at = time.monotonic()
    logger.info("passgate API starting up")
    store = UserStore(settings.database_url, bcrypt_rounds=settings.bcrypt_rounds)
    store.check_connection()
    logger.info("Database connection established")
    store.create_table()
    logger.info("Users table ready")
    app.state.user_store = store
    app.state.tokens = TokenIssuer.from_settings(settings)
    limiter.enabled = settings.rate_limit_enabled

    yield

    store.close()
    logger.info("passgate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="passgate API",
    description="User registration, password login and bearer-token authentication.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps each add_middleware() call around the previous stack, so the
# last registration is the outermost layer. Registered innermost-first below.
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


@app.middleware("http")
async def security_headers(request: Request, call_next):
    """Set the browser hardening headers on every response."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
    response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    return response


app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly: {"success": false, "message": ..., "errors"?: [...]}.
# ---------------------------------------------------------------------------

_FIELD_LABELS = {
    "body": "Request body",
    "email": "Email",
    "password": "Password",
    "firstName": "First name",
    "lastName": "Last name",
}


def _error_response(status_code: int, message: str, errors: list[FieldError] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, errors=errors).model_dump(exclude_none=True),
    )


def _field_message(field: str, err: dict) -> str:
    """Translate one pydantic error into the human-readable message clients see."""
    label = _FIELD_LABELS.get(field, field)
    kind = err.get("type", "")
    ctx = err.get("ctx") or {}
    if kind == "missing":
        return f"{label} is required"
    if kind == "json_invalid":
        return "Request body must be valid JSON"
    if field == "email":
        return "Please provide a valid email address"
    if kind == "string_too_short":
        if ctx.get("min_length") == 1:
            return f"{label} is not allowed to be empty"
        return f"{label} must be at least {ctx.get('min_length')} characters long"
    if kind == "string_too_long":
        return f"{label} cannot exceed {ctx.get('max_length')} characters"
    if kind == "string_type":
        return f"{label} must be a string"
    if kind == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return str(err.get("msg", "Invalid value"))


def field_errors(errors: list[dict]) -> list[FieldError]:
    """Collect every pydantic error as a {field, message} pair (not fail-fast)."""
    result: list[FieldError] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = "body" if err.get("type") == "json_invalid" or not loc else loc[0]
        result.append(FieldError(field=field, message=_field_message(field, err)))
    return result


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render any typed auth-layer error with its own status and message.

    Server-side failures (StorageError) are logged with the chained driver
    exception; the client only ever sees the generic message.
    """
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s",
            exc.__class__.__name__,
            request.method,
            request.url.path,
            exc_info=exc.__cause__ or exc,
        )
        return _error_response(exc.status_code, "Internal server error")
    errors = [FieldError(**e) for e in exc.errors] if isinstance(exc, ValidationError) else None
    return _error_response(exc.status_code, exc.message, errors)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with every field error when the request body fails validation."""
    errors = [e.model_dump() for e in field_errors(exc.errors())]
    return await auth_error_handler(request, ValidationError(errors))


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Plain def: SlowAPIMiddleware calls this handler directly, outside the
    async exception machinery, for limits it enforces itself.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    if request.url.path.startswith("/api/v1/auth/"):
        message = "Too many authentication attempts, please try again later."
    else:
        message = "Too many requests from this IP, please try again later."
    logger.warning("Rate limit exceeded on %s %s", request.method, request.url.path)
    response = _error_response(429, message)
    response.headers["Retry-After"] = str(_retry_after(request, exc))
    return response


def _retry_after(request: Request, exc: RateLimitExceeded) -> int:
    """Seconds until the exceeded window resets.

    slowapi records the failing limit and its storage keys on
    request.state.view_rate_limit before raising; without them, fall back to
    the full window length.
    """
    current = getattr(request.state, "view_rate_limit", None)
    if current is None:
        return exc.limit.limit.get_expiry()
    item, keys = current
    reset_at, _remaining = limiter.limiter.get_window_stats(item, *keys)
    return max(1, int(reset_at - time.time()) + 1)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return the envelope for routing errors (unknown path, wrong method)."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    response = _error_response(exc.status_code, message)
    for name, value in (exc.headers or {}).items():
        response.headers[name] = value
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. Exempt from the global rate limit
# so load balancers and monitors are never throttled. @limiter.exempt sits
# above @app.get: the exemption is recorded by name, and FastAPI keeps the
# undecorated coroutine.
# ---------------------------------------------------------------------------


@limiter.exempt
@app.get("/api/v1/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, server time and seconds since the lifespan started."""
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.monotonic() - request.app.state.started_at, 3),
        version=API_VERSION,
    )
