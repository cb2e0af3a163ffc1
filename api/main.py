"""
api/main.py -- FastAPI application entry point for the ratings service.

Run with:  python main.py
           uvicorn asgi:app --reload

Middleware stack (outermost to innermost; Starlette wraps the last one
registered around everything before it):
  1. log_requests          -- one log line per request with status and latency
  2. secure_headers        -- nosniff / frame deny / XSS protection on every response
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  4. CORSMiddleware        -- adds CORS headers for allowed browser origins
  5. TrustedHostMiddleware -- rejects requests with unexpected Host headers

Lifespan opens the database, seeds the system roles and the super-admin, and
wires the services into app.state; shutdown disposes of the engine.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.deps import require_json
from api.errors import error_response
from api.limiter import limiter
from api.models import HealthResponse
from api.routes.v1.oauth import router as oauth_router
from api.routes.v1.ratings import router as ratings_router
from api.routes.v1.roles import router as roles_router
from api.routes.v1.users import router as users_router
from auth.roles import RoleService
from auth.store import RoleStore, UserStore
from auth.tokens import hash_password
from auth.users import UserService, normalize_email
from core.config import Settings, get_settings
from core.db import make_engine
from core.errors import Invalid, ModelError, NotFound, ValidationError
from ratings.service import RatingService
from ratings.store import RatingStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ratingsapp.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def init_services(app: FastAPI, engine: Engine, settings: Settings) -> None:
    """Seed default data on engine and attach the services to app.state.

    Seeding order matters: the super-admin references role 1.
    """
    role_store = RoleStore(engine)
    role_store.ensure_defaults()
    user_store = UserStore(engine)
    user_store.ensure_admin(normalize_email(settings.admin_email), hash_password(settings.admin_password))

    app.state.engine = engine
    app.state.user_service = UserService(user_store, role_store)
    app.state.role_service = RoleService(role_store)
    app.state.rating_service = RatingService(RatingStore(engine), app.state.user_service)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database and wire the services for the life of the server."""
    logger.info("Ratings API starting up")
    engine = make_engine(_settings.database_url)
    init_services(app, engine, _settings)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))

    yield

    engine.dispose()
    logger.info("Ratings API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Ratings API",
    description="Ratings with role-based access control and OAuth 2.0 style token authentication.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Each add_middleware() / @app.middleware call wraps everything registered
# before it, so the request meets them bottom-up: log_requests ->
# secure_headers -> SlowAPI -> CORS -> TrustedHost. A rejected Host header
# still gets the security headers and a log line.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def secure_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "deny"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    return response


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time is captured around call_next to report latency.
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
#
# The token endpoint is form-encoded and unauthenticated; every other router
# requires JSON (api.deps.require_json) and a bearer token (per route).
# ---------------------------------------------------------------------------

_json_only = [Depends(require_json)]

app.include_router(oauth_router, prefix="/api/v1", tags=["OAuth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"], dependencies=_json_only)
app.include_router(roles_router, prefix="/api/v1", tags=["Roles"], dependencies=_json_only)
app.include_router(ratings_router, prefix="/api/v1", tags=["Ratings"], dependencies=_json_only)


# ---------------------------------------------------------------------------
# Exception handlers
#
# Resource routes answer {"error": code} (plus "fields" for validation
# errors); see api/errors.py. The token endpoint builds its OAuth responses
# itself and only reaches these for rate limiting and internal errors.
# ---------------------------------------------------------------------------


@app.exception_handler(ModelError)
async def model_error_handler(request: Request, exc: ModelError) -> JSONResponse:
    logger.debug("%s %s -> %s (%s)", request.method, request.url.path, exc.public, exc)
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI's request validation onto the public error codes.

    A path parameter that is not an integer names no resource (404); a body
    that cannot be parsed into the request model is invalid_json (400);
    anything else is a field error on the offending parameter.
    """
    locations = [err.get("loc", ()) for err in exc.errors()]
    if any(loc and loc[0] == "path" for loc in locations):
        return error_response(NotFound(f"bad path parameter on {request.url.path}"))
    if any(loc and loc[0] == "body" for loc in locations):
        return JSONResponse(status_code=400, content={"error": "invalid_json"})
    fields = {str(loc[-1]): Invalid() for loc in locations if loc}
    return error_response(ValidationError(fields))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(status_code=429, content={"error": "rate_limited"})
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (unknown path, wrong method) in the same envelope."""
    code = "not_found" if exc.status_code == 404 else f"http_{exc.status_code}"
    return JSONResponse(status_code=exc.status_code, content={"error": code}, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body. The client receives only a generic code.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "server_error"})


# ---------------------------------------------------------------------------
# Health endpoint
#
# Outside the routers: no bearer token, no JSON negotiation, no rate limit.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
