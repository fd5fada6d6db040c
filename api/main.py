"""
api/main.py -- FastAPI application entry point for StaffDesk.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- one log line per request with latency

Lifespan handles startup (settings, stores, hasher, token issuer) and
shutdown (dispose both stores) symmetrically.
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
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.employees import router as employees_router
from api.routes.v1.org import router as org_router
from api.routes.v1.seekers import router as seekers_router
from api.routes.v1.users import router as users_router
from auth.registration import Registrar
from auth.store import PrincipalStore
from auth.tokens import PasswordHasher, TokenIssuer
from auth.validation import first_error_message
from core.config import get_settings
from core.errors import AppError
from org.store import OrgStore

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("staffdesk.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the shared services once and tear them down on shutdown.

    Startup order matters: the Registrar needs both the principal store and
    the password hasher, so those are created first. The signing secret is
    read from settings here and handed to TokenIssuer; nothing else sees it.
    """
    logger.info("StaffDesk API starting up")
    cfg = get_settings()
    app.state.principal_store = PrincipalStore(cfg.database_url, timeout=cfg.store_timeout_seconds)
    app.state.org_store = OrgStore(cfg.database_url, timeout=cfg.store_timeout_seconds)
    app.state.password_hasher = PasswordHasher(rounds=cfg.bcrypt_rounds)
    app.state.token_issuer = TokenIssuer(cfg.secret_key, expire_seconds=cfg.token_expire_seconds)
    app.state.registrar = Registrar(app.state.principal_store, app.state.password_hasher)
    logger.info("Stores initialized (timeout=%.1fs, bcrypt rounds=%d)", cfg.store_timeout_seconds, cfg.bcrypt_rounds)

    yield

    app.state.principal_store.close()
    app.state.org_store.close()
    logger.info("StaffDesk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="StaffDesk API",
    description="Registration, login and role-gated record keeping for employees, job seekers and users.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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

app.include_router(employees_router, prefix="/api/v1", tags=["Employees"])
app.include_router(seekers_router, prefix="/api/v1", tags=["Seekers"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(org_router, prefix="/api/v1", tags=["Organization"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render any domain error with the status and code it carries."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with the first failing rule as the message."""
    message, detail = first_error_message(list(exc.errors()))
    return _error(400, "validation_error", message, detail)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Routing errors (404, 405) and any HTTPException raised by a route."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    store: PrincipalStore = request.app.state.principal_store
    database = "ok" if store.ping() else "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
