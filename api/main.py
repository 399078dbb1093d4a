"""
api/main.py -- FastAPI application entry point for ExpenseTracker.

Run with:      uvicorn asgi:app --reload
               python main.py serve --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware        -- answers preflights and adds CORS headers, including on 401s
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. log_requests          -- method, path, status, latency
  4. authentication_gate   -- public allow-list, bearer token check, principal binding

Starlette wraps middleware in reverse registration order: the LAST one added
is the OUTERMOST. They are therefore registered innermost-first below.

Lifespan opens the stores and builds the auth services on startup, and
closes the stores on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.categories import router as categories_router
from api.routes.v1.expenses import router as expenses_router
from api.routes.v1.users import router as users_router
from auth.credentials import CredentialStore
from auth.errors import AuthenticationError, ResourceNotFound
from auth.gate import AuthenticationGate
from auth.ownership import OwnershipGuard
from auth.passwords import BcryptHasher
from auth.store import UserStore
from auth.tokens import TokenCodec
from auth.validator import TokenValidator
from core.config import Settings, get_settings
from ledger.store import LedgerStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("expensetracker.api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def attach_services(app: FastAPI, user_store: UserStore, ledger: LedgerStore, settings: Settings) -> None:
    """Build the auth core on top of the given stores and publish it on app.state.

    Shared by the real lifespan and the test lifespan so both wire the exact
    same objects. Everything attached here is either read-only after startup
    (codec, validator, gate) or a thread-safe store.
    """
    codec = TokenCodec(settings.secret_key, settings.token_expire_seconds)
    validator = TokenValidator(codec)
    app.state.user_store = user_store
    app.state.ledger = ledger
    app.state.credentials = CredentialStore(user_store, BcryptHasher(settings.bcrypt_rounds))
    app.state.token_codec = codec
    app.state.gate = AuthenticationGate(validator, user_store, settings.public_paths)
    app.state.category_guard = OwnershipGuard(ledger.categories, "category")
    app.state.expense_guard = OwnershipGuard(ledger.expenses, "expense")


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores, wire the auth core, and close the stores on shutdown."""
    settings = get_settings()
    logger.info("ExpenseTracker API starting up")
    user_store = UserStore(settings.auth_database_url)
    ledger = LedgerStore(settings.ledger_database_url)
    attach_services(app, user_store, ledger, settings)
    logger.info(
        "Auth initialized (token_ttl=%ss, public_paths=%d)",
        settings.token_expire_seconds,
        len(settings.public_paths),
    )

    yield

    app.state.ledger.close()
    app.state.user_store.close()
    logger.info("ExpenseTracker API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ExpenseTracker API",
    description="Personal expense tracking: categories, expenses, and spending summaries.",
    version=VERSION,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Authentication gate
#
# Runs before routing, so a protected path is rejected with 401 whether or
# not a route exists for it. The principal is bound to request.state, which
# lives in this request's ASGI scope only -- never in a module global.
# ---------------------------------------------------------------------------


def _unauthorized(exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=str(exc))).model_dump(),
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.middleware("http")
async def authentication_gate(request: Request, call_next):
    """Bind the request's Principal or reject it before any handler runs.

    Public paths proceed unauthenticated (principal None) and the
    Authorization header is not even read. Every other path needs a valid
    bearer token whose subject still has an account.
    """
    gate: AuthenticationGate = request.app.state.gate
    if gate.is_public(request.url.path):
        request.state.principal = None
        return await call_next(request)
    try:
        # Token check and directory lookup are blocking; keep them off the event loop.
        principal = await run_in_threadpool(gate.authenticate, request.headers.get("Authorization"))
    except AuthenticationError as exc:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, type(exc).__name__)
        return _unauthorized(exc)
    request.state.principal = principal
    return await call_next(request)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Pattern: Interceptor. Every request passes through this coroutine, so we
# can report latency on every response, including gate rejections.
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


_settings = get_settings()

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_allow_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(categories_router, prefix="/api/v1", tags=["Categories"])
app.include_router(expenses_router, prefix="/api/v1", tags=["Expenses"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(ResourceNotFound)
async def not_found_handler(request: Request, exc: ResourceNotFound) -> JSONResponse:
    """Return 404 for absent resources AND for resources owned by someone else.

    ResourceNotOwned is a subclass and lands here too. The body is built only
    from the code and message, which are identical for both cases.
    """
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=str(exc))).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with detail=ErrorDetail(...).model_dump()
    (a dict). When detail is already a structured dict, use it directly as the
    error field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. On the public allow-list so load
# balancers can probe it without a token.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
