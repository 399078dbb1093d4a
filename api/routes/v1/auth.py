"""
api/routes/v1/auth.py -- Registration, login, and identity endpoints.

Routes:
  POST /api/v1/auth/register      -- create an account (public)
  POST /api/v1/auth/login         -- password login; returns a bearer token (public)
  GET  /api/v1/auth/check-email   -- is this email free to register? (public)
  GET  /api/v1/auth/me            -- current user info (requires auth)

Security:
  CredentialStore.verify() equalizes timing and error shape between unknown
  email and wrong password -- use it, never inline the lookup + hash check.
  Cache-Control: no-store on login responses so tokens are not cached.
  There is no logout route: tokens are stateless, and logging out means the
  client discards its token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import (
    EmailAvailabilityResponse,
    ErrorDetail,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from auth.credentials import CredentialStore
from auth.dependencies import get_principal
from auth.errors import AuthError, EmailAlreadyRegistered, InvalidCredentials, PasswordTooLong
from auth.models import Principal
from auth.store import UserStore
from auth.tokens import TokenCodec

logger = logging.getLogger("expensetracker.api.auth")

# Auth policy:
# - POST /api/v1/auth/register:     public -- on the gate's allow-list
# - POST /api/v1/auth/login:        public -- on the gate's allow-list
# - GET  /api/v1/auth/check-email:  public -- on the gate's allow-list
# - GET  /api/v1/auth/me:           requires auth (get_principal)
router = APIRouter()


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create an account. Returns 400 if the email is already registered."""
    credentials: CredentialStore = request.app.state.credentials
    try:
        user = credentials.register(body.email, body.password, name=body.name)
    except (EmailAlreadyRegistered, PasswordTooLong) as exc:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code=exc.code, message=str(exc)).model_dump(),
        ) from exc
    return UserResponse.from_user(user)


def _login_failed(exc: AuthError) -> JSONResponse:
    resp = JSONResponse(
        status_code=401,
        content={"error": ErrorDetail(code=exc.code, message=str(exc)).model_dump()},
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email and password for a bearer token.

    Returns the same "bad_credentials" error for an unknown email, a wrong
    password, and an account deleted between the check and the response.
    """
    credentials: CredentialStore = request.app.state.credentials
    codec: TokenCodec = request.app.state.token_codec
    user_store: UserStore = request.app.state.user_store

    try:
        principal = credentials.verify(body.email, body.password)
    except InvalidCredentials as exc:
        logger.info("Login failed")
        return _login_failed(exc)

    user = user_store.get_by_id(principal.user_id)
    if user is None:
        logger.info("Login failed: account %s deleted during login", principal.user_id)
        return _login_failed(InvalidCredentials())

    token = codec.issue(principal)
    logger.info("Login succeeded for user %s", principal.user_id)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            type="Bearer",
            expires_in=codec.ttl_seconds,
            user=UserResponse.from_user(user),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/check-email", response_model=EmailAvailabilityResponse)
def check_email(request: Request, email: str) -> EmailAvailabilityResponse:
    """Return whether email is free to register."""
    credentials: CredentialStore = request.app.state.credentials
    return EmailAvailabilityResponse(available=credentials.is_email_available(email))


@router.get("/auth/me", response_model=UserResponse)
def me(request: Request, principal: Principal = Depends(get_principal)) -> UserResponse:
    """Return the account behind the current bearer token."""
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(principal.user_id)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail=ErrorDetail(code="invalid_token", message="Invalid or expired token.").model_dump(),
        )
    return UserResponse.from_user(user)
