"""
api/routes/v1/users.py -- Account self-service endpoints.

Routes:
  GET    /api/v1/users/me        -- the caller's account
  PUT    /api/v1/users/me        -- change name, email, and/or password
  DELETE /api/v1/users/me        -- delete the account and all its ledger data
  GET    /api/v1/users/{user_id} -- the caller's account by id; 404 for any other id

A user is the owner of their own account record, so the same anti-enumeration
rule as categories and expenses applies: asking for someone else's id looks
exactly like asking for an id that does not exist.

Deleting an account does not revoke tokens. The next request with an old
token fails in the gate with UnknownSubject (401).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import ErrorDetail, UserResponse, UserUpdate
from auth.credentials import CredentialStore
from auth.dependencies import get_principal
from auth.errors import PasswordTooLong
from auth.models import Principal, User
from auth.store import UserStore
from ledger.store import LedgerStore

logger = logging.getLogger("expensetracker.api.users")

# Auth policy:
# - every route: requires auth (get_principal); the gate rejects anonymous
#   callers before routing.
router = APIRouter()


def _not_found(user_id: int) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="user_not_found", message=f"User {user_id} not found.").model_dump(),
    )


def _current_user(request: Request, principal: Principal) -> User:
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(principal.user_id)
    if user is None:
        raise _not_found(principal.user_id)
    return user


@router.get("/users/me", response_model=UserResponse)
def get_me(request: Request, principal: Principal = Depends(get_principal)) -> UserResponse:
    return UserResponse.from_user(_current_user(request, principal))


@router.put("/users/me", response_model=UserResponse)
def update_me(
    request: Request,
    body: UserUpdate,
    principal: Principal = Depends(get_principal),
) -> UserResponse:
    """Update the caller's profile.

    Changing the email changes the token subject: tokens issued for the old
    address stop resolving and the client must log in again.
    """
    user_store: UserStore = request.app.state.user_store
    credentials: CredentialStore = request.app.state.credentials
    user = _current_user(request, principal)

    updates: dict = {}
    if body.name is not None:
        updates["name"] = body.name
    if body.email is not None and body.email != user.email:
        if not credentials.is_email_available(body.email):
            raise HTTPException(
                status_code=400,
                detail=ErrorDetail(code="email_already_registered", message="Email is already registered.").model_dump(),
            )
        updates["email"] = body.email

    if not updates and body.password is None:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="no_changes", message="No fields to update.").model_dump(),
        )

    try:
        user_store.update_user(user.id, **updates)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="email_already_registered", message="Email is already registered.").model_dump(),
        ) from exc
    if body.password is not None:
        try:
            credentials.change_password(user.id, body.password)
        except PasswordTooLong as exc:
            raise HTTPException(
                status_code=400,
                detail=ErrorDetail(code=exc.code, message=str(exc)).model_dump(),
            ) from exc
        logger.info("Password changed for user %s", user.id)

    return UserResponse.from_user(user_store.get_by_id(user.id))


@router.delete("/users/me", status_code=204)
def delete_me(request: Request, principal: Principal = Depends(get_principal)) -> Response:
    """Delete the caller's account together with its categories and expenses."""
    user_store: UserStore = request.app.state.user_store
    ledger: LedgerStore = request.app.state.ledger
    ledger.delete_owner_data(principal.user_id)
    if not user_store.delete_user(principal.user_id):
        raise _not_found(principal.user_id)
    logger.info("Deleted user %s", principal.user_id)
    return Response(status_code=204)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: int, principal: Principal = Depends(get_principal)) -> UserResponse:
    """Return the caller's own account. Any other id is reported as not found."""
    if user_id != principal.user_id:
        raise _not_found(user_id)
    return UserResponse.from_user(_current_user(request, principal))
