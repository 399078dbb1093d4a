"""
auth/dependencies.py -- FastAPI Depends() helpers for the authenticated principal.

The authentication gate middleware (api/main.py) is the only place that
verifies tokens. By the time a protected route runs, the gate has already
bound a Principal to request.state.principal. get_principal() just reads it.

The 401 branch below is unreachable while the gate is mounted and the route
is not on the public allow-list. It exists so that a route accidentally
added to the allow-list fails closed instead of running with no identity.

Layer rule: no imports from core/ or ledger/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Principal


def try_get_principal(request: Request) -> Principal | None:
    """Return the Principal bound by the gate, or None on public routes."""
    return getattr(request.state, "principal", None)


def get_principal(request: Request) -> Principal:
    """Require an authenticated Principal. Raises HTTP 401 if none is bound.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_principal)): ...
    """
    principal = try_get_principal(request)
    if principal is None or principal.user_id is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal
