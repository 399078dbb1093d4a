"""
api/routes/v1/categories.py -- Owner-scoped category CRUD.

Routes:
  GET    /api/v1/categories                 -- the caller's categories (optional ?name=)
  POST   /api/v1/categories                 -- create a category owned by the caller
  GET    /api/v1/categories/{category_id}   -- one category
  PUT    /api/v1/categories/{category_id}   -- replace name/description/color/icon
  DELETE /api/v1/categories/{category_id}   -- delete it and its expenses

Every lookup goes through the category OwnershipGuard on app.state. A
ResourceNotFound (including ResourceNotOwned) propagates to the handler in
api/main.py, which answers the same 404 for "absent" and "someone else's".
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.models import CategoryRequest, CategoryResponse
from auth.dependencies import get_principal
from auth.models import Principal
from auth.ownership import OwnershipGuard
from ledger.models import Category

logger = logging.getLogger("expensetracker.api.categories")

# All category routes require authentication.
# Router-level dependency applies to every route registered on this router.
router = APIRouter(dependencies=[Depends(get_principal)])


def _guard(request: Request) -> OwnershipGuard[Category]:
    return request.app.state.category_guard


@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(
    request: Request,
    name: Optional[str] = None,
    principal: Principal = Depends(get_principal),
) -> list[CategoryResponse]:
    """Return the caller's categories, optionally only the one with an exact name."""
    return [CategoryResponse.from_category(c) for c in _guard(request).list_owned(principal, name=name)]


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(
    request: Request,
    body: CategoryRequest,
    principal: Principal = Depends(get_principal),
) -> CategoryResponse:
    category = Category(
        name=body.name,
        description=body.description,
        color=body.color,
        icon=body.icon,
    )
    created = _guard(request).create_owned(category, principal)
    logger.info("User %s created category %s", principal.user_id, created.id)
    return CategoryResponse.from_category(created)


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(
    request: Request,
    category_id: int,
    principal: Principal = Depends(get_principal),
) -> CategoryResponse:
    return CategoryResponse.from_category(_guard(request).find_owned(category_id, principal))


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    request: Request,
    category_id: int,
    body: CategoryRequest,
    principal: Principal = Depends(get_principal),
) -> CategoryResponse:
    updated = _guard(request).update_owned(
        category_id,
        principal,
        name=body.name,
        description=body.description,
        color=body.color,
        icon=body.icon,
    )
    return CategoryResponse.from_category(updated)


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(
    request: Request,
    category_id: int,
    principal: Principal = Depends(get_principal),
) -> Response:
    """Delete a category. Expenses filed under it are deleted with it."""
    _guard(request).delete_owned(category_id, principal)
    logger.info("User %s deleted category %s", principal.user_id, category_id)
    return Response(status_code=204)
