"""
api/routes/v1/expenses.py -- Owner-scoped expense CRUD and spending summary.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /api/v1/expenses                -- the caller's expenses, newest first
  POST   /api/v1/expenses                -- record an expense
  GET    /api/v1/expenses/summary        -- totals per category
  GET    /api/v1/expenses/{expense_id}   -- one expense
  PUT    /api/v1/expenses/{expense_id}   -- replace an expense
  DELETE /api/v1/expenses/{expense_id}   -- delete an expense

Two ownership checks guard every write: the expense itself (on update and
delete) and the category it is filed under (on create and update). Filing an
expense under another user's category fails with the same 404 as filing it
under a category that does not exist.

GET /expenses/summary must be registered before GET /expenses/{expense_id},
or FastAPI captures "summary" as a path parameter.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.models import CategoryTotalRow, ExpenseRequest, ExpenseResponse, ExpenseSummaryResponse
from auth.dependencies import get_principal
from auth.models import Principal
from auth.ownership import OwnershipGuard
from ledger.models import Category, Expense
from ledger.store import LedgerStore

logger = logging.getLogger("expensetracker.api.expenses")

# All expense routes require authentication.
router = APIRouter(dependencies=[Depends(get_principal)])


def _guard(request: Request) -> OwnershipGuard[Expense]:
    return request.app.state.expense_guard


def _require_category(request: Request, category_id: int, principal: Principal) -> Category:
    category_guard: OwnershipGuard[Category] = request.app.state.category_guard
    return category_guard.find_owned(category_id, principal)


@router.get("/expenses", response_model=list[ExpenseResponse])
def list_expenses(
    request: Request,
    category_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    principal: Principal = Depends(get_principal),
) -> list[ExpenseResponse]:
    """Return the caller's expenses, optionally narrowed by category and date range (inclusive)."""
    expenses = _guard(request).list_owned(principal, category_id=category_id, start=start, end=end)
    return [ExpenseResponse.from_expense(e) for e in expenses]


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def create_expense(
    request: Request,
    body: ExpenseRequest,
    principal: Principal = Depends(get_principal),
) -> ExpenseResponse:
    _require_category(request, body.category_id, principal)
    expense = Expense(
        description=body.description,
        amount=body.amount,
        date=body.date,
        category_id=body.category_id,
    )
    created = _guard(request).create_owned(expense, principal)
    logger.info("User %s created expense %s", principal.user_id, created.id)
    return ExpenseResponse.from_expense(created)


@router.get("/expenses/summary", response_model=ExpenseSummaryResponse)
def expense_summary(
    request: Request,
    start: Optional[date] = None,
    end: Optional[date] = None,
    principal: Principal = Depends(get_principal),
) -> ExpenseSummaryResponse:
    """Return the caller's spending grouped by category.

    Response:
      total        -- sum of all expenses in the window
      count        -- number of expenses in the window
      by_category  -- per-category total, count, and percentage of total
    """
    ledger: LedgerStore = request.app.state.ledger
    rows = ledger.expenses.summarize_by_category(principal.user_id, start=start, end=end)
    return ExpenseSummaryResponse(
        total=sum((r.total for r in rows), Decimal("0.00")),
        count=sum(r.count for r in rows),
        by_category=[CategoryTotalRow.from_total(r) for r in rows],
    )


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    request: Request,
    expense_id: int,
    principal: Principal = Depends(get_principal),
) -> ExpenseResponse:
    return ExpenseResponse.from_expense(_guard(request).find_owned(expense_id, principal))


@router.put("/expenses/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    request: Request,
    expense_id: int,
    body: ExpenseRequest,
    principal: Principal = Depends(get_principal),
) -> ExpenseResponse:
    guard = _guard(request)
    # Check the expense first so a foreign expense id never reveals whether
    # the category id in the body is valid.
    guard.find_owned(expense_id, principal)
    _require_category(request, body.category_id, principal)
    updated = guard.update_owned(
        expense_id,
        principal,
        description=body.description,
        amount=body.amount,
        date=body.date,
        category_id=body.category_id,
    )
    return ExpenseResponse.from_expense(updated)


@router.delete("/expenses/{expense_id}", status_code=204)
def delete_expense(
    request: Request,
    expense_id: int,
    principal: Principal = Depends(get_principal),
) -> Response:
    _guard(request).delete_owned(expense_id, principal)
    logger.info("User %s deleted expense %s", principal.user_id, expense_id)
    return Response(status_code=204)
