"""
ledger/models.py -- Domain dataclasses for categories and expenses.

These are pure data containers with zero logic. Persistence lives in
ledger/store.py; ownership checks live in auth/ownership.py.

Both owned types carry owner_id, the id of the user who created the record.
It is always set from the authenticated principal, never from a request body.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass
class Category:
    """A user-defined expense category.

    id and owner_id are None before the record is written to the database.
    """

    name: str
    description: Optional[str] = None
    color: Optional[str] = None  # "#RRGGBB"
    icon: Optional[str] = None
    id: Optional[int] = None
    owner_id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class Expense:
    """A single spend, filed under one of the owner's categories.

    amount is a positive Decimal with two places; the store persists it as
    integer cents.
    """

    description: str
    amount: Decimal
    date: date
    category_id: int
    id: Optional[int] = None
    owner_id: Optional[int] = None
    created_at: str = ""


@dataclass
class CategoryTotal:
    """One row of the per-category spending summary."""

    category_id: int
    category_name: str
    total: Decimal
    count: int
    percentage: float  # share of the owner's total, 0-100, two decimals
